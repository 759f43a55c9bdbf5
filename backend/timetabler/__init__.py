"""Constraint-based weekly timetable scheduler."""
