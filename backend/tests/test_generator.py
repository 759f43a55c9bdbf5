from collections import Counter
from itertools import count

import pytest

from timetabler.core.exceptions import (
    GenerationTimeoutError,
    InfeasibleScheduleError,
    ResourceNotFoundError,
    SchedulerError,
)
from timetabler.schemas.generator import SubjectSelection
from timetabler.services.generator import SubjectPlan, TimetableGenerator, priority_order
from timetabler.services.grid import LAB_SLOT_PAIRS


@pytest.fixture
def teachers(make_teacher):
    return {
        "t1": make_teacher("t1", "Alice"),
        "t2": make_teacher("t2", "Bala"),
        "t3": make_teacher("t3", "Chen"),
    }


def build_generator(subjects, teachers, existing=(), **kwargs):
    return TimetableGenerator(
        subjects={subject.id: subject for subject in subjects},
        teachers=teachers,
        existing_timetables=list(existing),
        **kwargs,
    )


def run(generator, *pairs, section="A"):
    return generator.generate(
        semester=3,
        department="CSE",
        section=section,
        selection=[SubjectSelection(subject=subject_id, teachers=teacher_ids) for subject_id, teacher_ids in pairs],
    )


def placements(result):
    return [
        (entry.day, slot.slot_number, slot.subject, tuple(slot.teachers))
        for entry in result.schedule
        for slot in entry.slots
    ]


def test_single_theory_subject_fills_first_slot_of_consecutive_days(teachers, make_subject):
    maths = make_subject("maths", 3, ["t1"])
    result = run(build_generator([maths], teachers), ("maths", ["t1"]))

    assert placements(result) == [
        ("Monday", 1, "maths", ("t1",)),
        ("Tuesday", 1, "maths", ("t1",)),
        ("Wednesday", 1, "maths", ("t1",)),
    ]
    assert [entry.day for entry in result.schedule] == ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
    assert result.soft_score == 3
    assert result.nodes_visited >= 3


def test_credits_are_met_exactly_and_labs_occupy_valid_pairs(teachers, make_subject):
    subjects = [
        make_subject("maths", 3, ["t1"]),
        make_subject("network-lab", 4, ["t2"], type="lab"),
        make_subject("ethics", 2, ["t3"]),
    ]
    result = run(
        build_generator(subjects, teachers),
        ("maths", ["t1"]),
        ("network-lab", ["t2"]),
        ("ethics", ["t3"]),
    )

    counts = Counter(subject for _, _, subject, _ in placements(result))
    assert counts == {"maths": 3, "network-lab": 4, "ethics": 2}

    lab_slots: dict[str, list[int]] = {}
    for day, slot_number, subject, _ in placements(result):
        if subject == "network-lab":
            lab_slots.setdefault(day, []).append(slot_number)
    # The lab has the most credits, so it is placed first.
    assert lab_slots == {"Monday": [1, 2], "Tuesday": [1, 2]}
    for slots in lab_slots.values():
        assert tuple(slots) in LAB_SLOT_PAIRS


def test_never_double_books_against_other_timetables(teachers, make_subject, make_timetable):
    existing = make_timetable(
        "tt-b",
        "B",
        [("Monday", 1, "physics", ["t1"]), ("Tuesday", 1, "physics", ["t1"])],
    )
    maths = make_subject("maths", 3, ["t1"])
    result = run(build_generator([maths], teachers, [existing]), ("maths", ["t1"]))

    assert placements(result) == [
        ("Wednesday", 1, "maths", ("t1",)),
        ("Thursday", 1, "maths", ("t1",)),
        ("Friday", 1, "maths", ("t1",)),
    ]


def test_existing_timetable_of_the_same_class_is_ignored(teachers, make_subject, make_timetable):
    previous = make_timetable("tt-a", "A", [("Monday", 1, "maths", ["t1"])])
    maths = make_subject("maths", 1, ["t1"])
    result = run(build_generator([maths], teachers, [previous]), ("maths", ["t1"]))

    assert placements(result) == [("Monday", 1, "maths", ("t1",))]


def test_lab_skips_a_start_whose_partner_slot_is_taken(teachers, make_subject, make_timetable):
    existing = make_timetable("tt-b", "B", [("Monday", 2, "physics", ["t2"])])
    lab = make_subject("chem-lab", 2, ["t2"], type="lab")
    result = run(build_generator([lab], teachers, [existing]), ("chem-lab", ["t2"]))

    assert placements(result) == [
        ("Tuesday", 1, "chem-lab", ("t2",)),
        ("Tuesday", 2, "chem-lab", ("t2",)),
    ]


def test_lab_can_start_on_the_overlapping_sixth_slot(make_teacher, make_subject, make_timetable):
    teachers = {"t1": make_teacher("t1", availability=["Monday"])}
    existing = make_timetable(
        "tt-b",
        "B",
        [("Monday", slot_number, "physics", ["t1"]) for slot_number in range(1, 6)],
    )
    lab = make_subject("chem-lab", 2, ["t1"], type="lab")
    result = run(build_generator([lab], teachers, [existing]), ("chem-lab", ["t1"]))

    assert placements(result) == [
        ("Monday", 6, "chem-lab", ("t1",)),
        ("Monday", 7, "chem-lab", ("t1",)),
    ]


def test_respects_teacher_availability(make_teacher, make_subject):
    teachers = {"t1": make_teacher("t1", availability=["Wednesday", "thu"])}
    maths = make_subject("maths", 3, ["t1"])
    result = run(build_generator([maths], teachers), ("maths", ["t1"]))

    assert placements(result) == [
        ("Wednesday", 1, "maths", ("t1",)),
        ("Thursday", 1, "maths", ("t1",)),
        ("Wednesday", 2, "maths", ("t1",)),
    ]


def test_every_chosen_teacher_is_recorded_and_blocked(teachers, make_subject):
    lab = make_subject("robotics-lab", 2, ["t1", "t2"], type="lab")
    maths = make_subject("maths", 1, ["t2"])
    result = run(
        build_generator([lab, maths], teachers),
        ("robotics-lab", ["t1", "t2"]),
        ("maths", ["t2"]),
    )

    assert placements(result) == [
        ("Monday", 1, "robotics-lab", ("t1", "t2")),
        ("Monday", 2, "robotics-lab", ("t1", "t2")),
        ("Tuesday", 1, "maths", ("t2",)),
    ]


def test_teacher_without_free_slots_is_infeasible(make_teacher, make_subject):
    teachers = {"t1": make_teacher("t1", availability=[])}
    maths = make_subject("maths", 2, ["t1"])

    with pytest.raises(InfeasibleScheduleError) as excinfo:
        run(build_generator([maths], teachers), ("maths", ["t1"]))

    assert excinfo.value.status_code == 422
    assert excinfo.value.details["free_slots"] == 0


def test_more_credits_than_the_week_holds_is_infeasible(teachers, make_subject):
    subjects = [make_subject("big", 20, ["t1"]), make_subject("bigger", 20, ["t2"])]

    with pytest.raises(InfeasibleScheduleError) as excinfo:
        run(build_generator(subjects, teachers), ("big", ["t1"]), ("bigger", ["t2"]))

    assert excinfo.value.details == {"required_slots": 40, "available_slots": 35}


def test_search_exhaustion_is_infeasible(make_teacher, make_subject, make_timetable):
    # Six free Monday slots, but with slot 2 taken only two lab pairs remain.
    teachers = {"t1": make_teacher("t1", availability=["Monday"])}
    existing = make_timetable("tt-b", "B", [("Monday", 2, "physics", ["t1"])])
    lab = make_subject("lab", 6, ["t1"], type="lab")

    with pytest.raises(InfeasibleScheduleError) as excinfo:
        run(build_generator([lab], teachers, [existing]), ("lab", ["t1"]))

    assert not isinstance(excinfo.value, GenerationTimeoutError)
    assert excinfo.value.details["nodes_visited"] > 0


def test_odd_lab_credits_fail_fast(teachers, make_subject):
    lab = make_subject("lab", 3, ["t1"], type="lab")

    with pytest.raises(InfeasibleScheduleError) as excinfo:
        run(build_generator([lab], teachers), ("lab", ["t1"]))

    unplaceable = excinfo.value.details["unplaceable"]
    assert unplaceable[0]["subject_id"] == "lab"
    assert "even number of credits" in unplaceable[0]["reasons"][0]


def test_ineligible_or_missing_teacher_is_reported(teachers, make_subject):
    maths = make_subject("maths", 2, ["t1"])
    physics = make_subject("physics", 2, ["t2"])

    with pytest.raises(InfeasibleScheduleError) as excinfo:
        run(
            build_generator([maths, physics], teachers),
            ("maths", ["t3"]),
            ("physics", []),
        )

    reasons = {entry["subject_id"]: entry["reasons"] for entry in excinfo.value.details["unplaceable"]}
    assert reasons["maths"] == ["Chen is not eligible to teach it"]
    assert reasons["physics"] == ["no teacher was chosen"]


def test_unknown_subject_is_not_found(teachers):
    with pytest.raises(ResourceNotFoundError) as excinfo:
        run(build_generator([], teachers), ("ghost", ["t1"]))

    assert excinfo.value.status_code == 404


def test_duplicate_selection_is_rejected(teachers, make_subject):
    maths = make_subject("maths", 2, ["t1"])

    with pytest.raises(SchedulerError) as excinfo:
        run(build_generator([maths], teachers), ("maths", ["t1"]), ("maths", ["t1"]))

    assert excinfo.value.status_code == 400
    assert not isinstance(excinfo.value, InfeasibleScheduleError)


def test_node_cap_raises_timeout(teachers, make_subject):
    maths = make_subject("maths", 3, ["t1"])

    with pytest.raises(GenerationTimeoutError) as excinfo:
        run(build_generator([maths], teachers, max_nodes=2), ("maths", ["t1"]))

    assert isinstance(excinfo.value, InfeasibleScheduleError)
    assert excinfo.value.status_code == 422


def test_wall_clock_cap_raises_timeout(teachers, make_subject):
    ticks = count(0, 5)
    maths = make_subject("maths", 3, ["t1"])
    generator = build_generator([maths], teachers, time_limit_seconds=1.0, clock=lambda: next(ticks))

    with pytest.raises(GenerationTimeoutError):
        run(generator, ("maths", ["t1"]))


def test_priority_order_puts_heavy_subjects_and_labs_first(teachers, make_subject):
    plans = [
        SubjectPlan(subject=make_subject("theory-2", 2, []), teachers=()),
        SubjectPlan(subject=make_subject("theory-4", 4, []), teachers=()),
        SubjectPlan(subject=make_subject("lab-2", 2, [], type="lab"), teachers=()),
        SubjectPlan(subject=make_subject("other-theory-2", 2, []), teachers=()),
    ]

    ordered = [plan.subject.id for plan in priority_order(plans)]

    assert ordered == ["theory-4", "lab-2", "theory-2", "other-theory-2"]


def test_generator_does_not_mutate_its_inputs(teachers, make_subject, make_timetable):
    existing = make_timetable("tt-b", "B", [("Monday", 1, "physics", ["t1"])])
    before = existing.model_dump()
    maths = make_subject("maths", 2, ["t1"])

    run(build_generator([maths], teachers, [existing]), ("maths", ["t1"]))

    assert existing.model_dump() == before
