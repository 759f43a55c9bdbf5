from timetabler.models.subject import Subject, SubjectType  # noqa: F401
from timetabler.models.teacher import Teacher, TeacherRank  # noqa: F401
from timetabler.models.timetable import Timetable  # noqa: F401
