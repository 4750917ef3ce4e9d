# Re-export models so callers can keep using: from lesson_engine.models import Lesson, ScheduleSlot, ...
from .calendar import AcademicYear, Semester, TeachingBreak, BreakType
from .course import Teacher, Classroom, Student, TutoringClass, Enrollment
from .schedule import (
    ScheduleSlot, Lesson, LessonStatus, GenerationSource, SlotScope, GlobalScope, SemesterScope,
)

__all__ = [
    # calendar
    "AcademicYear", "Semester", "TeachingBreak", "BreakType",
    # classes & resources
    "Teacher", "Classroom", "Student", "TutoringClass", "Enrollment",
    # schedule & lessons
    "ScheduleSlot", "Lesson", "LessonStatus", "GenerationSource",
    "SlotScope", "GlobalScope", "SemesterScope",
]
