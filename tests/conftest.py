from datetime import date, time

import pytest

from lesson_engine.extensions import Database
from lesson_engine.models import (
    AcademicYear,
    BreakType,
    Classroom,
    Enrollment,
    GenerationSource,
    Lesson,
    LessonStatus,
    ScheduleSlot,
    Semester,
    Student,
    Teacher,
    TeachingBreak,
    TutoringClass,
)


class Factory:
    """Builds committed rows with sensible defaults for one test database."""

    def __init__(self, session):
        self.session = session
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def _save(self, obj):
        self.session.add(obj)
        self.session.commit()
        return obj

    def year(self, start=date(2025, 9, 1), end=date(2026, 6, 30), semesters=True, breaks=True, is_active=True):
        year = AcademicYear(name=f"{start.year}/{end.year} #{self._next()}", start_date=start, end_date=end,
                            is_active=is_active)
        if semesters:
            year.semesters = [
                Semester(semester_number=1, name="Autumn", start_date=start, end_date=date(start.year + 1, 1, 31)),
                Semester(semester_number=2, name="Spring", start_date=date(start.year + 1, 2, 1), end_date=end),
            ]
        if breaks:
            year.teaching_breaks = [
                TeachingBreak(name="Winter break", start_date=date(start.year, 12, 22),
                              end_date=date(start.year + 1, 1, 5), break_type=BreakType.VACATION),
            ]
        return self._save(year)

    def teacher(self, first_name="Terry", last_name="Teacher"):
        return self._save(Teacher(first_name=first_name, last_name=last_name))

    def classroom(self, name=None, capacity=10):
        return self._save(Classroom(name=name or f"Room {100 + self._next()}", capacity=capacity))

    def student(self, first_name="Kai", last_name="Nguyen"):
        return self._save(Student(first_name=first_name, last_name=last_name))

    def tutoring_class(self, year, name=None, teacher=None, classroom=None, students=(), is_active=True):
        tutoring_class = self._save(TutoringClass(
            name=name or f"Class {self._next()}",
            academic_year_id=year.id,
            teacher_id=teacher.id if teacher else None,
            classroom_id=classroom.id if classroom else None,
            is_active=is_active,
        ))
        for student in students:
            self.session.add(Enrollment(class_id=tutoring_class.id, student_id=student.id))
        self.session.commit()
        return tutoring_class

    def slot(self, tutoring_class, day_of_week=0, start=time(10, 0), end=time(11, 0), semester=None,
             is_obsolete=False):
        return self._save(ScheduleSlot(
            class_id=tutoring_class.id,
            day_of_week=day_of_week,
            start_time=start,
            end_time=end,
            semester_id=semester.id if semester else None,
            is_obsolete=is_obsolete,
        ))

    def lesson(self, tutoring_class, scheduled_date, start=time(10, 0), end=time(11, 0),
               status=LessonStatus.SCHEDULED, slot=None, **values):
        return self._save(Lesson(
            class_id=tutoring_class.id,
            scheduled_date=scheduled_date,
            start_time=start,
            end_time=end,
            status=status,
            generation_source=GenerationSource.AUTOMATIC if slot else GenerationSource.MANUAL,
            source_slot_id=slot.id if slot else None,
            **values,
        ))


@pytest.fixture
def database():
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.drop_all()
    database.engine.dispose()


@pytest.fixture
def session(database):
    session = database.SessionLocal()
    yield session
    session.close()


@pytest.fixture
def factory(session):
    return Factory(session)


@pytest.fixture
def year(factory):
    return factory.year()


@pytest.fixture
def teacher(factory):
    return factory.teacher()


@pytest.fixture
def classroom(factory):
    return factory.classroom()


@pytest.fixture
def english(factory, year, teacher, classroom):
    """A class with two enrolled students and no slots yet."""
    students = [factory.student("Kai", "Nguyen"), factory.student("Mia", "Singh")]
    return factory.tutoring_class(year, name="English B1", teacher=teacher, classroom=classroom, students=students)
