from __future__ import annotations

from datetime import date, time
from typing import Dict, List

from sqlalchemy.orm import Session

from lesson_engine.models import (
    AcademicYear,
    BreakType,
    Classroom,
    Enrollment,
    ScheduleSlot,
    Semester,
    Student,
    Teacher,
    TeachingBreak,
    TutoringClass,
)

from seeds.utils import get_or_create


ACADEMIC_YEAR_FIXTURES: List[Dict] = [
    {
        "name": "2025/2026",
        "start_date": date(2025, 9, 1),
        "end_date": date(2026, 6, 30),
        "is_active": True,
        "semesters": [
            {"semester_number": 1, "name": "Autumn", "start_date": date(2025, 9, 1), "end_date": date(2026, 1, 31)},
            {"semester_number": 2, "name": "Spring", "start_date": date(2026, 2, 1), "end_date": date(2026, 6, 30)},
        ],
        "breaks": [
            {"name": "Winter break", "start_date": date(2025, 12, 22), "end_date": date(2026, 1, 5),
             "break_type": BreakType.VACATION},
            {"name": "Independence Day", "start_date": date(2026, 3, 25), "end_date": date(2026, 3, 25),
             "break_type": BreakType.HOLIDAY},
        ],
    }
]


def activate_year(session: Session, year: AcademicYear) -> None:
    """Make ``year`` the only active academic year."""
    session.query(AcademicYear).filter(AcademicYear.id != year.id).update({"is_active": False})
    year.is_active = True


def seed_academic_years(session: Session) -> List[AcademicYear]:
    years: List[AcademicYear] = []
    for fixture in ACADEMIC_YEAR_FIXTURES:
        year, _ = get_or_create(
            session,
            AcademicYear,
            name=fixture["name"],
            defaults={"start_date": fixture["start_date"], "end_date": fixture["end_date"]},
        )
        year.start_date = fixture["start_date"]
        year.end_date = fixture["end_date"]

        for semester in fixture["semesters"]:
            row, _ = get_or_create(
                session,
                Semester,
                academic_year_id=year.id,
                semester_number=semester["semester_number"],
                defaults={k: v for k, v in semester.items() if k != "semester_number"},
            )
            row.name = semester["name"]
            row.start_date = semester["start_date"]
            row.end_date = semester["end_date"]

        for brk in fixture["breaks"]:
            get_or_create(
                session,
                TeachingBreak,
                academic_year_id=year.id,
                name=brk["name"],
                defaults={k: v for k, v in brk.items() if k != "name"},
            )

        if fixture["is_active"]:
            activate_year(session, year)
        years.append(year)

    session.commit()
    return years


def seed_resources(session: Session) -> Dict[str, list]:
    teachers = [
        get_or_create(session, Teacher, first_name=first, last_name=last)[0]
        for first, last in [("Terry", "Teacher"), ("Olga", "Ivanova")]
    ]
    classrooms = [
        get_or_create(session, Classroom, name=name, defaults={"capacity": capacity})[0]
        for name, capacity in [("Room 101", 8), ("Room 102", 12)]
    ]
    students = [
        get_or_create(session, Student, first_name=first, last_name=last)[0]
        for first, last in [("Kai", "Nguyen"), ("Mia", "Singh"), ("Noah", "Smith")]
    ]
    session.commit()
    return {"teachers": teachers, "classrooms": classrooms, "students": students}


def seed_classes(session: Session, year: AcademicYear, resources: Dict[str, list]) -> List[TutoringClass]:
    teachers, classrooms, students = resources["teachers"], resources["classrooms"], resources["students"]
    fixtures = [
        {"name": "English B1", "teacher": teachers[0], "classroom": classrooms[0], "students": students[:2],
         "slots": [(0, time(10, 0), time(11, 0), None)]},
        {"name": "Maths Prep", "teacher": teachers[1], "classroom": classrooms[1], "students": students[1:],
         "slots": [(2, time(16, 0), time(17, 30), None), (4, time(16, 0), time(17, 0), year.semesters[0].id)]},
    ]

    classes: List[TutoringClass] = []
    for fixture in fixtures:
        tutoring_class, _ = get_or_create(
            session,
            TutoringClass,
            name=fixture["name"],
            academic_year_id=year.id,
            defaults={"teacher_id": fixture["teacher"].id, "classroom_id": fixture["classroom"].id},
        )
        for student in fixture["students"]:
            get_or_create(session, Enrollment, class_id=tutoring_class.id, student_id=student.id)
        for day_of_week, start, end, semester_id in fixture["slots"]:
            get_or_create(
                session,
                ScheduleSlot,
                class_id=tutoring_class.id,
                day_of_week=day_of_week,
                start_time=start,
                end_time=end,
                semester_id=semester_id,
            )
        classes.append(tutoring_class)

    session.commit()
    return classes


def seed_all(session: Session) -> Dict[str, object]:
    years = seed_academic_years(session)
    resources = seed_resources(session)
    classes = seed_classes(session, years[0], resources)
    return {"years": years, "classes": classes, **resources}
