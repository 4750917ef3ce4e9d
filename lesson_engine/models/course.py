from datetime import datetime

from lesson_engine.extensions import db


class Teacher(db.Model):
    __tablename__ = "teachers"
    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Classroom(db.Model):
    __tablename__ = "classrooms"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    capacity = db.Column(db.Integer)


class Student(db.Model):
    __tablename__ = "students"
    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)


class TutoringClass(db.Model):
    __tablename__ = "classes"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    academic_year_id = db.Column(db.Integer, db.ForeignKey("academic_years.id"), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey("teachers.id"))
    classroom_id = db.Column(db.Integer, db.ForeignKey("classrooms.id"))
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    disabled_at = db.Column(db.DateTime)
    enabled_at = db.Column(db.DateTime)

    academic_year = db.relationship("AcademicYear")
    teacher = db.relationship("Teacher")
    classroom = db.relationship("Classroom")

    __table_args__ = (
        db.Index("ix_class_year", "academic_year_id"),
        db.Index("ix_class_teacher", "teacher_id"),
        db.Index("ix_class_classroom", "classroom_id"),
    )

    def __repr__(self):
        return f"<TutoringClass id={self.id} name={self.name!r} active={self.is_active}>"


class Enrollment(db.Model):
    __tablename__ = "enrollments"
    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey("classes.id"), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("students.id"), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    enrolled_at = db.Column(db.DateTime, default=datetime.utcnow)
    deactivated_at = db.Column(db.DateTime)

    tutoring_class = db.relationship("TutoringClass", backref=db.backref("enrollments", cascade="all, delete-orphan"))
    student = db.relationship("Student", backref="enrollments")

    __table_args__ = (
        db.UniqueConstraint("class_id", "student_id", name="uq_enrollment_class_student"),
        db.Index("ix_enrollment_student", "student_id"),
    )
