"""Pydantic v2 schemas for the input records consumed by the engine.

Every input record is frozen: once a snapshot has been assembled from these
records nothing downstream can edit the configuration it was built from.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GradeSetting(BaseModel):
    """One row of the school's grading scheme.

    Attributes:
        grade: Letter grade label (e.g. 'A+').
        range: Inclusive score range as configured, e.g. '80-100'.
        remarks: Remark printed next to the grade on report cards.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    grade: str = Field(..., description="Letter grade label")
    range: str = Field(..., description="Inclusive score range, e.g. '80-100'")
    remarks: str = Field(default="", description="Remark for this grade")


class AssignmentScore(BaseModel):
    """A single graded assessment for one student in one subject and term."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, allow_inf_nan=False)

    student_id: str
    subject_id: str
    class_id: str
    term_id: str
    assignment_type_id: str = Field(default="", description="Assessment type (classwork, exam, ...)")
    score: float
    max_score: float


class PromotionCriteria(BaseModel):
    """Promotion thresholds for an academic year, optionally per school level.

    Attributes:
        academic_year: Year the record applies to (e.g. '2023/2024').
        school_level: School level the record is scoped to; ``None`` applies
            to every level of the year.
        min_average: Minimum overall average (%) to be promoted.
        max_failed_subjects: Largest failed-subject count still promoted.
        min_attendance_percent: Minimum attendance (%) to be promoted.
        fail_threshold: Subject percentage below which a subject is failed.
        compulsory_subjects: Subjects that must be graded and passed.
        elective_subjects: Pool of elective subjects.
        min_electives_to_pass: How many electives from the pool must be passed.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, allow_inf_nan=False)

    academic_year: str | None = None
    school_level: str | None = None
    min_average: float = Field(..., ge=0, le=100)
    max_failed_subjects: int = Field(..., ge=0)
    min_attendance_percent: float = Field(..., ge=0, le=100)
    fail_threshold: float = Field(..., ge=0, le=100)
    compulsory_subjects: tuple[str, ...] = ()
    elective_subjects: tuple[str, ...] = ()
    min_electives_to_pass: int = Field(default=0, ge=0)


class RosterEntry(BaseModel):
    """A student's enrolment in a class, in admission order."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    student_id: str
    class_id: str
    enrollment_order: int = Field(default=0, description="Admission order; lower enrolled earlier")


class SchoolClass(BaseModel):
    """A class (form) and the school level it belongs to."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    class_id: str
    name: str = ""
    school_level: str | None = None
    is_terminal: bool = False


class Term(BaseModel):
    """A grading period within an academic year."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    term_id: str
    academic_year: str
    name: str = ""
    sequence: int = 1


class AttendanceRecord(BaseModel):
    """A student's attendance percentage for one term."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, allow_inf_nan=False)

    student_id: str
    term_id: str
    attendance_percent: float = Field(..., ge=0, le=100)
