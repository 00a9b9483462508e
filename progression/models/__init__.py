"""SQLAlchemy ORM models for the tables the engine reads."""

from progression.models.assignment_score import AssignmentScore
from progression.models.attendance_summary import AttendanceSummary
from progression.models.base import Base
from progression.models.grade_setting import GradeSetting
from progression.models.promotion_criteria import PromotionCriteria
from progression.models.school_class import SchoolClass
from progression.models.student_enrollment import StudentEnrollment
from progression.models.term import Term

__all__ = [
    "Base",
    "Term",
    "SchoolClass",
    "StudentEnrollment",
    "AssignmentScore",
    "GradeSetting",
    "PromotionCriteria",
    "AttendanceSummary",
]
