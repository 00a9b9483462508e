"""Custom exception classes for the progression engine.

Only structurally invalid requests raise.  Per-student and per-subject data
problems are reported as warnings on the computed results instead, so FastAPI
exception handlers only ever see batch-level failures.
"""


class InvalidPercentageError(Exception):
    """Raised when a percentage is not a finite number in [0, 100].

    Args:
        value: The rejected value.
    """

    def __init__(self, value: object) -> None:
        super().__init__(f"Percentage must be a finite number in [0, 100], got {value!r}")
        self.value: object = value


class MixedScoreGroupError(Exception):
    """Raised when scores handed to one aggregation belong to different keys.

    Args:
        message: Human-readable description of the mismatch.
        field: The key (``student_id``, ``subject_id`` or ``term_id``) that differed.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field: str | None = field


class InvalidRankingRequestError(Exception):
    """Raised when a ranking request mixes terms or names an unknown scope.

    Args:
        message: Description of what made the request invalid.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)


class EmptyRosterError(Exception):
    """Raised when a ranking or report request has no enrolled students.

    Args:
        scope: The scope that was requested (``class``, ``level``, ``school``).
        group: The class id or school level, when the scope has one.
    """

    def __init__(self, scope: str, group: str | None = None) -> None:
        target = f"{scope} '{group}'" if group else scope
        super().__init__(f"No enrolled students to rank for {target}")
        self.scope: str = scope
        self.group: str | None = group


class TermNotFoundError(Exception):
    """Raised when a requested term is not part of the loaded data.

    Args:
        term_id: The term identifier that was not found.
    """

    def __init__(self, term_id: str) -> None:
        super().__init__(f"Term with id={term_id} not found")
        self.term_id: str = term_id


class StudentNotFoundError(Exception):
    """Raised when a student is not on the roster for the requested term.

    Args:
        student_id: The student identifier that was not found.
        term_id: The term the lookup was made for.
    """

    def __init__(self, student_id: str, term_id: str | None = None) -> None:
        suffix = f" for term {term_id}" if term_id else ""
        super().__init__(f"Student with id={student_id} not enrolled{suffix}")
        self.student_id: str = student_id
        self.term_id: str | None = term_id


class PromotionCriteriaNotFoundError(Exception):
    """Raised when no promotion criteria exist for an academic year.

    Args:
        academic_year: The academic year that has no criteria record.
        school_level: The school level the lookup was made for, if any.
    """

    def __init__(self, academic_year: str, school_level: str | None = None) -> None:
        level = f" (school level {school_level})" if school_level else ""
        super().__init__(
            f"No promotion criteria configured for academic year {academic_year}{level}"
        )
        self.academic_year: str = academic_year
        self.school_level: str | None = school_level


class DatabaseConnectionError(Exception):
    """Raised when a connection to PostgreSQL cannot be established.

    Args:
        message: Detail from the underlying driver exception.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
