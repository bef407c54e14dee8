"""Error taxonomy shared by the core subsystems."""

from enum import Enum


class ErrorCategory(str, Enum):
    """How an error should be reported to a caller."""

    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    INTERNAL = "internal"


class JumpError(Exception):
    """Base class for every error raised by the core."""

    category: ErrorCategory = ErrorCategory.INTERNAL
