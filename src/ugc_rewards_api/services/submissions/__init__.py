"""Submission lifecycle management."""

from .lifecycle import (
    MAX_PAGE_SIZE,
    SubmissionConflictError,
    SubmissionError,
    SubmissionLifecycle,
    SubmissionNotFoundError,
    SubmissionPage,
    SubmissionValidationError,
)

__all__ = [
    "MAX_PAGE_SIZE",
    "SubmissionConflictError",
    "SubmissionError",
    "SubmissionLifecycle",
    "SubmissionNotFoundError",
    "SubmissionPage",
    "SubmissionValidationError",
]
