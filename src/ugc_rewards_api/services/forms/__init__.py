"""Third-party form intake."""

from .typeform import (
    FORM_RESPONSE_EVENT,
    FormAnswers,
    FormIntakeOutcome,
    FormIntakeService,
    FormPayloadError,
    extract_answers,
)

__all__ = [
    "FORM_RESPONSE_EVENT",
    "FormAnswers",
    "FormIntakeOutcome",
    "FormIntakeService",
    "FormPayloadError",
    "extract_answers",
]
