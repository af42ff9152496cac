# assessment_service.py
from typing import Any, Iterator, Mapping

from talentflow.schemas.assessment import (
    Assessment,
    FileUploadQuestion,
    LongTextQuestion,
    MultiChoiceQuestion,
    NumericQuestion,
    Question,
    ShortTextQuestion,
    SingleChoiceQuestion,
)


REQUIRED_MESSAGE = "This question is required"


def iter_questions(assessment: Assessment) -> Iterator[Question]:
    for section in assessment.sections:
        yield from section.questions


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set)):
        return len(value) == 0
    return False


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _check_text(value: Any, max_length: int) -> str | None:
    if not isinstance(value, str):
        return "Expected text"
    if len(value) > max_length:
        return f"Must be at most {max_length} characters"
    return None


def validate_response(question: Question, value: Any) -> str | None:
    """Return an error message for ``value`` or None when it is acceptable."""

    if _is_blank(value):
        return REQUIRED_MESSAGE if question.required else None

    if isinstance(question, SingleChoiceQuestion):
        if not isinstance(value, str) or value not in question.options:
            return "Choose one of the listed options"
        return None

    if isinstance(question, MultiChoiceQuestion):
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
            return "Expected a list of options"
        unknown = [v for v in value if v not in question.options]
        if unknown:
            return f"Unknown options: {', '.join(unknown)}"
        if len(set(value)) != len(value):
            return "Options may only be chosen once"
        return None

    if isinstance(question, (ShortTextQuestion, LongTextQuestion)):
        return _check_text(value, question.validation.max_length)

    if isinstance(question, NumericQuestion):
        number = _as_number(value)
        if number is None:
            return "Expected a number"
        bounds = question.validation
        if bounds.min is not None and number < bounds.min:
            return f"Must be at least {bounds.min:g}"
        if bounds.max is not None and number > bounds.max:
            return f"Must be at most {bounds.max:g}"
        return None

    if isinstance(question, FileUploadQuestion):
        # The response is the uploaded file's name.
        return _check_text(value, question.validation.max_length)

    raise TypeError(f"unhandled question type: {type(question).__name__}")


def validate_responses(assessment: Assessment, responses: Mapping[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    for question in iter_questions(assessment):
        message = validate_response(question, responses.get(question.id))
        if message:
            errors[question.id] = message
    return errors
