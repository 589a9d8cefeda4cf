"""
Submission validation

Turns a raw field mapping into a typed submission, or into the list of
field-level failures the endpoint reports back. Nothing is dispatched for a
rejected submission.
"""

import logging
from typing import Any, Mapping, Optional, TypeVar

from pydantic import ValidationError

from .schemas import FieldError, Submission

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Submission)


class SubmissionValidationError(Exception):
    """Raised when a submission fails one or more field rules"""

    def __init__(self, errors: list[FieldError], message: str = "Validation failed"):
        super().__init__(message)
        self.errors = errors
        self.message = message


def _field_errors(model: type[Submission], exc: ValidationError) -> list[FieldError]:
    errors: list[FieldError] = []
    seen: set[str] = set()
    for error in exc.errors():
        loc = error.get("loc") or ()
        field = str(loc[0]) if loc else "body"
        # One entry per field, in declaration order of the failures
        if field in seen:
            continue
        seen.add(field)
        errors.append(FieldError(msg=model.field_messages.get(field, "Invalid value"), path=field))
    return errors


def check_submission(
    model: type[S], data: Mapping[str, Any]
) -> tuple[Optional[S], list[FieldError]]:
    """
    Validate ``data`` against ``model``.

    Returns:
        (submission, []) when every rule passes, (None, errors) otherwise
    """
    try:
        return model.model_validate(dict(data)), []
    except ValidationError as exc:
        return None, _field_errors(model, exc)


def parse_submission(model: type[S], data: Mapping[str, Any]) -> S:
    """Validate ``data`` or raise SubmissionValidationError"""
    submission, errors = check_submission(model, data)
    if errors:
        logger.warning(
            f"⚠️ {model.__name__} rejected: {', '.join(e.path for e in errors)}"
        )
        raise SubmissionValidationError(errors, model.rejection_message)
    return submission
