"""Validation of raw estimation form submissions."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from schemas.estimation import FORM_FIELDS, EstimationRequest


INVALID_FORM_MESSAGE = "Please fill out all required fields."

REQUIRED_FIELD_MESSAGES: dict[str, str] = {
    "projectType": "Project type is required.",
    "projectSize": "Project size is required.",
    "projectLocation": "Project location is required.",
    "specificRequirements": "Specific requirements are required.",
}


@dataclass(slots=True, frozen=True)
class ValidationFailure:
    """A rejected submission: fixed message, echoed input, per-field issues."""

    message: str
    fields: dict[str, str]
    issues: list[str]


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def validate_estimation_form(
    raw: Mapping[str, Any],
) -> EstimationRequest | ValidationFailure:
    """Validate the four required fields of a form submission.

    Every failing field is reported, in form order, not just the first.
    Whitespace-only values count as empty. Non-string scalars (a JSON number
    for the size, say) are accepted as their text form.
    """
    candidate = {name: _as_text(raw[name]) for name in FORM_FIELDS if name in raw}
    try:
        return EstimationRequest.model_validate(candidate)
    except ValidationError as exc:
        failing: list[str] = []
        for error in exc.errors():
            field = str(error["loc"][0]) if error["loc"] else ""
            if field in REQUIRED_FIELD_MESSAGES and field not in failing:
                failing.append(field)
        issues = [
            REQUIRED_FIELD_MESSAGES[name] for name in FORM_FIELDS if name in failing
        ]
        return ValidationFailure(
            message=INVALID_FORM_MESSAGE,
            fields={name: _as_text(raw.get(name)) for name in FORM_FIELDS},
            issues=issues,
        )
