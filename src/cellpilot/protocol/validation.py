"""Boundary validation for actions arriving from the resolver or a remote backend."""

import logging
from typing import Any, Union

from pydantic import ValidationError

from ..errors import ActionValidationError
from .models import Action

logger = logging.getLogger(__name__)


def _describe(error: ValidationError) -> list[str]:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()) if part != "__root__")
        message = item.get("msg", "invalid value")
        # pydantic prefixes messages raised from our own validators
        message = message.removeprefix("Value error, ")
        messages.append(f"{location}: {message}" if location else message)
    return messages


def validate_action(action: Union[Action, dict[str, Any]]) -> Action:
    """
    Validate one action, returning it as a typed ``Action``.

    Accepts an already-built ``Action`` (returned unchanged) or a wire dict.
    Unknown kinds and malformed payloads are rejected, never coerced.

    Raises:
        ActionValidationError: If the action cannot be accepted.
    """
    if isinstance(action, Action):
        return action
    if not isinstance(action, dict):
        raise ActionValidationError(
            f"Action must be an object, got {type(action).__name__}"
        )

    try:
        return Action.model_validate(action)
    except ValidationError as e:
        errors = _describe(e)
        logger.warning(f"Rejected action {action.get('kind', action.get('type'))!r}: {errors}")
        raise ActionValidationError("; ".join(errors), errors) from e


def validate_actions(actions: list[Any]) -> tuple[list[Action], list[str]]:
    """Validate a batch, returning the accepted actions and one error per rejected action."""
    accepted: list[Action] = []
    errors: list[str] = []
    for index, raw in enumerate(actions):
        try:
            accepted.append(validate_action(raw))
        except ActionValidationError as e:
            errors.append(f"Action {index + 1}: {e}")
    return accepted, errors
