"""Response envelope and per-action execution outcomes."""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .models import Action


class ErrorCategory(str, Enum):
    """Where an action failure came from."""

    VALIDATION = "validation"
    COLLABORATOR = "collaborator"
    HANDLER = "handler"


class ErrorInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: ErrorCategory
    message: str


class ExecutionOutcome(BaseModel):
    """Result of dispatching one action. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    index: int
    action: Union[Action, dict[str, Any]]
    ok: bool
    error: Optional[ErrorInfo] = None
    effect: Optional[dict[str, Any]] = None

    @property
    def kind_label(self) -> str:
        if isinstance(self.action, Action):
            return self.action.kind.value
        raw = self.action.get("kind", self.action.get("type"))
        return str(raw) if raw is not None else "unknown"

    @property
    def error_text(self) -> Optional[str]:
        if self.error is None:
            return None
        return f"Action {self.index + 1} ({self.kind_label}): {self.error.message}"

    def to_wire(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "index": self.index,
            "action": self.action.to_wire() if isinstance(self.action, Action) else self.action,
            "ok": self.ok,
        }
        if self.error is not None:
            data["error"] = self.error.model_dump(mode="json")
        if self.effect is not None:
            data["effect"] = self.effect
        return data


class ResponseMetadata(BaseModel):
    """Success flag plus errors; extra keys are carried through."""

    model_config = ConfigDict(extra="allow")

    success: bool
    errors: Optional[list[str]] = None

    @model_validator(mode="after")
    def _errors_match_success(self) -> "ResponseMetadata":
        if self.success and self.errors:
            raise ValueError("errors must be empty when success is true")
        if not self.success and not self.errors:
            raise ValueError("errors are required when success is false")
        return self


class ResponseEnvelope(BaseModel):
    """Caller-facing result: a message, optional body, the actions and success metadata."""

    message: str
    body: Optional[str] = None
    actions: list[Action] = Field(default_factory=list)
    metadata: Optional[ResponseMetadata] = None

    @classmethod
    def succeeded(
        cls, message: str, body: Optional[str] = None, actions: Optional[list[Action]] = None, **extra: Any
    ) -> "ResponseEnvelope":
        return cls(
            message=message,
            body=body,
            actions=actions or [],
            metadata=ResponseMetadata(success=True, **extra),
        )

    @classmethod
    def failed(
        cls,
        message: str,
        errors: list[str],
        body: Optional[str] = None,
        actions: Optional[list[Action]] = None,
        **extra: Any,
    ) -> "ResponseEnvelope":
        return cls(
            message=message,
            body=body,
            actions=actions or [],
            metadata=ResponseMetadata(success=False, errors=errors or [message], **extra),
        )

    @classmethod
    def from_outcomes(
        cls, message: str, outcomes: list[ExecutionOutcome], body: Optional[str] = None
    ) -> "ResponseEnvelope":
        """Aggregate outcomes: success only if every outcome is ok."""
        actions = [o.action for o in outcomes if isinstance(o.action, Action)]
        errors = [o.error_text for o in outcomes if not o.ok]
        extra = {"outcomes": [o.to_wire() for o in outcomes]}
        if errors:
            return cls.failed(message, errors, body=body, actions=actions, **extra)
        return cls.succeeded(message, body=body, actions=actions, **extra)

    @property
    def success(self) -> bool:
        return self.metadata is None or self.metadata.success

    def to_wire(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "message": self.message,
            "actions": [a.to_wire() for a in self.actions],
        }
        if self.body is not None:
            data["body"] = self.body
        if self.metadata is not None:
            data["metadata"] = self.metadata.model_dump(mode="json", exclude_none=True)
        return data
