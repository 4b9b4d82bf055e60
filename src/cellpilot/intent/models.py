"""Resolution results produced by the intent resolver."""

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..protocol import Action, ResponseEnvelope


class LocalResponse(BaseModel):
    """Answered without producing actions (reads, or a failure to build any)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["local"] = "local"
    message: str
    body: Optional[str] = None
    success: bool = True
    errors: list[str] = Field(default_factory=list)
    data: Optional[dict[str, Any]] = None

    def to_envelope(self) -> ResponseEnvelope:
        if self.success:
            return ResponseEnvelope.succeeded(self.message, body=self.body)
        return ResponseEnvelope.failed(self.message, self.errors or [self.message], body=self.body)


class ActionBatch(BaseModel):
    """Actions to execute plus the message to show once they succeed."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["actions"] = "actions"
    message: str
    actions: list[Action]


class Unrecognized(BaseModel):
    """No rule matched the text."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["unrecognized"] = "unrecognized"
    text: str
    message: str

    def to_envelope(self) -> ResponseEnvelope:
        return ResponseEnvelope.failed(
            self.message, [f"No recognized command in: {self.text!r}"]
        )


Resolution = Union[LocalResponse, ActionBatch, Unrecognized]
