"""
Message Adapter

Converts the heterogeneous "UI messages" sent by the chat widget
(role + typed parts) into the minimal internal representation handed to the
language model (role + flat text content).

Message parts are a tagged union over the kinds the widget is known to send:

- ``text``                         -> TextPart
- ``tool-call`` / ``tool-<name>`` /
  ``dynamic-tool``                 -> ToolCallPart
- ``tool-result``                  -> ToolResultPart
- ``step-start`` / ``step-finish`` -> StepMarkerPart
- anything else                    -> UnknownPart (kept, then ignored)

Only text parts contribute to the internal message content. Malformed
messages are dropped silently because the widget interleaves control
entries that are expected to be ignored.
"""

from __future__ import annotations

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    ValidationError,
)

Role = Literal["user", "assistant", "system"]

ALLOWED_ROLES = ("user", "assistant", "system")


# ---------------------------------------------------------------------
# Message Parts (tagged union)
# ---------------------------------------------------------------------

class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str

    model_config = ConfigDict(extra="ignore", frozen=True)


class ToolCallPart(BaseModel):
    type: str
    tool_call_id: Optional[str] = Field(default=None, alias="toolCallId")
    tool_name: Optional[str] = Field(default=None, alias="toolName")

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class ToolResultPart(BaseModel):
    type: Literal["tool-result"]
    tool_call_id: Optional[str] = Field(default=None, alias="toolCallId")

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class StepMarkerPart(BaseModel):
    type: Literal["step-start", "step-finish"]

    model_config = ConfigDict(extra="ignore", frozen=True)


class UnknownPart(BaseModel):
    type: Optional[str] = None

    model_config = ConfigDict(extra="ignore", frozen=True)


def _part_kind(value: Any) -> str:
    if isinstance(value, dict):
        part_type = value.get("type")
    else:
        part_type = getattr(value, "type", None)

    if part_type == "text":
        return "text"
    if part_type == "tool-result":
        return "tool-result"
    if part_type in ("step-start", "step-finish"):
        return "step"
    if isinstance(part_type, str) and (
        part_type == "dynamic-tool" or part_type.startswith("tool-")
    ):
        return "tool-call"
    return "unknown"


MessagePart = Annotated[
    Union[
        Annotated[TextPart, Tag("text")],
        Annotated[ToolCallPart, Tag("tool-call")],
        Annotated[ToolResultPart, Tag("tool-result")],
        Annotated[StepMarkerPart, Tag("step")],
        Annotated[UnknownPart, Tag("unknown")],
    ],
    Discriminator(_part_kind),
]

_PART_ADAPTER: TypeAdapter[Any] = TypeAdapter(MessagePart)


def parse_part(raw: Any) -> BaseModel:
    """
    Parse one raw part into its variant. Never raises: a part whose shape
    does not fit its declared kind degrades to UnknownPart.
    """
    if isinstance(raw, str):
        return TextPart(text=raw)

    try:
        return _PART_ADAPTER.validate_python(raw)
    except ValidationError:
        part_type = raw.get("type") if isinstance(raw, dict) else None
        return UnknownPart(type=part_type if isinstance(part_type, str) else None)


# ---------------------------------------------------------------------
# Internal Message
# ---------------------------------------------------------------------

class ModelMessage(BaseModel):
    """
    A message as handed to the language model. Content is never empty.
    """
    role: Role
    content: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid", frozen=True)


# ---------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------

def is_valid_ui_message(msg: Any) -> bool:
    """
    A UI message needs a string role from the allowed set and a list of parts.
    """
    if not isinstance(msg, dict):
        return False

    role = msg.get("role")
    parts = msg.get("parts")

    return (
        isinstance(role, str)
        and role in ALLOWED_ROLES
        and isinstance(parts, (list, tuple))
    )


def extract_text(parts: List[Any]) -> str:
    """Concatenate the text of all text parts, in order."""
    return "".join(
        part.text
        for part in (parse_part(raw) for raw in parts)
        if isinstance(part, TextPart)
    )


class UIMessageAdapter:
    """
    Pure, stateless conversion of UI messages into ModelMessage objects.
    Output order follows input order exactly.
    """

    def to_model_messages(self, ui_messages: Any) -> List[ModelMessage]:
        if not isinstance(ui_messages, (list, tuple)):
            return []

        converted: List[ModelMessage] = []

        for msg in ui_messages:
            if not is_valid_ui_message(msg):
                continue

            content = extract_text(msg["parts"])

            # Some providers reject empty message content outright
            if not content:
                continue

            converted.append(ModelMessage(role=msg["role"], content=content))

        return converted


def create_message_adapter() -> UIMessageAdapter:
    return UIMessageAdapter()


def to_model_messages(ui_messages: Any) -> List[ModelMessage]:
    """Module-level shortcut for UIMessageAdapter().to_model_messages()."""
    return UIMessageAdapter().to_model_messages(ui_messages)
