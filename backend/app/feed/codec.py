"""JSON wire framing for feed envelopes."""

from __future__ import annotations

import json

from pydantic import TypeAdapter, ValidationError

from .models import EVENT_TYPES, Envelope

_ENVELOPE_ADAPTER: TypeAdapter[Envelope] = TypeAdapter(Envelope)


class EnvelopeError(ValueError):
    """Base class for envelope framing errors."""


class EnvelopeDecodeError(EnvelopeError):
    """Raised when a message is not valid JSON or does not match its schema."""


class UnknownEventTypeError(EnvelopeDecodeError):
    """Raised when a well-formed message carries a ``type`` this build does not know."""

    def __init__(self, event_type: str) -> None:
        super().__init__(f"unknown event type: {event_type!r}")
        self.event_type = event_type


def encode(envelope: Envelope) -> str:
    """Serialize an envelope to a UTF-8 JSON text frame."""
    return envelope.model_dump_json(by_alias=True)


def decode(raw: str | bytes) -> Envelope:
    """Parse and validate one wire message.

    Raises UnknownEventTypeError for unrecognised tags and EnvelopeDecodeError
    for anything else that fails to parse or validate.
    """
    try:
        document = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise EnvelopeDecodeError(f"invalid JSON: {e}") from e

    if not isinstance(document, dict):
        raise EnvelopeDecodeError("envelope must be a JSON object")

    event_type = document.get("type")
    if not isinstance(event_type, str):
        raise EnvelopeDecodeError("envelope has no string 'type' field")
    if event_type not in EVENT_TYPES:
        raise UnknownEventTypeError(event_type)

    try:
        return _ENVELOPE_ADAPTER.validate_python(document)
    except ValidationError as e:
        raise EnvelopeDecodeError(
            f"invalid {event_type} envelope: {e.error_count()} validation error(s)"
        ) from e
