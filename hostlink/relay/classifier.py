"""Split inbound relay frames into control envelopes and opaque payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

import orjson

from .connection import Frame, Role


@dataclass(frozen=True)
class Control:
    """A frame that decoded to a JSON object."""

    raw: Frame
    fields: Dict[str, Any] = field(default_factory=dict)
    role: Optional[Role] = None
    destination: Optional[Role] = None


@dataclass(frozen=True)
class Opaque:
    """Anything else; forwarded byte for byte."""

    raw: Frame


InboundUnit = Union[Control, Opaque]


def decode_envelope(raw: Frame) -> Optional[Dict[str, Any]]:
    """Return the decoded envelope, or None when *raw* is not a JSON object."""

    try:
        decoded = orjson.loads(raw)
    except orjson.JSONDecodeError:
        return None
    if not isinstance(decoded, dict):
        return None
    return decoded


def classify(raw: Frame) -> InboundUnit:
    envelope = decode_envelope(raw)
    if envelope is None:
        return Opaque(raw=raw)
    return Control(
        raw=raw,
        fields=envelope,
        role=Role.parse(envelope.get("role")),
        destination=Role.parse(envelope.get("to")),
    )


def encode_envelope(fields: Dict[str, Any]) -> str:
    return orjson.dumps(fields).decode("utf-8")


__all__ = ["Control", "Opaque", "InboundUnit", "classify", "decode_envelope", "encode_envelope"]
