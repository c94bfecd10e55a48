# Path: puzzle_svc/wire.py
"""
Purpose: Frame codec for the WebSocket protocol plus the Delivery envelope.
Usage: from puzzle_svc.wire import Delivery, decode_frame, encode_frame
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Union

from pydantic import BaseModel

from .schemas import InboundMessage, inbound_adapter


class BadFrame(ValueError):
    pass


@dataclass(frozen=True)
class Delivery:
    """One outbound message and the connection ids it goes to."""
    recipients: FrozenSet[str]
    message: BaseModel


def to(recipients: Union[str, Iterable[str]], message: BaseModel) -> Delivery:
    if isinstance(recipients, str):
        recipients = (recipients,)
    return Delivery(frozenset(recipients), message)


def encode_frame(message: BaseModel) -> str:
    return message.model_dump_json()


def decode_frame(text: Union[str, bytes]) -> InboundMessage:
    """JSON text -> validated inbound message. Raises BadFrame or pydantic.ValidationError."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise BadFrame(f"frame is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise BadFrame("frame must be a JSON object")
    return inbound_adapter.validate_python(data)
