"""Decoding of Coinbase Exchange level2 websocket frames.

Each text frame becomes one of ``Snapshot``, ``IncrementalUpdate`` or
``FeedError``; frames the book has no use for (subscriptions, heartbeat,
ticker) decode to ``None``. A frame that is not JSON or lacks the fields its
type requires raises ``FeedDecodeError``. Individual l2update changes are
passed through unparsed so the book can reject them one at a time.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any, Union

from l2book.errors import FeedDecodeError
from l2book.orderbook import IncrementalUpdate, LevelChange, Snapshot


@dataclass(frozen=True)
class FeedError:
    message: str
    reason: str = ""


FeedMessage = Union[Snapshot, IncrementalUpdate, FeedError]


def decode_message(text: str | bytes) -> FeedMessage | None:
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise FeedDecodeError(f"frame is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise FeedDecodeError(f"frame is not a JSON object: {type(payload).__name__}")

    msg_type = payload.get("type")
    if msg_type == "snapshot":
        return _decode_snapshot(payload)
    if msg_type == "l2update":
        return _decode_update(payload)
    if msg_type == "error":
        return FeedError(message=str(payload.get("message", "")), reason=str(payload.get("reason", "")))
    return None


def _decode_snapshot(payload: dict[str, Any]) -> Snapshot:
    # A side missing from the frame is an empty side, not an error.
    return Snapshot(
        asks=_decode_levels(payload.get("asks", []), "asks"),
        bids=_decode_levels(payload.get("bids", []), "bids"),
    )


def _decode_levels(raw_levels: Any, field_name: str) -> dict[str, str]:
    if not isinstance(raw_levels, list):
        raise FeedDecodeError(f"snapshot {field_name} is not a list")
    levels: dict[str, str] = {}
    for raw in raw_levels:
        if not isinstance(raw, list) or len(raw) < 2 or not isinstance(raw[0], (str, int, float)):
            raise FeedDecodeError(f"snapshot {field_name} level is not [price, size]: {raw!r}")
        levels[raw[0]] = raw[1]
    return levels


def _decode_update(payload: dict[str, Any]) -> IncrementalUpdate:
    raw_changes = payload.get("changes")
    if not isinstance(raw_changes, list):
        raise FeedDecodeError("l2update has no changes list")
    changes = []
    for raw in raw_changes:
        if not isinstance(raw, list) or len(raw) != 3:
            raise FeedDecodeError(f"l2update change is not [side, price, size]: {raw!r}")
        changes.append(LevelChange(*raw))
    return IncrementalUpdate(changes=tuple(changes))
