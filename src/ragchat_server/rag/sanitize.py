"""
Input sanitization for chat text.

Every caller-supplied text field is truncated and stripped of control
characters before it reaches the embedder, the prompt or the completion
provider.
"""

from __future__ import annotations

import re
from typing import Any, List, Mapping, Optional

from ..api.models import ChatTurn


MAX_INPUT_CHARS = 1000
MAX_HISTORY_TURNS = 10

# Tab, LF and CR are kept
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")


def sanitize(text: str) -> str:
    """
    Truncate to MAX_INPUT_CHARS, then strip control characters.

    Idempotent, and the result never exceeds MAX_INPUT_CHARS.
    """
    return CONTROL_CHARS.sub("", text[:MAX_INPUT_CHARS])


def _coerce_turn(raw: Any) -> Optional[ChatTurn]:
    if isinstance(raw, ChatTurn):
        role, text = raw.role, raw.text
    elif isinstance(raw, Mapping):
        role, text = raw.get("role"), raw.get("text")
    else:
        return None

    if role not in ("user", "assistant"):
        return None
    if not isinstance(text, str) or not text:
        return None

    return ChatTurn(role=role, text=sanitize(text))


def sanitize_history(history: Any) -> List[ChatTurn]:
    """
    Keep the most recent MAX_HISTORY_TURNS entries and drop malformed turns.

    Anything that is not a list yields an empty history.
    """
    if not isinstance(history, (list, tuple)):
        return []

    turns = (_coerce_turn(raw) for raw in history[-MAX_HISTORY_TURNS:])
    return [turn for turn in turns if turn is not None]
