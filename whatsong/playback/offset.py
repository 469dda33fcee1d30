from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional, Union

from whatsong.schemas import Event

SHORT_LINK_BASE = "https://youtu.be"


@dataclass(frozen=True)
class Playing:
    offset_seconds: int


@dataclass(frozen=True)
class Finished:
    pass


Playback = Union[Playing, Finished]


def now_ms() -> int:
    return int(time.time() * 1000)


def resolve_offset(event: Event, now: Optional[int] = None) -> Playback:
    """
    Where in the playback window [reported_at, reported_at + duration) `now` falls.

    Outside the window (finished, or clock skew putting now before the start) -> Finished.
    Inside -> Playing(whole seconds elapsed). Playing(0) is a real "from the start" answer.
    """
    now = now_ms() if now is None else int(now)
    elapsed = now - int(event.reported_at)
    window_ms = int(event.duration_seconds) * 1000

    if elapsed < 0 or elapsed >= window_ms:
        return Finished()
    return Playing(offset_seconds=elapsed // 1000)


def deep_link(event: Event, playback: Optional[Playback] = None) -> str:
    link = f"{SHORT_LINK_BASE}/{event.source_id}"
    if isinstance(playback, Playing) and playback.offset_seconds > 0:
        link += f"?t={playback.offset_seconds}"
    return link
