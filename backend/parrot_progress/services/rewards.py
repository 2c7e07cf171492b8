"""Reward curve for newly created diary entries."""

from __future__ import annotations

from typing import Sequence

from ..config import Settings, get_settings
from ..models import Reward

MAX_DIARY_LINES = 3


def count_diary_chars(lines: Sequence[str]) -> int:
    """Sum the stripped lengths of a diary entry's lines."""

    if len(lines) > MAX_DIARY_LINES:
        raise ValueError(f"a diary entry has at most {MAX_DIARY_LINES} lines, got {len(lines)}")
    return sum(len(line.strip()) for line in lines)


def compute_reward(total_chars: int, settings: Settings | None = None) -> Reward:
    """Return the XP and tickets earned by ``total_chars`` characters of diary text.

    Called once when an entry is created. Edits never earn rewards.
    """

    if total_chars < 0:
        raise ValueError(f"total_chars must be >= 0, got {total_chars}")
    settings = settings or get_settings()

    xp = min(total_chars * settings.xp_per_char, settings.max_xp_per_entry)
    tickets = min(total_chars // settings.chars_per_ticket, settings.max_tickets_per_entry)
    return Reward(xp=xp, tickets=tickets)
