"""Merge a batch of draws into a user's ownership records."""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Mapping, Sequence

from ..models import DrawHistoryEntry, DrawResult, OwnershipRecord, ReconcileResult


def reconcile(
    user_id: str,
    draw_results: Sequence[DrawResult],
    existing_ownership: Mapping[str, OwnershipRecord],
    *,
    obtained_at: datetime,
    redemption_id: str | None = None,
) -> ReconcileResult:
    """Compute new and updated ownership records plus the history rows for a batch.

    Duplicates within the batch are counted, so a collectible drawn twice
    gains two obtains. History keeps one row per draw.
    """

    counts = Counter(result.collectible.id for result in draw_results)

    new_records = []
    updated_records = []
    for collectible_id, drawn in counts.items():
        existing = existing_ownership.get(collectible_id)
        if existing is None:
            new_records.append(
                OwnershipRecord(
                    user_id=user_id,
                    collectible_id=collectible_id,
                    first_obtained_at=obtained_at,
                    last_obtained_at=obtained_at,
                    obtain_count=drawn,
                )
            )
        else:
            updated_records.append(
                existing.model_copy(
                    update={
                        "obtain_count": existing.obtain_count + drawn,
                        "last_obtained_at": obtained_at,
                    }
                )
            )

    history_entries = [
        DrawHistoryEntry(
            user_id=user_id,
            collectible_id=result.collectible.id,
            drawn_at=obtained_at,
            redemption_id=redemption_id,
        )
        for result in draw_results
    ]

    return ReconcileResult(
        new_records=new_records,
        updated_records=updated_records,
        history_entries=history_entries,
    )
