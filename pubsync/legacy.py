"""Repair of stored position strings whose group delimiter was lost.

Well-formed legacy data separates entity groups with " | " and span tokens
inside a group with "|":

    gene       = "Brca1 | Tp53"
    gene_pos   = "0;10-15|1;4-9 | 1;30-34"
    gene_count = "2 | 1"

Some rows were written with every token joined by a bare "|", leaving
"0;10-15|1;4-9|1;30-34". The parallel count column still says how many tokens
belong to each entity, so the groups can be rebuilt by consuming that many
tokens per entity.
"""

from __future__ import annotations

from typing import Sequence

from pubsync.config import SyncConfig
from pubsync.logging import setup_logging


def split_groups(raw: str | None, delimiter: str = " | ") -> list[str]:
    """Split a delimited column, trimming elements and dropping empty ones."""
    if raw is None:
        return []
    return [part.strip() for part in raw.split(delimiter) if part.strip()]


def alignment_mismatch(terms: Sequence[str], positions: Sequence[str], counts: Sequence[object]) -> bool:
    """True when the term, position and count arrays disagree in length."""
    return not (len(terms) == len(positions) == len(counts))


class LegacyPositionRepair:
    """Rebuild per-entity position groups from stored strings."""

    def __init__(self, config: SyncConfig | None = None):
        self._config = config or SyncConfig()

    def repair(self, raw_positions: str | None, raw_counts: str | None) -> list[str]:
        """Return one position group per entity.

        Never raises: unparsable counts are skipped and, if nothing can be
        rebuilt, the stored value comes back as a single group.
        """
        primary = self._config.primary_delimiter
        secondary = self._config.secondary_delimiter

        if raw_positions is None or not raw_positions.strip():
            return []

        groups = split_groups(raw_positions, primary)
        if len(groups) > 1:
            return groups

        blob = raw_positions.strip()
        counts = split_groups(raw_counts, primary)
        if not counts:
            return [blob]

        logger = setup_logging()
        tokens = [t.strip() for t in blob.split(secondary) if t.strip()]
        repaired: list[str] = []
        cursor = 0
        for count_token in counts:
            try:
                count = int(count_token)
            except ValueError:
                logger.warning(
                    {
                        "message": f"Skipping non-numeric count '{count_token}' while repairing positions",
                        "count_token": count_token,
                        "raw_counts": raw_counts,
                    },
                    pprint=True,
                )
                continue
            taken = tokens[cursor : cursor + max(count, 0)]
            cursor += len(taken)
            if taken:
                repaired.append(secondary.join(taken))

        if cursor < len(tokens):
            repaired.append(secondary.join(tokens[cursor:]))

        if not repaired:
            return [blob]

        if len(repaired) > 1 or len(counts) > 1:
            logger.debug(
                {
                    "message": f"Reconstructed {len(repaired)} position groups using counts",
                    "groups": repaired,
                    "counts": counts,
                },
                pprint=True,
            )
        return repaired


def repair(raw_positions: str | None, raw_counts: str | None, config: SyncConfig | None = None) -> list[str]:
    return LegacyPositionRepair(config).repair(raw_positions, raw_counts)
