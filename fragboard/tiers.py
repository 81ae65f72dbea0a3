"""
fragboard/tiers.py
==================
Maps a composite score and K/D to a named skill tier.

Lookup walks TIER_TABLE from the lowest tier up and takes the first tier whose
cutoff is >= the score, so a score sitting exactly on a cutoff stays in the
lower tier. Scores past the last cutoff land in the top tier. Each tier also
carries a K/D floor: when the player's K/D is under it, the result steps down
until a floor is met. A high score with a weak K/D is held below the tier the
score alone would reach.
"""

from __future__ import annotations
import math
from typing import Any, Optional

from fragboard.thresholds import TIER_TABLE


class TierClassifier:
    def __init__(self, table: tuple = TIER_TABLE):
        if not table:
            raise ValueError("Tier table must have at least one tier")
        cutoffs = [row[0] for row in table]
        if cutoffs != sorted(cutoffs) or len(set(cutoffs)) != len(cutoffs):
            raise ValueError("Tier cutoffs must be strictly ascending")
        self.table = table

    def _tier(self, index: int) -> dict:
        cutoff, min_kd, label, indicator = self.table[index]
        return {
            "rank": index + 1,
            "label": label,
            "indicator": indicator,
            "cutoff": cutoff if math.isfinite(cutoff) else None,
            "min_kd": min_kd,
        }

    def score_index(self, score: float) -> int:
        """Index of the tier the score alone reaches."""
        for index, (cutoff, _min_kd, _label, _indicator) in enumerate(self.table):
            if cutoff >= score:
                return index
        return len(self.table) - 1

    def classify(self, score: Optional[float], kd: float) -> Optional[dict]:
        if score is None:
            return None

        index = self.score_index(score)
        while index > 0 and self.table[index][1] > kd:
            index -= 1
        return self._tier(index)

    def label(self, score: Optional[float], kd: float) -> Optional[str]:
        tier = self.classify(score, kd)
        return tier["label"] if tier else None

    def is_kd_held(self, score: Optional[float], kd: float) -> bool:
        """True when the K/D floor kept the player below their score tier."""
        if score is None:
            return False
        return self.classify(score, kd)["rank"] - 1 < self.score_index(score)

    def labels(self) -> list[str]:
        return [row[2] for row in self.table]

    def distribution(self, rows: list[dict[str, Any]]) -> dict[str, int]:
        """Count qualified rows per tier label, lowest tier first."""
        counts = {label: 0 for label in self.labels()}
        for row in rows:
            tier = row.get("tier")
            if tier:
                counts[tier["label"]] += 1
        return counts
