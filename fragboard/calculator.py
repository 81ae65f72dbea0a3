# fragboard/calculator.py

from typing import Dict, Any, List, Optional, Tuple
import logging
import math

from fragboard.thresholds import (
    MIN_TIER_MATCHES,
    SCORE_KD_CAP,
    SCORE_KPM_CAP,
    SCORE_APM_CAP,
    SCORE_KD_WEIGHT,
    SCORE_KPM_WEIGHT,
    SCORE_APM_WEIGHT,
    SCORE_MATCHES_WEIGHT,
)

LOGGER = logging.getLogger(__name__)


class MetricsCalculator:
    """Calculate all derived metrics from a raw stat record."""

    COUNTER_KEYS = ('matches', 'kills', 'deaths', 'assists', 'damage')

    @staticmethod
    def _safe_get(record: Dict[str, Any], key: str, default: Any = 0) -> Any:
        """Safely get a value from a record, handling None."""
        value = record.get(key, default)
        return value if value is not None else default

    @staticmethod
    def _safe_div(numerator: float, denominator: float) -> float:
        """Safely divide and return 0.0 on zero denominator."""
        return numerator / denominator if denominator > 0 else 0.0

    @staticmethod
    def _to_int(value: Any) -> Optional[int]:
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    def normalize_counters(self, record: Dict[str, Any]) -> Tuple[Dict[str, int], List[str]]:
        """Coerce every counter to a non-negative int.

        Returns the cleaned counters and the names of fields that had to be
        defaulted to 0 (missing, non-numeric or negative).
        """
        counters = {}
        defaulted = []
        for key in self.COUNTER_KEYS:
            value = self._to_int(self._safe_get(record, key))
            if value is None or value < 0:
                defaulted.append(key)
                value = 0
            counters[key] = value

        if defaulted:
            LOGGER.warning(
                "Stat %s had invalid counters (%s); defaulting them to 0.",
                record.get('stat_id', '?'),
                ', '.join(defaulted),
            )
        return counters, defaulted

    def calculate_all(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Calculate all derived metrics.

        Args:
            record: Stat row as dictionary

        Returns:
            Dictionary of computed metrics
        """
        counters, defaulted = self.normalize_counters(record)
        matches = counters['matches']
        kills = counters['kills']
        deaths = counters['deaths']
        assists = counters['assists']
        damage = counters['damage']

        metrics: Dict[str, Any] = dict(counters)
        metrics['kd'] = self.calc_kd(kills, deaths)
        metrics['damage_per_match'] = self.calc_damage_per_match(damage, matches)
        metrics['kills_per_match'] = self._safe_div(kills, matches)
        metrics['assists_per_match'] = self._safe_div(assists, matches)
        metrics['score'] = self.calc_score(
            metrics['kd'],
            metrics['kills_per_match'],
            metrics['assists_per_match'],
            matches,
        )
        metrics['_defaulted_fields'] = defaulted
        return metrics

    # Individual calculation methods
    def calc_kd(self, kills: int, deaths: int) -> float:
        """Kills over deaths; a deathless player's ratio is their kill count."""
        if deaths == 0:
            return float(kills)
        return kills / deaths

    def calc_damage_per_match(self, damage: int, matches: int) -> float:
        return self._safe_div(damage, matches)

    def calc_score(self, kd: float, kpm: float, apm: float, matches: int) -> Optional[float]:
        """Composite ranking score, or None below the minimum match count."""
        if matches < MIN_TIER_MATCHES:
            return None

        capped_kd = min(kd, SCORE_KD_CAP) / SCORE_KD_CAP
        capped_kpm = min(kpm, SCORE_KPM_CAP) / SCORE_KPM_CAP
        capped_apm = min(apm, SCORE_APM_CAP) / SCORE_APM_CAP

        score = (
            (capped_kd * SCORE_KD_WEIGHT) +
            (capped_kpm * SCORE_KPM_WEIGHT) +
            (capped_apm * SCORE_APM_WEIGHT) +
            (math.log10(matches) * SCORE_MATCHES_WEIGHT)
        )
        return round(score, 1)
