# fragboard/ranking.py

from typing import Dict, List, Any, Iterable, Optional
import logging

from fragboard.calculator import MetricsCalculator
from fragboard.tiers import TierClassifier
from fragboard.thresholds import (
    UNKNOWN_NICK,
    DEFAULT_SORT_KEY,
    DEFAULT_SORT_DIR,
    MIN_TIER_MATCHES,
)

LOGGER = logging.getLogger(__name__)


class RankingEngine:
    """Season ranking built from stat records and the player directory."""

    SORT_KEYS = (
        'kd', 'kills', 'deaths', 'assists', 'damage', 'matches',
        'damage_per_match', 'kills_per_match', 'assists_per_match',
        'score', 'nick',
    )
    SORT_DIRS = ('asc', 'desc')

    def __init__(self, calculator: MetricsCalculator = None, classifier: TierClassifier = None):
        self.calculator = calculator or MetricsCalculator()
        self.classifier = classifier or TierClassifier()

    def compute_ranking(
        self,
        stats: Iterable[Dict[str, Any]],
        players: Iterable[Dict[str, Any]],
        season_id: Any,
        sort_key: str = DEFAULT_SORT_KEY,
        sort_dir: str = DEFAULT_SORT_DIR,
    ) -> List[Dict[str, Any]]:
        """
        Build the ranking for one season.

        Args:
            stats: All stat records (any season)
            players: Player directory
            season_id: Season to rank
            sort_key: RankingRow column to order by
            sort_dir: 'asc' or 'desc'

        Returns:
            New list of RankingRow dicts; inputs are left untouched
        """
        self._validate_sort(sort_key, sort_dir)
        nicks = self._nick_directory(players)

        rows = []
        for stat in stats:
            if stat.get('season_id') != season_id:
                continue
            rows.append(self.build_row(stat, nicks))

        ranked = self.sort_rows(rows, sort_key, sort_dir)
        for position, row in enumerate(ranked, 1):
            row['position'] = position
        return ranked

    def build_row(self, stat: Dict[str, Any], nicks: Dict[Any, str]) -> Dict[str, Any]:
        """Decorate one stat record with nick and derived metrics."""
        row = dict(stat)
        metrics = self.calculator.calculate_all(stat)
        row.update({k: v for k, v in metrics.items() if not k.startswith('_')})

        player_id = stat.get('player_id')
        nick = nicks.get(player_id)
        if nick is None:
            LOGGER.warning(
                "Stat %s references missing player %s; showing '%s'.",
                stat.get('stat_id', '?'),
                player_id,
                UNKNOWN_NICK,
            )
            nick = UNKNOWN_NICK
        row['nick'] = nick
        row['tier'] = self.classifier.classify(row['score'], row['kd'])
        row['kd_held'] = self.classifier.is_kd_held(row['score'], row['kd'])
        return row

    def sort_rows(self, rows: List[Dict[str, Any]], sort_key: str = DEFAULT_SORT_KEY,
                  sort_dir: str = DEFAULT_SORT_DIR) -> List[Dict[str, Any]]:
        """Stable sort; rows without a value for the key go last either way."""
        self._validate_sort(sort_key, sort_dir)

        with_value = [r for r in rows if r.get(sort_key) is not None]
        without_value = [r for r in rows if r.get(sort_key) is None]

        if sort_key == 'nick':
            key = lambda r: str(r['nick']).lower()
        else:
            key = lambda r: r[sort_key]

        ordered = sorted(with_value, key=key, reverse=(sort_dir == 'desc'))
        return ordered + without_value

    def qualified_rows(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Rows eligible for the tier list (enough matches played)."""
        return [r for r in rows if (r.get('matches') or 0) >= MIN_TIER_MATCHES]

    def build_player_pool(
        self,
        stats: Iterable[Dict[str, Any]],
        players: Iterable[Dict[str, Any]],
        season_id: Any,
    ) -> List[Dict[str, Any]]:
        """One row per player for a season, zeroed when they have no record.

        This is the selection pool for team balancing, ordered by nick.
        """
        by_player = {
            s.get('player_id'): s for s in stats if s.get('season_id') == season_id
        }

        pool = []
        for player in players:
            player_id = player['player_id']
            stat = by_player.get(player_id) or {
                'stat_id': None,
                'player_id': player_id,
                'season_id': season_id,
            }
            pool.append(self.build_row(stat, {player_id: player['nick']}))

        return self.sort_rows(pool, 'nick', 'asc')

    def season_totals(self, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Summed counters for a ranking, with the same K/D rule as rows."""
        totals = {key: 0 for key in MetricsCalculator.COUNTER_KEYS}
        for row in rows:
            for key in totals:
                totals[key] += row.get(key) or 0

        totals['players'] = len(rows)
        totals['kd'] = self.calculator.calc_kd(totals['kills'], totals['deaths'])
        totals['damage_per_match'] = self.calculator.calc_damage_per_match(
            totals['damage'], totals['matches']
        )
        return totals

    @staticmethod
    def _nick_directory(players: Iterable[Dict[str, Any]]) -> Dict[Any, str]:
        return {p['player_id']: p['nick'] for p in players}

    def _validate_sort(self, sort_key: str, sort_dir: str) -> None:
        if sort_key not in self.SORT_KEYS:
            raise ValueError(
                f"Unknown sort key '{sort_key}'. Use one of: {', '.join(self.SORT_KEYS)}"
            )
        if sort_dir not in self.SORT_DIRS:
            raise ValueError(f"Sort direction must be 'asc' or 'desc', got '{sort_dir}'")


def compute_ranking(
    stats: Iterable[Dict[str, Any]],
    players: Iterable[Dict[str, Any]],
    season_id: Any,
    sort_key: str = DEFAULT_SORT_KEY,
    sort_dir: str = DEFAULT_SORT_DIR,
    engine: Optional[RankingEngine] = None,
) -> List[Dict[str, Any]]:
    """Module-level shortcut for RankingEngine.compute_ranking."""
    return (engine or RankingEngine()).compute_ranking(stats, players, season_id, sort_key, sort_dir)
