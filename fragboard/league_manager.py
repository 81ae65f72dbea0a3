# fragboard/league_manager.py

from typing import Dict, List, Optional, Any
from fragboard.database import Database
from fragboard.ranking import RankingEngine
from fragboard.team_balancer import TeamBalancer
from fragboard.thresholds import DEFAULT_SORT_KEY, DEFAULT_SORT_DIR, DEFAULT_TEAM_SIZE


class LeagueManager:
    """CRUD operations for players, seasons and stat submissions."""

    def __init__(self, db: Database):
        self.db = db
        self.engine = RankingEngine()

    @staticmethod
    def _clean_name(value: Optional[str], what: str) -> str:
        name = (value or '').strip()
        if not name:
            raise ValueError(f"{what} is required")
        return name

    # --- Player CRUD ---

    def create_player(self, nick: str) -> int:
        """Create a player. Returns player_id."""
        return self.db.add_player(self._clean_name(nick, "Nick"))

    def get_player(self, player_id: int) -> Optional[Dict]:
        """Get a player by ID."""
        return self.db.get_player(player_id)

    def get_all_players(self) -> List[Dict]:
        """Get all players."""
        return self.db.list_players()

    def rename_player(self, player_id: int, nick: str) -> None:
        """Change a player's nick."""
        if not self.db.get_player(player_id):
            raise ValueError(f"Player {player_id} not found")
        self.db.rename_player(player_id, self._clean_name(nick, "Nick"))

    def delete_player(self, player_id: int) -> int:
        """Delete a player and every stat record they own."""
        if not self.db.get_player(player_id):
            raise ValueError(f"Player {player_id} not found")
        return self.db.delete_player(player_id)

    # --- Season CRUD ---

    def create_season(self, name: str) -> int:
        """Create a season. Returns season_id."""
        return self.db.add_season(self._clean_name(name, "Season name"))

    def get_season(self, season_id: int) -> Optional[Dict]:
        """Get a season by ID."""
        return self.db.get_season(season_id)

    def get_all_seasons(self) -> List[Dict]:
        """Get all seasons, newest first."""
        return self.db.list_seasons()

    def get_default_season(self) -> Optional[Dict]:
        """Newest season, or None if there are none."""
        return self.db.get_latest_season()

    def rename_season(self, season_id: int, name: str) -> None:
        """Change a season's name."""
        if not self.db.get_season(season_id):
            raise ValueError(f"Season {season_id} not found")
        self.db.rename_season(season_id, self._clean_name(name, "Season name"))

    def delete_season(self, season_id: int) -> int:
        """Delete a season and every stat record in it."""
        if not self.db.get_season(season_id):
            raise ValueError(f"Season {season_id} not found")
        return self.db.delete_season(season_id)

    # --- Stats ---

    def record_stats(self, player_id: int, season_id: int, stats: Dict[str, Any]) -> Dict:
        """Validate and accumulate a stats submission. Returns the stored record."""
        if not self.db.get_player(player_id):
            raise ValueError(f"Player {player_id} not found")
        if not self.db.get_season(season_id):
            raise ValueError(f"Season {season_id} not found")

        cleaned = {}
        for key in Database.STAT_COUNTERS:
            raw = stats.get(key, 0)
            if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
                raise ValueError(f"'{key}' must be a whole number, got {raw!r}")
            try:
                value = int(raw)
            except (TypeError, ValueError):
                raise ValueError(f"'{key}' must be a whole number, got {raw!r}")
            if value < 0:
                raise ValueError(f"'{key}' cannot be negative")
            cleaned[key] = value

        if not any(cleaned.values()):
            raise ValueError("Submission is empty; enter at least one non-zero stat")

        self.db.submit_stats(player_id, season_id, cleaned)
        return self.db.get_stat(player_id, season_id)

    # --- Derived views ---

    def get_ranking(self, season_id: int, sort_key: str = DEFAULT_SORT_KEY,
                    sort_dir: str = DEFAULT_SORT_DIR) -> List[Dict]:
        """Ranking for a season from a fresh snapshot of the store."""
        return self.engine.compute_ranking(
            self.db.list_stats(season_id),
            self.db.list_players(),
            season_id,
            sort_key,
            sort_dir,
        )

    def get_tier_list(self, season_id: int) -> List[Dict]:
        """Qualified rows ordered by score."""
        ranking = self.get_ranking(season_id, sort_key='score', sort_dir='desc')
        return self.engine.qualified_rows(ranking)

    def get_player_pool(self, season_id: int) -> List[Dict]:
        """Every player with their season numbers, for team selection."""
        return self.engine.build_player_pool(
            self.db.list_stats(season_id),
            self.db.list_players(),
            season_id,
        )

    def balance_teams(self, season_id: int, player_ids: List[int], team_count: int,
                      team_size: int = DEFAULT_TEAM_SIZE) -> List[Dict]:
        """Balance the selected players using their season K/D."""
        if not self.db.get_season(season_id):
            raise ValueError(f"Season {season_id} not found")
        return TeamBalancer(team_size).balance(self.get_player_pool(season_id), player_ids, team_count)
