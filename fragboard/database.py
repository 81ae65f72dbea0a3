# fragboard/database.py

import sqlite3
import os
import logging
from pathlib import Path
from typing import Dict, List, Optional, Any
import time

LOGGER = logging.getLogger(__name__)

DEFAULT_DB = 'data/fragboard.db'

DEMO_PLAYERS = ('Ghost', 'Shadow', 'Viper', 'Blaze', 'Cypher')
DEMO_SEASONS = ('Season 1 - Summer 2024', 'Season 2 - Autumn 2024')
# (nick, matches, kills, deaths, assists, damage) for the first demo season
DEMO_STATS = (
    ('Ghost', 10, 150, 80, 45, 25000),
    ('Shadow', 10, 120, 100, 60, 22000),
    ('Viper', 10, 90, 110, 80, 18000),
    ('Blaze', 10, 140, 95, 30, 23500),
    ('Cypher', 10, 110, 105, 55, 21000),
)


def resolve_db_path(arg_db: Optional[str] = None) -> str:
    """Pick the database path from argument, FRAGBOARD_DB_PATH, then default."""
    env_db = os.getenv("FRAGBOARD_DB_PATH", "").strip()
    return arg_db or env_db or DEFAULT_DB


class Database:
    """Entity store for players, seasons and per-season stat records."""

    STAT_COUNTERS = ('matches', 'kills', 'deaths', 'assists', 'damage')

    def __init__(self, db_path: str = DEFAULT_DB):
        self.db_path = self._resolve_db_path(db_path)
        self.conn = None
        self.init_database()

    @staticmethod
    def _resolve_db_path(db_path: str) -> str:
        """Return an absolute database path anchored to project root when relative."""
        if db_path == ':memory:':
            return db_path
        path = Path(db_path)
        if path.is_absolute():
            return str(path)

        project_root = Path(__file__).resolve().parents[1]
        return str(project_root / path)

    def init_database(self):
        """Create tables if they don't exist."""
        try:
            db_dir = os.path.dirname(self.db_path)
            if db_dir:
                try:
                    os.makedirs(db_dir, exist_ok=True)
                except OSError as e:
                    raise RuntimeError(f"Failed to create database directory '{db_dir}': {e}")

            self.conn = sqlite3.connect(self.db_path, timeout=30.0, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row  # Access columns by name
            self.conn.execute("PRAGMA busy_timeout = 30000")
            self.conn.execute("PRAGMA foreign_keys = ON")
            self._set_wal_mode_best_effort()

            cursor = self.conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS players (
                    player_id   INTEGER PRIMARY KEY AUTOINCREMENT,
                    nick        TEXT NOT NULL,
                    created_at  TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS seasons (
                    season_id   INTEGER PRIMARY KEY AUTOINCREMENT,
                    name        TEXT NOT NULL,
                    created_at  TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            # One record per player per season; submissions accumulate into it
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS stats (
                    stat_id     INTEGER PRIMARY KEY AUTOINCREMENT,
                    player_id   INTEGER NOT NULL,
                    season_id   INTEGER NOT NULL,
                    matches     INTEGER NOT NULL DEFAULT 0,
                    kills       INTEGER NOT NULL DEFAULT 0,
                    deaths      INTEGER NOT NULL DEFAULT 0,
                    assists     INTEGER NOT NULL DEFAULT 0,
                    damage      INTEGER NOT NULL DEFAULT 0,
                    updated_at  TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (player_id) REFERENCES players(player_id),
                    FOREIGN KEY (season_id) REFERENCES seasons(season_id),
                    UNIQUE(player_id, season_id)
                )
            """)

            self._commit_with_retry(context="init schema commit")
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to initialize database at '{self.db_path}': {e}")

    def _commit_with_retry(self, retries: int = 8, delay_seconds: float = 0.25, context: str = "commit") -> None:
        """
        Retry commit on transient SQLITE_BUSY/locked errors.
        """
        last_error = None
        for attempt in range(retries):
            try:
                self.conn.commit()
                return
            except sqlite3.OperationalError as e:
                last_error = e
                if "locked" not in str(e).lower() and "busy" not in str(e).lower():
                    raise
                if attempt == retries - 1:
                    break
                time.sleep(delay_seconds)
        raise RuntimeError(
            f"Failed to {context}: database remained locked after {retries} attempts ({last_error})"
        )

    def _set_wal_mode_best_effort(self, retries: int = 5, delay_seconds: float = 0.2) -> None:
        """Try to enable WAL without failing startup if the DB is temporarily locked."""
        for attempt in range(retries):
            try:
                self.conn.execute("PRAGMA journal_mode = WAL")
                return
            except sqlite3.OperationalError as e:
                msg = str(e).lower()
                if "locked" not in msg and "busy" not in msg:
                    raise
                if attempt == retries - 1:
                    LOGGER.warning("Could not enable WAL mode (database locked); continuing. (%s)", e)
                    return
                time.sleep(delay_seconds)

    # --- Players ---

    def add_player(self, nick: str) -> int:
        """Insert a player and return its player_id."""
        try:
            cursor = self.conn.cursor()
            cursor.execute("INSERT INTO players (nick) VALUES (?)", (nick,))
            self._commit_with_retry(context=f"add player '{nick}'")
            return cursor.lastrowid
        except sqlite3.Error as e:
            self.conn.rollback()
            raise RuntimeError(f"Failed to add player '{nick}': {e}")

    def get_player(self, player_id: int) -> Optional[Dict]:
        """Get a player by ID."""
        try:
            cursor = self.conn.cursor()
            cursor.execute("SELECT * FROM players WHERE player_id = ?", (player_id,))
            row = cursor.fetchone()
            return dict(row) if row else None
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to get player {player_id}: {e}")

    def list_players(self) -> List[Dict]:
        """Get all players ordered by nick."""
        try:
            cursor = self.conn.cursor()
            cursor.execute("SELECT * FROM players ORDER BY nick COLLATE NOCASE, player_id")
            return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to get players list: {e}")

    def rename_player(self, player_id: int, nick: str) -> None:
        """Change a player's nick."""
        try:
            cursor = self.conn.cursor()
            cursor.execute("UPDATE players SET nick = ? WHERE player_id = ?", (nick, player_id))
            if cursor.rowcount == 0:
                raise RuntimeError(f"Player {player_id} not found")
            self._commit_with_retry(context=f"rename player {player_id}")
        except sqlite3.Error as e:
            self.conn.rollback()
            raise RuntimeError(f"Failed to rename player {player_id}: {e}")

    def delete_player(self, player_id: int) -> int:
        """Delete a player and all their stat records. Returns stat rows removed."""
        try:
            cursor = self.conn.cursor()

            cursor.execute("SELECT 1 FROM players WHERE player_id = ?", (player_id,))
            if not cursor.fetchone():
                raise RuntimeError(f"Player {player_id} not found")

            cursor.execute("DELETE FROM stats WHERE player_id = ?", (player_id,))
            removed = cursor.rowcount
            cursor.execute("DELETE FROM players WHERE player_id = ?", (player_id,))

            self._commit_with_retry(context=f"delete player {player_id}")
            return removed
        except sqlite3.Error as e:
            self.conn.rollback()
            raise RuntimeError(f"Failed to delete player {player_id}: {e}")

    # --- Seasons ---

    def add_season(self, name: str) -> int:
        """Insert a season and return its season_id."""
        try:
            cursor = self.conn.cursor()
            cursor.execute("INSERT INTO seasons (name) VALUES (?)", (name,))
            self._commit_with_retry(context=f"add season '{name}'")
            return cursor.lastrowid
        except sqlite3.Error as e:
            self.conn.rollback()
            raise RuntimeError(f"Failed to add season '{name}': {e}")

    def get_season(self, season_id: int) -> Optional[Dict]:
        """Get a season by ID."""
        try:
            cursor = self.conn.cursor()
            cursor.execute("SELECT * FROM seasons WHERE season_id = ?", (season_id,))
            row = cursor.fetchone()
            return dict(row) if row else None
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to get season {season_id}: {e}")

    def list_seasons(self) -> List[Dict]:
        """Get all seasons, newest first."""
        try:
            cursor = self.conn.cursor()
            cursor.execute("SELECT * FROM seasons ORDER BY created_at DESC, season_id DESC")
            return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to get seasons list: {e}")

    def get_latest_season(self) -> Optional[Dict]:
        """Most recently created season (the default selection)."""
        seasons = self.list_seasons()
        return seasons[0] if seasons else None

    def rename_season(self, season_id: int, name: str) -> None:
        """Change a season's display name."""
        try:
            cursor = self.conn.cursor()
            cursor.execute("UPDATE seasons SET name = ? WHERE season_id = ?", (name, season_id))
            if cursor.rowcount == 0:
                raise RuntimeError(f"Season {season_id} not found")
            self._commit_with_retry(context=f"rename season {season_id}")
        except sqlite3.Error as e:
            self.conn.rollback()
            raise RuntimeError(f"Failed to rename season {season_id}: {e}")

    def delete_season(self, season_id: int) -> int:
        """Delete a season and all its stat records. Returns stat rows removed."""
        try:
            cursor = self.conn.cursor()

            cursor.execute("SELECT 1 FROM seasons WHERE season_id = ?", (season_id,))
            if not cursor.fetchone():
                raise RuntimeError(f"Season {season_id} not found")

            cursor.execute("DELETE FROM stats WHERE season_id = ?", (season_id,))
            removed = cursor.rowcount
            cursor.execute("DELETE FROM seasons WHERE season_id = ?", (season_id,))

            self._commit_with_retry(context=f"delete season {season_id}")
            return removed
        except sqlite3.Error as e:
            self.conn.rollback()
            raise RuntimeError(f"Failed to delete season {season_id}: {e}")

    # --- Stats ---

    def submit_stats(self, player_id: int, season_id: int, stats: Dict[str, int]) -> int:
        """
        Add a stats submission for a player in a season.

        The first submission for the pair creates the record; later ones add
        each counter onto it.

        Args:
            player_id: Player the stats belong to
            season_id: Season the stats belong to
            stats: Counters (matches, kills, deaths, assists, damage); missing keys count as 0

        Returns:
            stat_id of the (created or updated) record
        """
        values = []
        for key in self.STAT_COUNTERS:
            value = stats.get(key, 0)
            if value is None:
                value = 0
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"'{key}' must be a non-negative integer, got {value!r}")
            values.append(value)

        try:
            cursor = self.conn.cursor()
            cursor.execute("""
                INSERT INTO stats (player_id, season_id, matches, kills, deaths, assists, damage)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(player_id, season_id) DO UPDATE SET
                    matches = matches + excluded.matches,
                    kills = kills + excluded.kills,
                    deaths = deaths + excluded.deaths,
                    assists = assists + excluded.assists,
                    damage = damage + excluded.damage,
                    updated_at = CURRENT_TIMESTAMP
            """, (player_id, season_id, *values))

            cursor.execute(
                "SELECT stat_id FROM stats WHERE player_id = ? AND season_id = ?",
                (player_id, season_id),
            )
            stat_id = cursor.fetchone()['stat_id']
            self._commit_with_retry(context="submit stats")
            return stat_id
        except sqlite3.Error as e:
            self.conn.rollback()
            raise RuntimeError(
                f"Failed to submit stats for player {player_id} in season {season_id}: {e}"
            )

    def get_stat(self, player_id: int, season_id: int) -> Optional[Dict]:
        """Get the stat record for a player/season pair."""
        try:
            cursor = self.conn.cursor()
            cursor.execute(
                "SELECT * FROM stats WHERE player_id = ? AND season_id = ?",
                (player_id, season_id),
            )
            row = cursor.fetchone()
            return dict(row) if row else None
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to get stats for player {player_id} in season {season_id}: {e}")

    def list_stats(self, season_id: Optional[int] = None) -> List[Dict]:
        """Get all stat records, optionally for one season only."""
        try:
            cursor = self.conn.cursor()
            if season_id is None:
                cursor.execute("SELECT * FROM stats ORDER BY stat_id")
            else:
                cursor.execute("SELECT * FROM stats WHERE season_id = ? ORDER BY stat_id", (season_id,))
            return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to get stats list: {e}")

    # --- Maintenance ---

    def is_empty(self) -> bool:
        """True when there are no players and no seasons."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT (SELECT COUNT(*) FROM players) + (SELECT COUNT(*) FROM seasons) AS cnt")
        return cursor.fetchone()['cnt'] == 0

    def seed_demo_data(self) -> bool:
        """Load the demo league into an empty database. Returns False if data exists."""
        if not self.is_empty():
            return False

        try:
            cursor = self.conn.cursor()
            player_ids = {}
            for nick in DEMO_PLAYERS:
                cursor.execute("INSERT INTO players (nick) VALUES (?)", (nick,))
                player_ids[nick] = cursor.lastrowid

            season_ids = []
            for name in DEMO_SEASONS:
                cursor.execute("INSERT INTO seasons (name) VALUES (?)", (name,))
                season_ids.append(cursor.lastrowid)

            for nick, matches, kills, deaths, assists, damage in DEMO_STATS:
                cursor.execute("""
                    INSERT INTO stats (player_id, season_id, matches, kills, deaths, assists, damage)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """, (player_ids[nick], season_ids[0], matches, kills, deaths, assists, damage))

            self._commit_with_retry(context="seed demo data")
            return True
        except sqlite3.Error as e:
            self.conn.rollback()
            raise RuntimeError(f"Failed to seed demo data: {e}")

    def clear_database(self) -> None:
        """Remove every stat, season and player."""
        try:
            cursor = self.conn.cursor()
            cursor.execute("DELETE FROM stats")
            cursor.execute("DELETE FROM seasons")
            cursor.execute("DELETE FROM players")
            self._commit_with_retry(context="clear database")
        except sqlite3.Error as e:
            self.conn.rollback()
            raise RuntimeError(f"Failed to clear database: {e}")

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
