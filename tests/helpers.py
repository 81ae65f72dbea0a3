# tests/helpers.py

import os
from typing import Dict, Tuple
from fragboard.database import Database

TEST_DB_PATH = 'data/test_fragboard.db'


def create_test_db() -> Database:
    """Create a fresh test database."""
    remove_test_db()
    return Database(db_path=TEST_DB_PATH)


def remove_test_db(db: Database = None):
    """Close the test database and delete its files."""
    if db is not None:
        db.close()
    path = Database._resolve_db_path(TEST_DB_PATH)
    for suffix in ('', '-wal', '-shm'):
        if os.path.exists(path + suffix):
            os.remove(path + suffix)


def make_stat(player_id, season_id, matches=0, kills=0, deaths=0, assists=0, damage=0, stat_id=None) -> Dict:
    """Build an in-memory stat record."""
    return {
        'stat_id': stat_id,
        'player_id': player_id,
        'season_id': season_id,
        'matches': matches,
        'kills': kills,
        'deaths': deaths,
        'assists': assists,
        'damage': damage,
    }


def add_sample_league(db: Database) -> Tuple[int, Dict[str, int]]:
    """Insert one season with ten players at known K/D values.

    Returns (season_id, {nick: player_id}). K/D runs 3.0 down to 0.5.
    """
    season_id = db.add_season('Test Season')
    kds = [
        ('Ace', 30, 10), ('Bolt', 28, 10), ('Crow', 25, 10), ('Dusk', 20, 10), ('Echo', 18, 10),
        ('Flux', 15, 10), ('Grit', 12, 10), ('Hawk', 10, 10), ('Iris', 8, 10), ('Jinx', 5, 10),
    ]
    players = {}
    for nick, kills, deaths in kds:
        player_id = db.add_player(nick)
        players[nick] = player_id
        db.submit_stats(player_id, season_id, {
            'matches': 4,
            'kills': kills,
            'deaths': deaths,
            'assists': 6,
            'damage': kills * 150,
        })
    return season_id, players
