# tests/test_integration.py

import pytest
import os
import sys
import tempfile
from fragboard.database import Database
from fragboard.league_manager import LeagueManager
from fragboard.ranking import RankingEngine
from fragboard.tiers import TierClassifier
from fragboard.insights import build_prompt
from fragboard.ui import TerminalUI


class TestIntegration:
    """Integration tests for full workflow."""

    @pytest.fixture
    def db_path(self):
        fd, path = tempfile.mkstemp(suffix='.db')
        os.close(fd)
        yield path
        for suffix in ('', '-wal', '-shm'):
            if os.path.exists(path + suffix):
                os.remove(path + suffix)

    @pytest.fixture
    def components(self, db_path):
        """Create all components with temporary database."""
        db = Database(db_path)
        db.seed_demo_data()

        yield {
            'db': db,
            'league': LeagueManager(db),
            'engine': RankingEngine(),
            'classifier': TierClassifier(),
        }

        db.close()

    @pytest.fixture
    def demo_season(self, components):
        seasons = components['league'].get_all_seasons()
        return next(s for s in seasons if s['name'].startswith('Season 1'))

    def test_demo_ranking(self, components, demo_season):
        rows = components['league'].get_ranking(demo_season['season_id'])
        assert [r['nick'] for r in rows] == ['Ghost', 'Blaze', 'Shadow', 'Cypher', 'Viper']

    def test_demo_tier_list(self, components, demo_season):
        tier_list = components['league'].get_tier_list(demo_season['season_id'])

        assert len(tier_list) == 5
        assert tier_list[0]['nick'] == 'Ghost'
        assert tier_list[0]['tier']['label'] == 'Distinguished Master Guardian'
        counts = components['classifier'].distribution(tier_list)
        assert sum(counts.values()) == 5

    def test_newest_season_is_empty(self, components):
        league = components['league']
        newest = league.get_default_season()
        assert newest['name'].startswith('Season 2')
        assert league.get_ranking(newest['season_id']) == []

    def test_record_then_rank(self, components, demo_season):
        league = components['league']
        season_id = demo_season['season_id']
        viper = next(p for p in league.get_all_players() if p['nick'] == 'Viper')

        league.record_stats(viper['player_id'], season_id, {'matches': 5, 'kills': 200, 'deaths': 10})
        rows = league.get_ranking(season_id)

        assert rows[0]['nick'] == 'Viper'
        assert rows[0]['kills'] == 290
        assert rows[0]['matches'] == 15

    def test_prompt_follows_ranking_order(self, components, demo_season):
        rows = components['league'].get_ranking(demo_season['season_id'])
        prompt = build_prompt(rows, demo_season['name'])
        assert prompt.index('Ghost: KD 1.88') < prompt.index('Viper: KD 0.82')

    def test_ranking_table_renders(self, components, demo_season, capsys):
        league = components['league']
        rows = league.get_ranking(demo_season['season_id'])
        TerminalUI().show_ranking(rows, demo_season['name'], components['engine'].season_totals(rows))

        out = capsys.readouterr().out
        assert 'RANKING - Season 1' in out
        assert 'Ghost' in out
        assert '5 active this season' in out

    def test_terminal_session(self, db_path, monkeypatch, capsys):
        import main

        answers = iter([
            '10',   # load demo league
            '1',    # view ranking
            '2',    # oldest season (list is newest first)
            '',     # sort by kd
            '',     # descending
            '0',    # exit
        ])
        monkeypatch.setattr('builtins.input', lambda prompt='': next(answers))
        monkeypatch.setattr(sys, 'argv', ['main.py', '--db', db_path])

        main.main()

        out = capsys.readouterr().out
        assert 'Demo league loaded' in out
        assert out.index('Ghost') < out.index('Viper')
        assert 'Goodbye!' in out

    def test_tier_list_shows_held_marker_and_distribution(self, components, capsys):
        engine = components['engine']
        stats = [
            {'player_id': 1, 'season_id': 1, 'matches': 100, 'kills': 50, 'deaths': 100, 'assists': 1000, 'damage': 0},
            {'player_id': 2, 'season_id': 1, 'matches': 10, 'kills': 150, 'deaths': 80, 'assists': 45, 'damage': 0},
        ]
        players = [{'player_id': 1, 'nick': 'Support'}, {'player_id': 2, 'nick': 'Fragger'}]
        rows = engine.qualified_rows(engine.compute_ranking(stats, players, 1, 'score', 'desc'))

        TerminalUI().show_tier_list(rows, 'Cup', engine.classifier.distribution(rows))

        out = capsys.readouterr().out
        assert 'Silver Elite [silver] *' in out
        assert 'held below their score tier by K/D' in out
        assert 'Distinguished Master Guardian' in out
