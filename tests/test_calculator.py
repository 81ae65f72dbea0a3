# tests/test_calculator.py

import pytest
from fragboard.calculator import MetricsCalculator


class TestMetricsCalculator:
    """Test suite for metrics calculator."""

    @pytest.fixture
    def calculator(self):
        """Create calculator instance."""
        return MetricsCalculator()

    @pytest.fixture
    def sample_record(self):
        """Season record as stored in the database."""
        return {
            'stat_id': 1,
            'player_id': 1,
            'season_id': 1,
            'matches': 10,
            'kills': 150,
            'deaths': 80,
            'assists': 45,
            'damage': 25000,
        }

    def test_calculate_all_returns_dict(self, calculator, sample_record):
        """Test that calculate_all returns every derived metric."""
        result = calculator.calculate_all(sample_record)

        for key in ('kd', 'damage_per_match', 'kills_per_match', 'assists_per_match', 'score'):
            assert key in result
        assert result['_defaulted_fields'] == []

    def test_kd(self, calculator, sample_record):
        result = calculator.calculate_all(sample_record)
        assert result['kd'] == 150 / 80

    def test_kd_without_deaths_equals_kills(self, calculator):
        assert calculator.calc_kd(6, 0) == 6.0
        assert calculator.calc_kd(0, 0) == 0.0

    def test_kd_is_not_rounded(self, calculator):
        assert calculator.calc_kd(10, 3) == 10 / 3

    def test_damage_per_match(self, calculator, sample_record):
        result = calculator.calculate_all(sample_record)
        assert result['damage_per_match'] == 2500.0

    def test_damage_per_match_zero_matches(self, calculator):
        assert calculator.calc_damage_per_match(5000, 0) == 0.0

    def test_per_match_rates(self, calculator, sample_record):
        result = calculator.calculate_all(sample_record)
        assert result['kills_per_match'] == 15.0
        assert result['assists_per_match'] == 4.5

    def test_score(self, calculator, sample_record):
        # 300 (kd) + 125 (kpm) + 67.5 (apm) + 100 (log10 of 10 matches)
        result = calculator.calculate_all(sample_record)
        assert result['score'] == pytest.approx(592.5)

    def test_score_caps_each_component(self, calculator):
        assert calculator.calc_score(5.0, 40.0, 20.0, 100) == pytest.approx(1000.0)

    def test_score_none_below_minimum_matches(self, calculator):
        assert calculator.calc_score(2.0, 10.0, 3.0, 2) is None
        assert calculator.calc_score(2.0, 10.0, 3.0, 3) is not None

    def test_score_rounded_to_one_decimal(self, calculator):
        score = calculator.calc_score(1.234, 7.77, 2.22, 7)
        assert score == round(score, 1)

    def test_missing_and_invalid_counters_default_to_zero(self, calculator):
        record = {'stat_id': 9, 'matches': None, 'kills': 'abc', 'deaths': -4, 'assists': 2}
        result = calculator.calculate_all(record)

        assert result['matches'] == 0
        assert result['kills'] == 0
        assert result['deaths'] == 0
        assert result['damage'] == 0
        assert set(result['_defaulted_fields']) == {'kills', 'deaths'}

    def test_invalid_counters_are_logged(self, calculator, caplog):
        with caplog.at_level('WARNING'):
            calculator.calculate_all({'stat_id': 3, 'kills': 'x'})
        assert 'invalid counters' in caplog.text

    def test_numeric_strings_are_accepted(self, calculator):
        result = calculator.calculate_all({'matches': '4', 'kills': '8', 'deaths': '2'})
        assert result['kd'] == 4.0
        assert result['_defaulted_fields'] == []
