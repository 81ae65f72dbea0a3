# fragboard/team_balancer.py

from typing import Dict, List, Any, Iterable, Optional
import logging

from fragboard.thresholds import (
    DEFAULT_TEAM_SIZE,
    MIN_TEAM_COUNT,
    MAX_TEAM_COUNT,
    TEAM_NAMES,
)

LOGGER = logging.getLogger(__name__)


class InvalidSelectionSize(ValueError):
    """Selected player count does not fill the requested teams exactly."""

    def __init__(self, selected: int, team_count: int, team_size: int):
        self.selected = selected
        self.team_count = team_count
        self.team_size = team_size
        self.required = team_count * team_size
        super().__init__(
            f"Select exactly {self.required} players for {team_count} teams of "
            f"{team_size} (got {selected})"
        )


class TeamBalancer:
    """Greedy K/D balancing of a selected roster into equal-size teams."""

    def __init__(self, team_size: int = DEFAULT_TEAM_SIZE):
        if team_size < 1:
            raise ValueError("Team size must be at least 1")
        self.team_size = team_size

    def required_players(self, team_count: int) -> int:
        return team_count * self.team_size

    def validate_selection(self, selected_count: int, team_count: int) -> None:
        """Raise before any team is built when the request can't be filled."""
        if not MIN_TEAM_COUNT <= team_count <= MAX_TEAM_COUNT:
            raise ValueError(
                f"Team count must be between {MIN_TEAM_COUNT} and {MAX_TEAM_COUNT}, got {team_count}"
            )
        if selected_count != self.required_players(team_count):
            raise InvalidSelectionSize(selected_count, team_count, self.team_size)

    def select_rows(self, ranking_rows: Iterable[Dict[str, Any]],
                    selected_player_ids: List[Any]) -> List[Dict[str, Any]]:
        """Pick the rows for the selected ids, in ranking_rows order."""
        if len(set(selected_player_ids)) != len(selected_player_ids):
            raise ValueError("A player was selected more than once")

        ranking_rows = list(ranking_rows)
        known = {row['player_id'] for row in ranking_rows}
        missing = [pid for pid in selected_player_ids if pid not in known]
        if missing:
            raise ValueError(f"Unknown player id(s) in selection: {', '.join(map(str, missing))}")
        wanted = set(selected_player_ids)
        return [row for row in ranking_rows if row['player_id'] in wanted]

    def balance(self, ranking_rows: Iterable[Dict[str, Any]], selected_player_ids: List[Any],
                team_count: int) -> List[Dict[str, Any]]:
        """
        Split the selected players into team_count teams.

        Players are taken best K/D first and each one joins the team with the
        lowest running K/D sum (then fewest members, then lowest index)
        among the teams that still have an open slot.

        Raises:
            InvalidSelectionSize: selection doesn't equal team_count * team_size
            ValueError: bad team count, duplicate or unknown player ids
        """
        selected_player_ids = list(selected_player_ids)
        self.validate_selection(len(selected_player_ids), team_count)
        selected = self.select_rows(ranking_rows, selected_player_ids)

        ordered = sorted(selected, key=lambda r: r.get('kd') or 0.0, reverse=True)
        teams = [self._empty_team(i) for i in range(team_count)]

        for player in ordered:
            target = self.pick_team(teams, self.team_size)
            target['members'].append(player)
            target['total_kd'] += player.get('kd') or 0.0

        for team in teams:
            team['avg_kd'] = team['total_kd'] / len(team['members'])

        LOGGER.debug(
            "Balanced %d players into %d teams (spread %.3f)",
            len(ordered), team_count, self.kd_spread(teams),
        )
        return teams

    @staticmethod
    def pick_team(teams: List[Dict[str, Any]], capacity: Optional[int] = None) -> Dict[str, Any]:
        """Team with the lowest K/D sum, then fewest members, then lowest index.

        Teams already holding `capacity` members are skipped.
        """
        open_teams = [t for t in teams if capacity is None or len(t['members']) < capacity]
        if not open_teams:
            raise ValueError("Every team is already full")
        target = open_teams[0]
        for team in open_teams[1:]:
            if team['total_kd'] < target['total_kd']:
                target = team
            elif team['total_kd'] == target['total_kd'] and len(team['members']) < len(target['members']):
                target = team
        return target

    @staticmethod
    def kd_spread(teams: List[Dict[str, Any]]) -> float:
        """Gap between the strongest and weakest team average."""
        if not teams:
            return 0.0
        averages = [t['avg_kd'] for t in teams]
        return max(averages) - min(averages)

    @staticmethod
    def _empty_team(index: int) -> Dict[str, Any]:
        return {
            'team_index': index,
            'name': TEAM_NAMES[index],
            'members': [],
            'total_kd': 0.0,
            'avg_kd': 0.0,
        }


def balance_teams(ranking_rows: Iterable[Dict[str, Any]], selected_player_ids: List[Any],
                  team_count: int, team_size: int = DEFAULT_TEAM_SIZE,
                  balancer: Optional[TeamBalancer] = None) -> List[Dict[str, Any]]:
    """Module-level shortcut for TeamBalancer.balance."""
    return (balancer or TeamBalancer(team_size)).balance(ranking_rows, selected_player_ids, team_count)
