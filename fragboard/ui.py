# fragboard/ui.py

from typing import List, Dict, Any, Optional, Tuple
import re

from fragboard.ranking import RankingEngine
from fragboard.thresholds import (
    KD_STRONG,
    KD_EVEN,
    MIN_TIER_MATCHES,
    MIN_TEAM_COUNT,
    MAX_TEAM_COUNT,
)


class TerminalUI:
    """Simple terminal-based UI."""

    MENU_CHOICES = [str(i) for i in range(11)]

    @staticmethod
    def _format_metric(value: Any, decimals: int = 2) -> str:
        if value is None:
            return 'N/A'
        if isinstance(value, float):
            return f'{value:.{decimals}f}'
        return str(value)

    @staticmethod
    def _kd_band(kd: float) -> str:
        if kd >= KD_STRONG:
            return '++'
        if kd >= KD_EVEN:
            return '+'
        return '-'

    def show_menu(self) -> str:
        """Show main menu and get validated user choice."""
        print("\n" + "="*50)
        print("FRAGBOARD - Friends League Tracker")
        print("="*50)
        print("1. View ranking")
        print("2. View tier list")
        print("3. Record match stats")
        print("4. Add player")
        print("5. Rename / delete player")
        print("6. Add season")
        print("7. Rename / delete season")
        print("8. Balance teams")
        print("9. AI analysis")
        print("10. Load demo league")
        print("0. Exit")
        print("="*50)

        while True:
            choice = input("Choose an option (0-10): ").strip()
            if choice in self.MENU_CHOICES:
                return choice
            print("Error: Please enter a number between 0 and 10")

    def get_text(self, prompt: str, min_length: int = 1) -> str:
        """Read a non-empty line."""
        while True:
            value = input(prompt).strip()
            if len(value) >= min_length:
                return value
            print(f"Error: Please enter at least {min_length} character(s)")

    def confirm(self, prompt: str) -> bool:
        return input(f"{prompt} [y/N]: ").strip().lower() in ('y', 'yes')

    def _select_index(self, count: int, prompt: str) -> int:
        """Return a 0-based index, or -1 when the user cancels with Enter."""
        while True:
            raw = input(prompt).strip()
            if not raw:
                return -1
            if raw.isdigit() and 1 <= int(raw) <= count:
                return int(raw) - 1
            print(f"Error: Enter a number between 1 and {count}, or press Enter to cancel")

    def show_players(self, players: List[Dict]):
        """Display list of players."""
        print("\n" + "="*50)
        print("Players:")
        print("="*50)
        if not players:
            print("(no players yet)")
        for i, player in enumerate(players, 1):
            print(f"{i}. {player['nick']}")
        print("="*50)

    def select_player(self, players: List[Dict]) -> Optional[int]:
        if not players:
            self.show_error("No players registered")
            return None
        self.show_players(players)
        idx = self._select_index(len(players), "Select player (Enter to cancel): ")
        return None if idx == -1 else players[idx]['player_id']

    def show_seasons(self, seasons: List[Dict]):
        print("\n" + "="*50)
        print("Seasons (newest first):")
        print("="*50)
        if not seasons:
            print("(no seasons yet)")
        for i, season in enumerate(seasons, 1):
            print(f"{i}. {season['name']}")
        print("="*50)

    def select_season(self, seasons: List[Dict]) -> Optional[Dict]:
        """Pick a season; Enter takes the newest."""
        if not seasons:
            self.show_error("No seasons registered")
            return None
        self.show_seasons(seasons)
        idx = self._select_index(len(seasons), "Select season (Enter for newest): ")
        return seasons[0] if idx == -1 else seasons[idx]

    def select_sort(self) -> Tuple[str, str]:
        """Ask for sort column and direction (defaults: kd, desc)."""
        keys = RankingEngine.SORT_KEYS
        print("Sort by: " + ", ".join(keys))
        while True:
            key = input("Sort column (Enter for kd): ").strip().lower() or 'kd'
            if key in keys:
                break
            print("Error: Unknown column")
        direction = input("Direction asc/desc (Enter for desc): ").strip().lower()
        return key, ('asc' if direction == 'asc' else 'desc')

    def get_stat_input(self) -> Dict[str, int]:
        """Read match counters with validation."""
        stats = {}
        for key, label, default in (
            ('matches', 'Matches', 1),
            ('kills', 'Kills', 0),
            ('deaths', 'Deaths', 0),
            ('assists', 'Assists', 0),
            ('damage', 'Damage', 0),
        ):
            while True:
                raw = input(f"{label} (default {default}): ").strip()
                if not raw:
                    stats[key] = default
                    break
                if re.match(r'^\d+$', raw):
                    stats[key] = int(raw)
                    break
                print("Error: Enter a whole number (0 or more)")
        return stats

    def select_team_count(self) -> int:
        while True:
            raw = input(f"Number of teams ({MIN_TEAM_COUNT}-{MAX_TEAM_COUNT}, default 2): ").strip()
            if not raw:
                return MIN_TEAM_COUNT
            if raw.isdigit() and MIN_TEAM_COUNT <= int(raw) <= MAX_TEAM_COUNT:
                return int(raw)
            print(f"Error: Enter a number between {MIN_TEAM_COUNT} and {MAX_TEAM_COUNT}")

    def select_players_for_teams(self, pool: List[Dict], required: int) -> List[int]:
        """Let user pick exactly `required` players (numbers separated by commas)."""
        print("\n" + "-"*50)
        print(f"Select {required} players (enter numbers separated by commas)")
        print("-"*50)
        for i, row in enumerate(pool, 1):
            print(f"{i:>3}. {row['nick']:<20} KD {row['kd']:.2f}")

        while True:
            selection = input("\nYour selection: ").strip()
            if not re.match(r'^[\d,\s]+$', selection):
                print("Error: Please enter numbers separated by commas (e.g., 1,3,5)")
                continue
            picks = [int(x) for x in selection.replace(' ', '').split(',') if x]
            if any(p < 1 or p > len(pool) for p in picks):
                print(f"Error: Numbers must be between 1 and {len(pool)}")
                continue
            if len(set(picks)) != len(picks):
                print("Error: Each player can only be picked once")
                continue
            return [pool[p - 1]['player_id'] for p in picks]

    def show_ranking(self, rows: List[Dict], season_name: str, totals: Dict[str, Any] = None):
        """Display the ranking table."""
        print("\n" + "="*78)
        print(f"RANKING - {season_name}")
        print("="*78)
        if not rows:
            print("No data found for this season.")
            print("="*78)
            return

        print(f"{'#':>3}  {'Nick':<16}{'Matches':>8}{'Kills':>7}{'Deaths':>7}"
              f"{'Assists':>8}{'Damage':>9}{'Dmg/M':>8}{'K/D':>7}")
        print("-"*78)
        for row in rows:
            print(
                f"{row['position']:>3}  {row['nick'][:15]:<16}{row['matches']:>8}{row['kills']:>7}"
                f"{row['deaths']:>7}{row['assists']:>8}{row['damage']:>9,}"
                f"{row['damage_per_match']:>8.0f}{row['kd']:>6.2f}{self._kd_band(row['kd'])}"
            )
        if totals:
            print("-"*78)
            print(f"{totals['players']} active this season | "
                  f"Season K/D {totals['kd']:.2f} | Damage/match {totals['damage_per_match']:.0f}")
        print("="*78)

    def show_tier_list(self, rows: List[Dict], season_name: str, distribution: Dict[str, int] = None):
        print("\n" + "="*60)
        print(f"TIER LIST - {season_name}")
        print("="*60)
        if not rows:
            print(f"Nobody has played {MIN_TIER_MATCHES}+ matches yet.")
        for i, row in enumerate(rows, 1):
            tier = row['tier']
            held = ' *' if row.get('kd_held') else ''
            print(f"{i:>3}. {row['nick'][:15]:<16}{self._format_metric(row['score'], 1):>8}  "
                  f"{tier['label']} [{tier['indicator']}]{held}")
        if any(row.get('kd_held') for row in rows):
            print("* held below their score tier by K/D")
        if distribution:
            print("-"*60)
            for label, count in distribution.items():
                if count:
                    print(f"  {label:<32}{count:>3}")
        print(f"(Players need at least {MIN_TIER_MATCHES} matches to be ranked.)")
        print("="*60)

    def show_teams(self, teams: List[Dict], spread: float = None):
        print("\n" + "="*50)
        print("BALANCED TEAMS")
        print("="*50)
        for team in teams:
            print(f"\n{team['name']}  (avg K/D {team['avg_kd']:.2f})")
            print("-"*50)
            for member in team['members']:
                print(f"  {member['nick']:<20} KD {member['kd']:.2f}")
        if spread is not None:
            print(f"\nK/D spread between teams: {spread:.2f}")
        print("="*50)

    def show_insight(self, text: str, season_name: str):
        print("\n" + "="*50)
        print(f"AI ANALYSIS - {season_name}")
        print("="*50)
        print(text)
        print("="*50)

    def show_error(self, message: str):
        """Display error message."""
        print(f"\nERROR: {message}\n")

    def show_success(self, message: str):
        """Display success message."""
        print(f"\n{message}\n")
