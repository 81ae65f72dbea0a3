# main.py

from fragboard.database import Database, resolve_db_path
from fragboard.league_manager import LeagueManager
from fragboard.ranking import RankingEngine
from fragboard.team_balancer import TeamBalancer, InvalidSelectionSize
from fragboard.insights import InsightClient
from fragboard.ui import TerminalUI
from fragboard.thresholds import DEFAULT_TEAM_SIZE
import argparse
import logging


def _parse_args():
    parser = argparse.ArgumentParser(description="FRAGBOARD friends league tracker")
    parser.add_argument("--db", default="", help="SQLite DB path (defaults to FRAGBOARD_DB_PATH or data/fragboard.db)")
    parser.add_argument("--seed-demo", action="store_true", help="Load demo players and stats into an empty database")
    parser.add_argument("--verbose", action="store_true", help="Verbose logging")
    return parser.parse_args()


def _show_ranking(ui: TerminalUI, league: LeagueManager, engine: RankingEngine):
    season = ui.select_season(league.get_all_seasons())
    if not season:
        return
    sort_key, sort_dir = ui.select_sort()
    rows = league.get_ranking(season['season_id'], sort_key, sort_dir)
    ui.show_ranking(rows, season['name'], engine.season_totals(rows))


def _record_stats(ui: TerminalUI, league: LeagueManager):
    season = ui.select_season(league.get_all_seasons())
    if not season:
        return
    player_id = ui.select_player(league.get_all_players())
    if player_id is None:
        return
    stats = ui.get_stat_input()
    record = league.record_stats(player_id, season['season_id'], stats)
    ui.show_success(
        f"Stats saved. Season totals: {record['matches']} matches, "
        f"{record['kills']} kills, {record['deaths']} deaths"
    )


def _edit_player(ui: TerminalUI, league: LeagueManager):
    player_id = ui.select_player(league.get_all_players())
    if player_id is None:
        return
    action = input("(r)ename or (d)elete? ").strip().lower()
    if action == 'r':
        league.rename_player(player_id, ui.get_text("New nick: "))
        ui.show_success("Player renamed")
    elif action == 'd':
        if ui.confirm("Delete this player and all their stats?"):
            removed = league.delete_player(player_id)
            ui.show_success(f"Player deleted ({removed} stat record(s) removed)")


def _edit_season(ui: TerminalUI, league: LeagueManager):
    season = ui.select_season(league.get_all_seasons())
    if not season:
        return
    action = input("(r)ename or (d)elete? ").strip().lower()
    if action == 'r':
        league.rename_season(season['season_id'], ui.get_text("New name: "))
        ui.show_success("Season renamed")
    elif action == 'd':
        if ui.confirm(f"Delete '{season['name']}' and all its stats?"):
            removed = league.delete_season(season['season_id'])
            ui.show_success(f"Season deleted ({removed} stat record(s) removed)")


def _balance_teams(ui: TerminalUI, league: LeagueManager):
    season = ui.select_season(league.get_all_seasons())
    if not season:
        return
    team_count = ui.select_team_count()
    pool = league.get_player_pool(season['season_id'])
    required = team_count * DEFAULT_TEAM_SIZE
    if len(pool) < required:
        ui.show_error(f"{team_count} teams need {required} players; only {len(pool)} registered")
        return

    player_ids = ui.select_players_for_teams(pool, required)
    try:
        teams = league.balance_teams(season['season_id'], player_ids, team_count)
    except InvalidSelectionSize as e:
        ui.show_error(str(e))
        return
    ui.show_teams(teams, TeamBalancer.kd_spread(teams))


def _ai_analysis(ui: TerminalUI, league: LeagueManager, insight_client: InsightClient):
    season = ui.select_season(league.get_all_seasons())
    if not season:
        return
    rows = league.get_ranking(season['season_id'])
    if not rows:
        ui.show_error("No data for this season yet")
        return
    print("Asking the analyst...")
    ui.show_insight(insight_client.generate(rows, season['name']), season['name'])


def main():
    args = _parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    # Initialize components
    db = Database(resolve_db_path(args.db))
    league = LeagueManager(db)
    engine = RankingEngine()
    insight_client = InsightClient()
    ui = TerminalUI()

    try:
        if args.seed_demo:
            if db.seed_demo_data():
                ui.show_success("Demo league loaded")
            else:
                ui.show_error("Database already has data; demo not loaded")

        while True:
            choice = ui.show_menu()

            try:
                if choice == '1':
                    _show_ranking(ui, league, engine)

                elif choice == '2':
                    season = ui.select_season(league.get_all_seasons())
                    if season:
                        tier_rows = league.get_tier_list(season['season_id'])
                        ui.show_tier_list(tier_rows, season['name'], engine.classifier.distribution(tier_rows))

                elif choice == '3':
                    _record_stats(ui, league)

                elif choice == '4':
                    player_id = league.create_player(ui.get_text("Nick: "))
                    ui.show_success(f"Player added (id {player_id})")

                elif choice == '5':
                    _edit_player(ui, league)

                elif choice == '6':
                    season_id = league.create_season(ui.get_text("Season name: "))
                    ui.show_success(f"Season added (id {season_id})")

                elif choice == '7':
                    _edit_season(ui, league)

                elif choice == '8':
                    _balance_teams(ui, league)

                elif choice == '9':
                    _ai_analysis(ui, league, insight_client)

                elif choice == '10':
                    if db.seed_demo_data():
                        ui.show_success("Demo league loaded")
                    else:
                        ui.show_error("Database already has data; demo not loaded")

                elif choice == '0':
                    print("\nGoodbye!")
                    break

            except (ValueError, RuntimeError) as e:
                ui.show_error(str(e))

    finally:
        # Ensure database is always closed
        db.close()


if __name__ == '__main__':
    main()
