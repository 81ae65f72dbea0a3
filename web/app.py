from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from typing import List, Optional
import hmac
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fragboard.database import Database, resolve_db_path
from fragboard.insights import InsightClient
from fragboard.league_manager import LeagueManager
from fragboard.ranking import RankingEngine
from fragboard.team_balancer import TeamBalancer
from fragboard.thresholds import DEFAULT_SORT_KEY, DEFAULT_SORT_DIR, DEFAULT_TEAM_SIZE

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="FRAGBOARD League API")

db = Database(resolve_db_path())
manager = LeagueManager(db)
engine = RankingEngine()
insight_client = InsightClient()


# Request models
class PlayerRequest(BaseModel):
    nick: str


class SeasonRequest(BaseModel):
    name: str


class StatsRequest(BaseModel):
    player_id: int
    season_id: int
    matches: int = 1
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    damage: int = 0


class BalanceRequest(BaseModel):
    season_id: int
    player_ids: List[int]
    team_count: int = 2
    team_size: int = DEFAULT_TEAM_SIZE


def require_admin(x_admin_token: Optional[str] = Header(default=None)) -> None:
    """Gate for mutating endpoints: X-Admin-Token must match FRAGBOARD_ADMIN_TOKEN."""
    expected = os.environ.get("FRAGBOARD_ADMIN_TOKEN", "").strip()
    if not expected:
        raise HTTPException(status_code=503, detail="Admin endpoints are disabled (FRAGBOARD_ADMIN_TOKEN not set)")
    supplied = (x_admin_token or "").strip()
    if not supplied or not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=401, detail="Invalid admin token")


def _require_season(season_id: int) -> dict:
    season = manager.get_season(season_id)
    if not season:
        raise HTTPException(status_code=404, detail=f"Season {season_id} not found")
    return season


def _require_player(player_id: int) -> dict:
    player = manager.get_player(player_id)
    if not player:
        raise HTTPException(status_code=404, detail=f"Player {player_id} not found")
    return player


@app.get("/api/players")
async def list_players() -> dict:
    try:
        players = manager.get_all_players()
        return {"players": players, "count": len(players)}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to load players: {str(e)}")


@app.get("/api/seasons")
async def list_seasons() -> dict:
    try:
        seasons = manager.get_all_seasons()
        default = seasons[0]["season_id"] if seasons else None
        return {"seasons": seasons, "default_season_id": default, "count": len(seasons)}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to load seasons: {str(e)}")


@app.get("/api/stats")
async def list_stats(season_id: Optional[int] = None) -> dict:
    try:
        stats = db.list_stats(season_id)
        return {"season_id": season_id, "stats": stats, "count": len(stats)}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to load stats: {str(e)}")


@app.get("/api/ranking/{season_id}")
async def ranking(
    season_id: int,
    sort_key: str = DEFAULT_SORT_KEY,
    sort_dir: str = DEFAULT_SORT_DIR,
    qualified_only: bool = False,
) -> dict:
    season = _require_season(season_id)
    try:
        rows = manager.get_ranking(season_id, sort_key, sort_dir)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to compute ranking: {str(e)}")

    result = {"season": season, "sort_key": sort_key, "sort_dir": sort_dir}
    if qualified_only:
        rows = engine.qualified_rows(rows)
        result["tier_distribution"] = engine.classifier.distribution(rows)
    result["rows"] = rows
    result["totals"] = engine.season_totals(rows)
    return result


@app.get("/api/pool/{season_id}")
async def player_pool(season_id: int) -> dict:
    _require_season(season_id)
    try:
        pool = manager.get_player_pool(season_id)
        return {"season_id": season_id, "players": pool, "count": len(pool)}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to load player pool: {str(e)}")


@app.post("/api/teams/balance")
async def balance(body: BalanceRequest) -> dict:
    _require_season(body.season_id)
    try:
        teams = manager.balance_teams(body.season_id, body.player_ids, body.team_count, body.team_size)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to balance teams: {str(e)}")
    return {
        "season_id": body.season_id,
        "teams": teams,
        "kd_spread": TeamBalancer.kd_spread(teams),
    }


@app.get("/api/insights/{season_id}")
async def insights(season_id: int, top_n: Optional[int] = None) -> dict:
    season = _require_season(season_id)
    try:
        rows = manager.get_ranking(season_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to compute ranking: {str(e)}")
    # Only the HTTP call runs off the event loop thread
    text = await run_in_threadpool(insight_client.generate, rows, season["name"], top_n)
    return {"season_id": season_id, "enabled": insight_client.enabled, "text": text}


# --- Admin ---

@app.post("/api/players", dependencies=[Depends(require_admin)])
async def create_player(body: PlayerRequest) -> dict:
    try:
        player_id = manager.create_player(body.nick)
        return {"ok": True, "player": manager.get_player(player_id)}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to add player: {str(e)}")


@app.patch("/api/players/{player_id}", dependencies=[Depends(require_admin)])
async def rename_player(player_id: int, body: PlayerRequest) -> dict:
    _require_player(player_id)
    try:
        manager.rename_player(player_id, body.nick)
        return {"ok": True, "player": manager.get_player(player_id)}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to rename player: {str(e)}")


@app.delete("/api/players/{player_id}", dependencies=[Depends(require_admin)])
async def delete_player(player_id: int) -> dict:
    _require_player(player_id)
    try:
        removed = manager.delete_player(player_id)
        LOGGER.info("Deleted player %s (%s stat records)", player_id, removed)
        return {"ok": True, "player_id": player_id, "stats_removed": removed}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete player: {str(e)}")


@app.post("/api/seasons", dependencies=[Depends(require_admin)])
async def create_season(body: SeasonRequest) -> dict:
    try:
        season_id = manager.create_season(body.name)
        return {"ok": True, "season": manager.get_season(season_id)}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to add season: {str(e)}")


@app.patch("/api/seasons/{season_id}", dependencies=[Depends(require_admin)])
async def rename_season(season_id: int, body: SeasonRequest) -> dict:
    _require_season(season_id)
    try:
        manager.rename_season(season_id, body.name)
        return {"ok": True, "season": manager.get_season(season_id)}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to rename season: {str(e)}")


@app.delete("/api/seasons/{season_id}", dependencies=[Depends(require_admin)])
async def delete_season(season_id: int) -> dict:
    _require_season(season_id)
    try:
        removed = manager.delete_season(season_id)
        LOGGER.info("Deleted season %s (%s stat records)", season_id, removed)
        return {"ok": True, "season_id": season_id, "stats_removed": removed}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete season: {str(e)}")


@app.post("/api/stats", dependencies=[Depends(require_admin)])
async def submit_stats(body: StatsRequest) -> dict:
    _require_player(body.player_id)
    _require_season(body.season_id)
    counters = {
        "matches": body.matches,
        "kills": body.kills,
        "deaths": body.deaths,
        "assists": body.assists,
        "damage": body.damage,
    }
    try:
        record = manager.record_stats(body.player_id, body.season_id, counters)
        return {"ok": True, "stat": record}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to save stats: {str(e)}")


@app.post("/api/demo", dependencies=[Depends(require_admin)])
async def seed_demo() -> dict:
    try:
        return {"ok": True, "seeded": db.seed_demo_data()}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to load demo data: {str(e)}")


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    print("Starting FRAGBOARD API...")
    print("Open http://localhost:5000/docs in your browser")
    uvicorn.run(app, host="127.0.0.1", port=5000)
