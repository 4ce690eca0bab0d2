# src/scrapers/swiss_unihockey.py
#
# Fetches teams, rosters, games and rankings from the Swiss Unihockey APIs.
# Uses plain requests (all endpoints return JSON).

"""
Context (from the club admin API and the public api-v2):
  - clubapi/initclubteams?ClubID=<id> returns {"Teams": [{TeamID, TeamName, TeamAlias, TeamBanner{...}}]}.
  - teamapi/initplayersadminvc?TeamID=<id> returns a bare list of roster lines
    {PlayerID, TeamPlayerID, TeamID, FirstName, LastName, ShirtNumber, Position, ThumbnailURL}.
  - api-v2 games / rankings return {"data": {"regions": [{"rows": [{"cells": [...]}]}]}} tables.
  - A fetch either returns the complete list or raises FetchError. A truncated list would look
    like mass removal to the reconciler, so nothing partial is ever handed out.
"""

import logging
from typing import List, Dict, Any, Optional
from urllib.parse import quote

import requests

from config import (
    SWISS_API_BASE,
    SWISS_GAMES_API_BASE,
    SWISS_RANKINGS_API_BASE,
    REQUEST_TIMEOUT,
    SYNC_GAMES_PER_PAGE,
)
from errors import FetchError
from models.team_raw import TeamRaw
from models.player_raw import PlayerRaw
from models.game import Game
from utils import parse_date


HEADERS = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
                  "(KHTML, like Gecko) Chrome/120.0 Safari/537.36",
    "Accept": "application/json",
    "Accept-Language": "de-CH,de;q=0.9,en;q=0.8",
}


def init_session() -> requests.Session:
    session = requests.Session()
    session.headers.update(HEADERS)
    return session


def _get_json(session: requests.Session, url: str, params: Optional[Dict[str, Any]] = None, timeout: float = REQUEST_TIMEOUT) -> Any:
    """GET and decode JSON, raising FetchError for anything that is not a clean 2xx JSON answer."""
    try:
        resp = session.get(url, params=params, timeout=timeout)
    except requests.Timeout as e:
        raise FetchError(f"Timeout after {timeout}s: {e}", url=url) from e
    except requests.RequestException as e:
        raise FetchError(f"Request failed: {e}", url=url) from e

    if not 200 <= resp.status_code < 300:
        raise FetchError(f"HTTP error! Status: {resp.status_code}", url=url, status_code=resp.status_code)

    try:
        return resp.json()
    except ValueError as e:
        raise FetchError(f"Invalid JSON: {e}", url=url, status_code=resp.status_code) from e


def fetch_club_teams(session: requests.Session, club_id: int, timeout: float = REQUEST_TIMEOUT) -> List[TeamRaw]:
    """All teams of a club. Items are not validated here; the reconciler skips invalid ones."""
    url = f"{SWISS_API_BASE}/clubapi/initclubteams"
    data = _get_json(session, url, params={"ClubID": club_id}, timeout=timeout)

    if not isinstance(data, dict) or not isinstance(data.get("Teams", []), list):
        raise FetchError("Unexpected payload: 'Teams' list missing", url=url)

    teams = [TeamRaw.from_api(t) for t in (data.get("Teams") or []) if isinstance(t, dict)]
    logging.info(f"Fetched {len(teams)} teams for club {club_id}")
    return teams


def fetch_team_players(session: requests.Session, team_swiss_id: int, timeout: float = REQUEST_TIMEOUT) -> List[PlayerRaw]:
    """Roster of one team (admin view, includes shirt number and position)."""
    url = f"{SWISS_API_BASE}/teamapi/initplayersadminvc"
    data = _get_json(session, url, params={"TeamID": team_swiss_id}, timeout=timeout)

    if not isinstance(data, list):
        raise FetchError("Unexpected payload: expected a list of players", url=url)

    players = [PlayerRaw.from_api(p) for p in data if isinstance(p, dict)]
    for p in players:
        if p.team_swiss_id is None:
            p.team_swiss_id = team_swiss_id
    logging.info(f"Fetched {len(players)} players for team {team_swiss_id}")
    return players


def _cell_text(cells: List[dict], idx: int, joiner: str = "", default: Optional[str] = None) -> Optional[str]:
    if idx < 0 or idx >= len(cells):
        return default
    text = cells[idx].get("text")
    if not text:
        return default
    return joiner.join(str(t) for t in text)


def _rows(data: Any) -> List[dict]:
    regions = ((data or {}).get("data") or {}).get("regions") or []
    return [row for region in regions for row in (region.get("rows") or [])]


def parse_games(data: Any, mode: str, season: Optional[str] = None) -> List[Game]:
    """
    Turn an api-v2 games table into Game objects.

    Club mode has a league column at index 2, team mode does not (team columns shift left by one).
    Rows with fewer than 5 cells are headers/separators and are ignored.
    """
    games: List[Game] = []
    offset = -1 if mode == "team" else 0

    for row in _rows(data):
        cells = row.get("cells") or []
        if len(cells) < 5:
            continue

        date_time = cells[0].get("text") or ["N/A"]
        location_link = cells[1].get("link") or {}
        league = _cell_text(cells, 2, joiner=" ") if (mode == "club" and len(cells) >= 6) else None

        ids = (row.get("link") or {}).get("ids") or []
        home_idx, away_idx, result_idx = 3 + offset, 4 + offset, 5 + offset

        games.append(Game(
            game_id_ext     = str(ids[0]) if ids else None,
            season          = season,
            game_date       = parse_date(date_time[0], context="parse_games"),
            game_time       = date_time[1] if len(date_time) > 1 else "00:00",
            location        = _cell_text(cells, 1, joiner=", ", default="N/A"),
            location_x      = location_link.get("x") if location_link.get("type") == "map" else None,
            location_y      = location_link.get("y") if location_link.get("type") == "map" else None,
            league          = league,
            home_team       = _cell_text(cells, home_idx, default="Heim"),
            away_team       = _cell_text(cells, away_idx, default="Gast"),
            result          = _cell_text(cells, result_idx, default="-"),
            is_highlighted  = int(bool(row.get("highlight"))),
        ))
    return games


def fetch_games(session: requests.Session, mode: str, id_ext: str, season: str, timeout: float = REQUEST_TIMEOUT) -> List[Game]:
    """Games of a club (mode='club') or a team (mode='team') for one season."""
    if mode not in ("club", "team"):
        raise ValueError(f"mode must be 'club' or 'team', got {mode!r}")
    params = {
        "mode":             mode,
        f"{mode}_id":       id_ext,
        "season":           season,
        "games_per_page":   SYNC_GAMES_PER_PAGE,
    }
    data = _get_json(session, SWISS_GAMES_API_BASE, params=params, timeout=timeout)
    games = parse_games(data, mode, season=season)
    logging.info(f"Fetched {len(games)} games ({mode} {id_ext}, season {season})")
    return games


def fetch_game_details(session: requests.Session, game_id_ext: str, timeout: float = REQUEST_TIMEOUT) -> Optional[Dict[str, Any]]:
    """Logos, referees and spectators of one game. None if the game has no detail row."""
    data = _get_json(session, f"{SWISS_GAMES_API_BASE}/{game_id_ext}", timeout=timeout)
    rows = _rows(data)
    if not rows:
        return None
    cells = rows[0].get("cells") or []

    def image(idx):
        return ((cells[idx].get("image") or {}).get("url")) if idx < len(cells) else None

    link = (cells[7].get("link") or {}) if len(cells) > 7 else {}
    return {
        "home_logo_url":    image(0),
        "home_team":        _cell_text(cells, 1, default=""),
        "away_logo_url":    image(2),
        "away_team":        _cell_text(cells, 3, default=""),
        "result":           _cell_text(cells, 4, default="-"),
        "date":             _cell_text(cells, 5, default=""),
        "time":             _cell_text(cells, 6, default=""),
        "location":         _cell_text(cells, 7, default=""),
        "location_x":       link.get("x") if link.get("type") == "map" else None,
        "location_y":       link.get("y") if link.get("type") == "map" else None,
        "first_referee":    _cell_text(cells, 8),
        "second_referee":   _cell_text(cells, 9),
        "spectators":       _cell_text(cells, 10),
    }


def fetch_team_ranking(session: requests.Session, team_swiss_id: str, season: str, timeout: float = REQUEST_TIMEOUT) -> Optional[Dict[str, Any]]:
    """
    League table of a team's group.
    The games list in 'list' mode carries the league/game_class/group context the rankings endpoint needs.
    """
    games = _get_json(
        session, SWISS_GAMES_API_BASE,
        params={"mode": "list", "season": season, "team_id": team_swiss_id},
        timeout=timeout,
    )
    context = ((games or {}).get("data") or {}).get("context") or {}
    league, game_class, group = context.get("league"), context.get("game_class"), context.get("group")
    if not league or not game_class or not group:
        logging.warning(f"Missing league parameters for team {team_swiss_id}: {context}")
        return None

    url = f"{SWISS_RANKINGS_API_BASE}?season={season}&league={league}&game_class={game_class}&group={quote(str(group))}"
    data = _get_json(session, url, timeout=timeout)
    body = (data or {}).get("data") or {}
    if not body.get("headers") or body.get("regions") is None:
        raise FetchError("Invalid ranking data format", url=url)

    return {
        "title":    body.get("title") or "Rangliste",
        "headers":  body["headers"],
        "rows":     [{"cells": r.get("cells") or [], "highlight": bool(r.get("highlight"))} for r in _rows(data)],
    }
