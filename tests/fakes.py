from __future__ import annotations

from typing import Any, Dict, List, Optional

from config import SWISS_GAMES_API_BASE, SWISS_RANKINGS_API_BASE

INVALID_JSON = object()


class FakeResponse:
    def __init__(self, status_code: int, payload: Any) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        if self._payload is INVALID_JSON:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    """
    Stands in for requests.Session, answering the Swiss Unihockey endpoints from plain attributes.

    teams:   list of TeamID dicts for clubapi/initclubteams
    rosters: TeamID -> list of roster dicts for teamapi/initplayersadminvc
    games:   api-v2 games table payload
    details: game id -> api-v2 game detail payload
    rankings: api-v2 rankings payload
    errors:  "teams" | ("roster", TeamID) | "games" | "rankings" -> exception or HTTP status
    """

    def __init__(self) -> None:
        self.teams: List[Dict[str, Any]] = []
        self.rosters: Dict[int, List[Dict[str, Any]]] = {}
        self.games: Any = {"data": {"regions": []}}
        self.details: Dict[str, Any] = {}
        self.rankings: Any = None
        self.errors: Dict[Any, Any] = {}
        self.calls: List[tuple] = []

    def get(self, url: str, params: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> FakeResponse:
        params = dict(params or {})
        self.calls.append((url, params))

        if url.endswith("/clubapi/initclubteams"):
            key, payload = "teams", {"Teams": self.teams}
        elif url.endswith("/teamapi/initplayersadminvc"):
            team_id = params.get("TeamID")
            key, payload = ("roster", team_id), self.rosters.get(team_id, [])
        elif url.startswith(SWISS_GAMES_API_BASE + "/"):
            game_id = url.rsplit("/", 1)[1]
            key, payload = ("details", game_id), self.details.get(game_id)
        elif url.startswith(SWISS_GAMES_API_BASE):
            key, payload = "games", self.games
        elif url.startswith(SWISS_RANKINGS_API_BASE):
            key, payload = "rankings", self.rankings
        else:
            raise AssertionError(f"Unexpected URL: {url}")

        error = self.errors.get(key)
        if isinstance(error, Exception):
            raise error
        if isinstance(error, int):
            return FakeResponse(error, None)
        return FakeResponse(200, payload)


def api_team(team_id: Optional[int], name: Optional[str], alias: Optional[str] = None, photo: Optional[str] = None) -> Dict[str, Any]:
    return {
        "TeamID":       team_id,
        "TeamName":     name,
        "TeamAlias":    alias,
        "TeamBanner":   {"PictureURLimage800": photo} if photo else None,
    }


def api_player(
    player_id: Optional[int],
    first_name: Optional[str],
    last_name: Optional[str],
    shirt: Optional[int] = None,
    position: Optional[str] = "Forward",
    thumbnail: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "PlayerID":     player_id,
        "TeamPlayerID": None,
        "TeamID":       None,
        "FirstName":    first_name,
        "LastName":     last_name,
        "ShirtNumber":  shirt,
        "Position":     position,
        "ThumbnailURL": thumbnail,
    }


def api_game_row(game_id: Optional[int], date: str, time: str, home: str, away: str, result: str = "-",
                 league: str = "Herren 1. Liga", highlight: bool = False) -> Dict[str, Any]:
    """One row of an api-v2 games table in club mode."""
    return {
        "cells": [
            {"text": [date, time]},
            {"text": ["Sporthalle Wankdorf", "Bern"], "link": {"type": "map", "x": 7.46, "y": 46.96}},
            {"text": league.split(" ", 1)},
            {"text": [home]},
            {"text": [away]},
            {"text": [result]},
        ],
        "link": {"ids": [game_id] if game_id is not None else []},
        "highlight": highlight,
    }


def games_payload(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"data": {"regions": [{"rows": rows}]}}
