from __future__ import annotations

import datetime

import pytest
import requests

from errors import FetchError
from fakes import INVALID_JSON, FakeResponse, api_game_row, api_player, api_team, games_payload
from models.player_raw import normalize_position, normalize_thumbnail
from scrapers.swiss_unihockey import (
    fetch_club_teams,
    fetch_game_details,
    fetch_games,
    fetch_team_players,
    fetch_team_ranking,
    parse_games,
)


def test_fetch_club_teams_maps_fields(session) -> None:
    session.teams = [api_team(101, "Herren I", alias="Herren 1", photo="https://img/h1.jpg")]

    teams = fetch_club_teams(session, 805)

    assert len(teams) == 1
    team = teams[0]
    assert team.swiss_id == 101
    assert team.name == "Herren I"
    assert team.to_synced_fields() == {
        "name":             "Herren I",
        "slug":             "herren-1",
        "team_photo_url":   "https://img/h1.jpg",
        "is_active":        1,
    }
    assert session.calls[0][1] == {"ClubID": 805}


def test_fetch_club_teams_timeout_raises_fetch_error(session) -> None:
    session.errors["teams"] = requests.Timeout("read timed out")

    with pytest.raises(FetchError):
        fetch_club_teams(session, 805)


def test_fetch_club_teams_http_error_raises_fetch_error(session) -> None:
    session.errors["teams"] = 503

    with pytest.raises(FetchError) as exc:
        fetch_club_teams(session, 805)
    assert exc.value.status_code == 503


def test_fetch_club_teams_invalid_json_raises_fetch_error(monkeypatch, session) -> None:
    monkeypatch.setattr(session, "get", lambda url, params=None, timeout=None: FakeResponse(200, INVALID_JSON))

    with pytest.raises(FetchError):
        fetch_club_teams(session, 805)


def test_fetch_club_teams_unexpected_payload_raises_fetch_error(monkeypatch, session) -> None:
    monkeypatch.setattr(session, "get", lambda url, params=None, timeout=None: FakeResponse(200, {"Teams": "nope"}))

    with pytest.raises(FetchError):
        fetch_club_teams(session, 805)


def test_fetch_team_players_fills_team_id_and_normalizes(session) -> None:
    session.rosters[101] = [
        api_player(1, " Lara ", "Meier", shirt=7, position="Goalkeeper",
                   thumbnail="https://img/defaultplayeravatar.png"),
        api_player(2, "Noah", "Keller", shirt="12", position="Coach", thumbnail="https://img/2.jpg"),
    ]

    players = fetch_team_players(session, 101)

    assert [p.team_swiss_id for p in players] == [101, 101]
    assert players[0].first_name == "Lara"
    assert players[0].position == "goalkeeper"
    assert players[0].thumbnail_url is None
    assert players[1].shirt_number == 12
    assert players[1].position is None
    assert players[1].thumbnail_url == "https://img/2.jpg"


def test_fetch_team_players_requires_a_list(monkeypatch, session) -> None:
    monkeypatch.setattr(session, "get", lambda url, params=None, timeout=None: FakeResponse(200, {"error": "x"}))

    with pytest.raises(FetchError):
        fetch_team_players(session, 101)


def test_normalize_helpers() -> None:
    assert normalize_position(" Defender ") == "defender"
    assert normalize_position("") is None
    assert normalize_thumbnail(None) is None
    assert normalize_thumbnail("https://img/p.jpg") == "https://img/p.jpg"


def test_parse_games_club_mode() -> None:
    data = games_payload([
        {"cells": [{"text": ["Runde 1"]}]},
        api_game_row(555, "18.10.2025", "14:30", "UHC Bern", "Tigers", result="5:3", highlight=True),
    ])

    games = parse_games(data, "club", season="2025")

    assert len(games) == 1
    g = games[0]
    assert g.game_id_ext == "555"
    assert g.game_date == datetime.date(2025, 10, 18)
    assert g.game_time == "14:30"
    assert g.location == "Sporthalle Wankdorf, Bern"
    assert (g.location_x, g.location_y) == (7.46, 46.96)
    assert g.league == "Herren 1. Liga"
    assert (g.home_team, g.away_team, g.result) == ("UHC Bern", "Tigers", "5:3")
    assert g.is_highlighted == 1
    assert g.season == "2025"


def test_parse_games_team_mode_has_no_league_column() -> None:
    row = {
        "cells": [
            {"text": ["01.11.2025", "19:00"]},
            {"text": ["Halle"]},
            {"text": ["UHC Bern"]},
            {"text": ["Tigers"]},
            {"text": ["-"]},
        ],
        "link": {"ids": [777]},
    }

    games = parse_games(games_payload([row]), "team")

    assert games[0].league is None
    assert games[0].home_team == "UHC Bern"
    assert games[0].away_team == "Tigers"
    assert games[0].result == "-"


def test_fetch_games_rejects_unknown_mode(session) -> None:
    with pytest.raises(ValueError):
        fetch_games(session, "league", "1", "2025")


def test_fetch_game_details(session) -> None:
    cells = [
        {"image": {"url": "https://img/home.png"}},
        {"text": ["UHC Bern"]},
        {"image": {"url": "https://img/away.png"}},
        {"text": ["Tigers"]},
        {"text": ["5:3"]},
        {"text": ["18.10.2025"]},
        {"text": ["14:30"]},
        {"text": ["Sporthalle Wankdorf"], "link": {"type": "map", "x": 7.46, "y": 46.96}},
        {"text": ["Muster"]},
        {"text": ["Beispiel"]},
        {"text": ["312"]},
    ]
    session.details["1001"] = games_payload([{"cells": cells}])

    details = fetch_game_details(session, "1001")

    assert details["home_logo_url"] == "https://img/home.png"
    assert details["away_team"] == "Tigers"
    assert details["location_x"] == 7.46
    assert details["first_referee"] == "Muster"
    assert details["spectators"] == "312"


def test_fetch_game_details_without_rows(session) -> None:
    session.details["1001"] = games_payload([])

    assert fetch_game_details(session, "1001") is None


def test_fetch_team_ranking(session) -> None:
    session.games = {"data": {"context": {"league": 2, "game_class": 11, "group": "Gruppe 1"}}}
    session.rankings = {
        "data": {
            "title": "Herren 1. Liga",
            "headers": [{"text": "Rang"}, {"text": "Team"}],
            "regions": [{"rows": [{"cells": [{"text": ["1"]}, {"text": ["UHC Bern"]}], "highlight": 1}]}],
        }
    }

    ranking = fetch_team_ranking(session, "4711", "2025")

    assert ranking["title"] == "Herren 1. Liga"
    assert len(ranking["rows"]) == 1
    assert ranking["rows"][0]["highlight"] is True
    assert "group=Gruppe%201" in session.calls[-1][0]


def test_fetch_team_ranking_without_context(session) -> None:
    session.games = {"data": {"context": {}}}

    assert fetch_team_ranking(session, "4711", "2025") is None


def test_fetch_team_ranking_invalid_format(session) -> None:
    session.games = {"data": {"context": {"league": 2, "game_class": 11, "group": "1"}}}
    session.rankings = {"data": {"title": "x"}}

    with pytest.raises(FetchError):
        fetch_team_ranking(session, "4711", "2025")
