from __future__ import annotations

import datetime

import requests

from fakes import api_game_row, games_payload
from models.game import Game, separate_games
from upd_games import sync_games


def test_sync_games_inserts_then_is_unchanged(cursor, session) -> None:
    session.games = games_payload([
        api_game_row(1001, "18.10.2025", "14:30", "UHC Bern", "Tigers"),
        api_game_row(1002, "25.10.2025", "19:00", "Wiler", "UHC Bern"),
    ])

    first = sync_games(cursor, session=session, club_id="447636", season="2025")
    second = sync_games(cursor, session=session, club_id="447636", season="2025")

    assert first.created == 2
    assert second.created == 0
    assert second.unchanged == 2
    assert second.writes == 0
    assert session.calls[0][1]["club_id"] == "447636"
    assert session.calls[0][1]["mode"] == "club"


def test_sync_games_updates_result(cursor, session) -> None:
    session.games = games_payload([api_game_row(1001, "18.10.2025", "14:30", "UHC Bern", "Tigers")])
    sync_games(cursor, session=session, season="2025")

    session.games = games_payload([api_game_row(1001, "18.10.2025", "14:30", "UHC Bern", "Tigers", result="4:2")])
    result = sync_games(cursor, session=session, season="2025")

    assert result.updated == 1
    games = Game.get_by_season(cursor, "2025")
    assert [g.result for g in games] == ["4:2"]
    assert games[0].game_date == datetime.date(2025, 10, 18)


def test_game_without_id_is_skipped(cursor, session) -> None:
    session.games = games_payload([
        api_game_row(None, "18.10.2025", "14:30", "UHC Bern", "Tigers"),
        api_game_row(1002, "25.10.2025", "19:00", "Wiler", "UHC Bern"),
    ])

    result = sync_games(cursor, session=session, season="2025")

    assert result.created == 1
    assert result.skipped == 1
    assert result.status == "completed_with_errors"


def test_sync_games_fetch_failure(cursor, session) -> None:
    session.games = games_payload([api_game_row(1001, "18.10.2025", "14:30", "UHC Bern", "Tigers")])
    sync_games(cursor, session=session, season="2025")

    session.errors["games"] = requests.Timeout("read timed out")
    result = sync_games(cursor, session=session, season="2025")

    assert result.status == "failed"
    assert len(Game.get_by_season(cursor, "2025")) == 1


def test_separate_games_orders_upcoming_and_past() -> None:
    now = datetime.datetime(2025, 10, 20, 12, 0)
    games = [
        Game(game_id_ext="a", game_date=datetime.date(2025, 10, 18), game_time="14:30"),
        Game(game_id_ext="b", game_date=datetime.date(2025, 11, 2), game_time="16:00"),
        Game(game_id_ext="c", game_date=datetime.date(2025, 10, 25), game_time="19:00"),
        Game(game_id_ext="d", game_date=datetime.date(2025, 10, 11), game_time="bald"),
        Game(game_id_ext="e"),
    ]

    upcoming, past = separate_games(games, now=now)

    assert [g.game_id_ext for g in upcoming] == ["c", "b"]
    assert [g.game_id_ext for g in past] == ["a", "d", "e"]
