from __future__ import annotations

import datetime
import logging
import sqlite3

import pandas as pd
import pytest

from db import compact_sqlite, drop_tables, get_conn, savepoint
from models.player import Player
from models.team import Team
from models.team_player import TeamPlayer
from utils import (
    OperationLogger,
    compute_content_hash,
    export_logs_to_excel,
    export_runs_to_excel,
    parse_date,
    setup_logging,
    slugify,
)


def _logger(cursor) -> OperationLogger:
    return OperationLogger(verbosity=2, print_output=False, log_to_db=True, cursor=cursor,
                           object_type="team", run_type="sync", run_id="run-1")


def test_parse_date_formats() -> None:
    assert parse_date("2025-10-18") == datetime.date(2025, 10, 18)
    assert parse_date("18.10.2025") == datetime.date(2025, 10, 18)
    assert parse_date("18.10.25", return_iso=True) == "2025-10-18"
    assert parse_date("20251018") == datetime.date(2025, 10, 18)
    assert parse_date("bald") is None
    assert parse_date(None) is None


def test_slugify() -> None:
    assert slugify("  Herren   I ") == "herren-i"
    assert slugify(None) is None


def test_content_hash_only_covers_given_fields() -> None:
    a = compute_content_hash({"name": "Herren I", "display_name": "x"}, ["name"])
    b = compute_content_hash({"name": "Herren I", "display_name": "y"}, ["name"])
    c = compute_content_hash({"name": "herren i"}, ["name"])

    assert a == b
    assert a != c
    assert compute_content_hash({"v": None}) == compute_content_hash({"v": ""})


def test_savepoint_rolls_back_only_its_own_statements(cursor) -> None:
    Team(swiss_id=1, name="Herren I").insert(cursor)

    with pytest.raises(sqlite3.IntegrityError):
        with savepoint(cursor, "sp_test"):
            Team(swiss_id=2, name="Damen").insert(cursor)
            Team(swiss_id=2, name="Damen (doppelt)").insert(cursor)

    assert Team.get_by_swiss_id(cursor, 1) is not None
    assert Team.get_by_swiss_id(cursor, 2) is None


def test_insert_many_rejects_invalid_rows(cursor) -> None:
    team = Team(swiss_id=1, name="Herren I")
    team.insert(cursor)
    player = Player(swiss_id=10, first_name="Lara", last_name="Meier")
    player.insert(cursor)

    with pytest.raises(ValueError):
        TeamPlayer.insert_many(cursor, [
            TeamPlayer(team_id=team.team_id, player_id=player.player_id, position="coach"),
        ])
    assert TeamPlayer.get_for_team(cursor, team.team_id) == []


def test_player_helpers(cursor) -> None:
    synced = Player.from_dict({"swiss_id": 10, "first_name": "Lara", "last_name": "Meier"})
    synced.insert(cursor)
    Player(first_name="Hans", last_name="Trainer").insert(cursor)

    assert [p.swiss_id for p in Player.get_all_synced(cursor)] == [10]
    assert Player.get_by_id(cursor, synced.player_id).content_hash == synced.content_hash
    assert Player(first_name="Lara").validate() == (False, "Missing fields: last_name")
    assert Player.delete_by_id(cursor, synced.player_id)


def test_drop_tables(cursor) -> None:
    cursor.execute("CREATE TABLE scratch (id INTEGER)")

    drop_tables(cursor, _logger(cursor), ["scratch", "does_not_exist"])

    cursor.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='scratch'")
    assert cursor.fetchone() is None
    cursor.execute("SELECT COUNT(*) FROM log_details WHERE status = 'warning'")
    assert cursor.fetchone()[0] == 1


def test_operation_logger_run_summary(cursor) -> None:
    logger = _logger(cursor)
    logger.inc_processed(3)
    logger.success({"swiss_id": 1}, "Team created")
    logger.failed({"swiss_id": 2}, "Insert error")
    logger.skipped({"swiss_id": None}, "Missing fields: swiss_id")

    assert logger.totals() == {"success": 1, "failed": 1, "skipped": 1, "warning": 0}
    logger.commit_run_summary(cursor, remarks="club_id=805")

    cursor.execute("""
        SELECT records_processed, records_success, records_failed, records_skipped, remarks
        FROM log_runs WHERE run_id = 'run-1'
    """)
    assert cursor.fetchone() == (3, 1, 1, 1, "club_id=805")
    cursor.execute("SELECT status FROM log_details WHERE run_id = 'run-1' ORDER BY id")
    assert [r[0] for r in cursor.fetchall()] == ["error", "skipped"]


def test_excel_exports(db_path, tmp_path) -> None:
    conn, cursor = get_conn(db_path)
    logger = OperationLogger(verbosity=2, print_output=False, log_to_db=True, cursor=cursor,
                             object_type="player", run_type="sync", run_id="run-x")
    logger.failed({"swiss_id": 10}, "Player upsert failed")
    logger.commit_run_summary(cursor)
    conn.close()

    logs_path = tmp_path / "logs.xlsx"
    runs_path = tmp_path / "run_log.xlsx"
    export_logs_to_excel(db_path, path=str(logs_path))
    export_runs_to_excel(db_path, path=str(runs_path))

    logs = pd.read_excel(logs_path, sheet_name=None)
    assert {"All_Logs", "Error", "obj_player"} <= set(logs)
    assert logs["All_Logs"]["swiss_id"].tolist() == [10]
    runs = pd.read_excel(runs_path, sheet_name="Run_Summary")
    assert runs["run_id"].tolist() == ["run-x"]

    compact_sqlite(db_path)


def test_missing_data_directories_are_created(tmp_path) -> None:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    log_file = tmp_path / "data" / "logs" / "log.log"
    try:
        setup_logging(log_file=str(log_file), log_level="INFO")
        assert log_file.exists()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = handlers
        root.setLevel(level)

    conn, _ = get_conn(str(tmp_path / "other" / "club.db"))
    conn.close()
    assert (tmp_path / "other" / "club.db").exists()
