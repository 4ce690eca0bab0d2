# src/upd_games.py

import sqlite3
from typing import Optional

import requests

from config import SWISS_GAMES_CLUB_ID, SWISS_SEASON, REQUEST_TIMEOUT
from errors import FetchError
from reconcile import SyncResult
from scrapers.swiss_unihockey import init_session, fetch_games
from utils import OperationLogger


def sync_games(
        cursor:     sqlite3.Cursor,
        session:    Optional[requests.Session] = None,
        club_id:    str = SWISS_GAMES_CLUB_ID,
        season:     str = SWISS_SEASON,
        run_id:     Optional[str] = None,
        timeout:    float = REQUEST_TIMEOUT,
    ) -> SyncResult:
    """
    Refresh the club schedule of one season into the game table.
    Games are only added or updated (keyed by game_id_ext); a game that disappears from the list stays.
    """
    logger = OperationLogger(
        verbosity       = 2,
        print_output    = False,
        log_to_db       = True,
        cursor          = cursor,
        object_type     = "game",
        run_type        = "sync",
        run_id          = run_id,
    )
    logger.set_run_remark(f"club_id={club_id}, season={season}")
    result = SyncResult(phase="games")
    session = session or init_session()

    logger.info(f"Fetching games of club {club_id}, season {season}...", to_console=True)
    try:
        games = fetch_games(session, "club", club_id, season, timeout=timeout)
    except FetchError as e:
        result.fetch_failed = True
        result.errors.append((None, str(e)))
        logger.failed({"club_id": club_id, "season": season}, f"Fetching games failed, schedule left unchanged: {e}")
        logger.summarize()
        logger.commit_run_summary(cursor)
        return result

    for game in games:
        logger.inc_processed()
        keys = {"game_id_ext": game.game_id_ext, "game_date": game.game_date}
        try:
            action = game.upsert(cursor)
        except sqlite3.Error as e:
            result.add_error(game.game_id_ext, str(e))
            logger.failed(keys, f"Game upsert failed: {e}")
            continue

        if action is None:
            _, msg = game.validate()
            result.add_error(game.game_id_ext, msg, skipped=True)
            logger.skipped(keys, f"Invalid game from API: {msg}")
        elif action == "inserted":
            result.created += 1
            logger.success(keys, "Game inserted")
        elif action == "updated":
            result.updated += 1
            logger.success(keys, "Game updated")
        else:
            result.unchanged += 1
            logger.success(keys, "Game unchanged")

    logger.info(result.summary(), to_console=True)
    logger.summarize()
    logger.commit_run_summary(cursor)
    return result
