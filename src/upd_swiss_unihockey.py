# src/upd_swiss_unihockey.py

import logging
import uuid
from typing import Dict, Optional

import requests

from config import SYNC_GAMES, SYNC_LOCK_TTL_SECONDS, SYNC_DELETE_ORPHAN_PLAYERS
from db import get_conn, create_tables, create_indexes
from errors import SyncLockedError
from models.sync_lock import acquire_lock, release_lock
from reconcile import SyncResult
from scrapers.swiss_unihockey import init_session
from upd_games import sync_games
from upd_team_players import sync_players
from upd_teams import sync_teams

LOCK_NAME = "swiss_unihockey_sync"


def upd_swiss_unihockey(
        run_id:             Optional[str] = None,
        db_name:            Optional[str] = None,
        do_sync_teams:      bool = True,
        do_sync_players:    bool = True,
        do_sync_games:      bool = SYNC_GAMES,
        session:            Optional[requests.Session] = None,
        lock_ttl_seconds:   int = SYNC_LOCK_TTL_SECONDS,
    ) -> Dict[str, SyncResult]:
    """
    One sync run: teams, then players, then games, committed phase by phase.

    Raises SyncLockedError if another run holds the lock. A failed phase does not stop
    the next one: if the team list cannot be fetched, the rosters of the teams already
    known are still refreshed.
    """
    run_id = run_id or str(uuid.uuid4())
    conn, cursor = get_conn(db_name)
    results: Dict[str, SyncResult] = {}

    try:
        create_tables(cursor)
        create_indexes(cursor)
        conn.commit()

        if not acquire_lock(cursor, LOCK_NAME, owner=run_id, ttl_seconds=lock_ttl_seconds):
            raise SyncLockedError(f"Another sync run holds the lock '{LOCK_NAME}'")

        try:
            session = session or init_session()

            if do_sync_teams:
                # Orphans of removed teams are swept by the player phase when it runs
                results["teams"] = sync_teams(
                    cursor,
                    session         = session,
                    run_id          = run_id,
                    delete_orphans  = SYNC_DELETE_ORPHAN_PLAYERS and not do_sync_players,
                )
                conn.commit()

            if do_sync_players:
                results["players"] = sync_players(cursor, session=session, run_id=run_id)
                conn.commit()

            if do_sync_games:
                results["games"] = sync_games(cursor, session=session, run_id=run_id)
                conn.commit()

        except Exception:
            # Drop the unfinished phase, earlier phases are already committed
            conn.rollback()
            raise

        finally:
            release_lock(cursor, LOCK_NAME, owner=run_id)

    except SyncLockedError:
        logging.warning(f"Run {run_id} refused: sync already running")
        print("⚠️  Sync already running, nothing done.")
        raise

    finally:
        conn.close()

    for result in results.values():
        logging.info(result.summary())
    return results
