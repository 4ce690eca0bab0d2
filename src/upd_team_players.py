# src/upd_team_players.py

import sqlite3
import time
from typing import Dict, List, Optional, Set

import requests

from config import SYNC_DELETE_ORPHAN_PLAYERS, REQUEST_TIMEOUT, REQUEST_DELAY
from db import savepoint
from errors import DataShapeError, FetchError, WriteError
from models.player import Player
from models.player_raw import PlayerRaw
from models.team import Team
from models.team_player import TeamPlayer
from reconcile import SyncResult, build_sync_plan
from scrapers.swiss_unihockey import init_session, fetch_team_players
from utils import OperationLogger


def _new_logger(cursor: sqlite3.Cursor, run_id: Optional[str]) -> OperationLogger:
    return OperationLogger(
        verbosity       = 2,
        print_output    = False,
        log_to_db       = True,
        cursor          = cursor,
        object_type     = "player",
        run_type        = "sync",
        run_id          = run_id,
    )


def sync_players(
        cursor:             sqlite3.Cursor,
        session:            Optional[requests.Session] = None,
        run_id:             Optional[str] = None,
        delete_orphans:     bool = SYNC_DELETE_ORPHAN_PLAYERS,
        timeout:            float = REQUEST_TIMEOUT,
        request_delay:      float = REQUEST_DELAY,
    ) -> SyncResult:
    """
    Sync the roster of every active synced team, one team after the other.

    A failing team (fetch or write) never stops the others. Orphaned players are
    removed once at the end, after all rosters are in, so a player moving from
    one team to another keeps its row (and its club-owned fields).
    """
    logger = _new_logger(cursor, run_id)
    session = session or init_session()
    total = SyncResult(phase="players")

    teams = Team.get_all_synced(cursor, only_active=True)
    logger.set_run_remark(f"teams={len(teams)}, delete_orphans={delete_orphans}")
    logger.info(f"Syncing players for {len(teams)} teams...", to_console=True)

    for i, team in enumerate(teams, start=1):
        logger.info({"swiss_id": team.swiss_id, "team_id": team.team_id}, f"Team {i}/{len(teams)}")
        result = sync_players_for_team(
            cursor, team,
            session         = session,
            logger          = logger,
            delete_orphans  = False,
            timeout         = timeout,
        )
        total.merge(result)
        cursor.connection.commit()
        if request_delay and i < len(teams):
            time.sleep(request_delay)

    # A team whose roster fetch failed kept its assignments, so its players are never orphans here
    if delete_orphans:
        _delete_orphans(cursor, Player.get_orphaned_ids(cursor), total, logger)
        cursor.connection.commit()

    logger.info(total.summary(), to_console=True)
    logger.summarize()
    logger.commit_run_summary(cursor)
    return total


def sync_players_for_team(
        cursor:             sqlite3.Cursor,
        team:               Team,
        session:            Optional[requests.Session] = None,
        run_id:             Optional[str] = None,
        logger:             Optional[OperationLogger] = None,
        delete_orphans:     bool = SYNC_DELETE_ORPHAN_PLAYERS,
        timeout:            float = REQUEST_TIMEOUT,
    ) -> SyncResult:
    """
    Converge one team's roster to Swiss Unihockey.

    1) fetch the roster (FetchError → nothing written for this team)
    2) upsert every listed player in the global player table (keyed by PlayerID)
    3) replace the team's assignments of synced players with the listed ones
       (delete all, insert all; skipped if nothing changed)
    4) players no longer listed lose the assignment; with delete_orphans they are
       deleted when they have no team left at all
    """
    if team.swiss_id is None:
        raise ValueError(f"Team {team.team_id} has no swiss_id and is never synced")

    own_logger = logger is None
    logger = logger or _new_logger(cursor, run_id)
    session = session or init_session()
    result = SyncResult(phase=f"players:{team.swiss_id}")
    team_keys = {"team_swiss_id": team.swiss_id, "team_id": team.team_id}

    try:
        api_players = fetch_team_players(session, team.swiss_id, timeout=timeout)
    except FetchError as e:
        result.fetch_failed = True
        result.errors.append((team.swiss_id, str(e)))
        logger.failed(team_keys, f"Fetching roster failed, team left unchanged: {e}")
        if own_logger:
            logger.summarize()
            logger.commit_run_summary(cursor)
        return result

    valid_players: List[PlayerRaw] = []
    skipped_ids: Set[int] = set()
    for raw in api_players:
        logger.inc_processed()
        try:
            valid_players.append(raw.ensure_valid())
        except DataShapeError as e:
            if raw.swiss_id is not None:
                skipped_ids.add(raw.swiss_id)
            result.add_error(raw.swiss_id, e.message, skipped=True)
            logger.skipped({**team_keys, "swiss_id": raw.swiss_id}, f"Invalid player from API: {e.message}")

    members = Player.get_synced_for_team(cursor, team.team_id)
    plan = build_sync_plan(valid_players, members, lambda p: p.swiss_id, lambda p: p.swiss_id,
                           keep_ids=skipped_ids)

    for dup in plan.duplicates:
        result.add_error(dup.swiss_id, "Duplicate PlayerID in roster", skipped=True)
        logger.skipped({**team_keys, "swiss_id": dup.swiss_id}, "Duplicate PlayerID in roster, first occurrence kept")

    # swiss_id -> player_id of every listed player that is safely in the player table
    resolved: Dict[int, int] = {}
    failed_ids: Set[int] = set()

    for raw in plan.to_create:
        # New on this team, maybe already known from another team
        keys = {**team_keys, "swiss_id": raw.swiss_id}
        try:
            player, action = _upsert_player(cursor, raw)
            resolved[raw.swiss_id] = player.player_id
            _count(result, action)
            logger.success({**keys, "player_id": player.player_id}, f"Player {action}")
        except WriteError as e:
            failed_ids.add(raw.swiss_id)
            result.add_error(raw.swiss_id, str(e))
            logger.failed(keys, f"Player upsert failed: {e.message}")

    for player, raw in plan.to_update:
        keys = {**team_keys, "swiss_id": raw.swiss_id, "player_id": player.player_id}
        try:
            player, action = _upsert_player(cursor, raw, player)
            resolved[raw.swiss_id] = player.player_id
            _count(result, action)
            logger.success(keys, f"Player {action}")
        except WriteError as e:
            failed_ids.add(raw.swiss_id)
            result.add_error(raw.swiss_id, str(e))
            logger.failed(keys, f"Player update failed: {e.message}")

    # Listed players that failed to write or were invalid keep their current assignment untouched
    carried_ids = failed_ids | {p.swiss_id for p in plan.kept}
    current = TeamPlayer.get_for_team(cursor, team.team_id, only_synced_players=True)
    swiss_by_player_id = {m.player_id: m.swiss_id for m in members}
    listed = plan.to_create + [raw for _, raw in plan.to_update]
    desired = [
        TeamPlayer(
            team_id         = team.team_id,
            player_id       = resolved[raw.swiss_id],
            jersey_number   = raw.shirt_number,
            position        = raw.position,
            photo_url       = raw.thumbnail_url,
        )
        for raw in listed
        if raw.swiss_id in resolved
    ]
    desired += [tp for tp in current if swiss_by_player_id.get(tp.player_id) in carried_ids]

    stale = list(plan.to_delete)
    try:
        replaced = _replace_memberships(cursor, team, current, desired)
        if replaced:
            result.memberships_replaced += len(desired)
            result.memberships_removed += len(stale)
            logger.success(team_keys, f"Roster replaced: {len(desired)} assignments, {len(stale)} removed")
    except WriteError as e:
        result.add_error(team.swiss_id, str(e))
        logger.failed(team_keys, f"Roster replace failed, previous assignments kept: {e.message}")
        stale = []

    for player in stale:
        logger.success({**team_keys, "swiss_id": player.swiss_id, "player_id": player.player_id},
                       "Player removed from team (no longer listed)")

    if delete_orphans and stale:
        _delete_orphans(cursor, [p.player_id for p in stale], result, logger)

    if own_logger:
        logger.info(result.summary(), to_console=True)
        logger.summarize()
        logger.commit_run_summary(cursor)
    return result


def _count(result: SyncResult, action: str) -> None:
    if action == "inserted":
        result.created += 1
    elif action == "updated":
        result.updated += 1
    else:
        result.unchanged += 1


def _upsert_player(cursor: sqlite3.Cursor, raw: PlayerRaw, existing: Optional[Player] = None):
    """
    Insert a new player or refresh the synced fields of a known one. Returns (player, action).
    Without existing, the player is looked up by PlayerID (it may already play for another team).
    """
    try:
        if existing is None:
            existing = Player.get_by_swiss_id(cursor, raw.swiss_id)
        if existing is None:
            player = Player(swiss_id=raw.swiss_id, **raw.to_synced_fields())
            player.insert(cursor)
            return player, "inserted"

        for name, value in raw.to_synced_fields().items():
            setattr(existing, name, value)
        return existing, existing.update_synced(cursor)
    except sqlite3.Error as e:
        raise WriteError(f"Player write error: {e}", swiss_id=raw.swiss_id) from e


def _replace_memberships(
        cursor:     sqlite3.Cursor,
        team:       Team,
        current:    List[TeamPlayer],
        desired:    List[TeamPlayer],
    ) -> bool:
    """
    Delete all synced assignments of the team and insert the desired ones, all-or-nothing.
    Returns False (and writes nothing) if the sets are already identical.
    """
    if len(current) == len(desired) and {tp.key() for tp in current} == {tp.key() for tp in desired}:
        return False
    try:
        with savepoint(cursor, "replace_team_players"):
            TeamPlayer.remove_for_team(cursor, team.team_id, only_synced_players=True)
            TeamPlayer.insert_many(cursor, desired)
    except (sqlite3.Error, ValueError) as e:
        raise WriteError(f"Roster replace error: {e}", swiss_id=team.swiss_id) from e
    return True


def _delete_orphans(cursor: sqlite3.Cursor, player_ids: List[int], result: SyncResult, logger: OperationLogger) -> None:
    for player_id in player_ids:
        try:
            if Player.delete_if_orphaned(cursor, player_id):
                result.orphans_deleted += 1
                logger.success({"player_id": player_id}, "Player deleted (no team left)")
        except sqlite3.Error as e:
            result.add_error(player_id, str(e))
            logger.failed({"player_id": player_id}, f"Orphan delete failed: {e}")
