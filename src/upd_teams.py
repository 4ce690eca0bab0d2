# src/upd_teams.py

import sqlite3
from typing import Optional

import requests

from config import (
    SWISS_CLUB_ID,
    SYNC_REMOVED_TEAM_POLICY,
    SYNC_DELETE_ORPHAN_PLAYERS,
    REQUEST_TIMEOUT,
)
from errors import DataShapeError, FetchError, WriteError
from models.player import Player
from models.team import Team
from models.team_player import TeamPlayer
from models.team_raw import TeamRaw
from reconcile import SyncResult, build_sync_plan
from scrapers.swiss_unihockey import init_session, fetch_club_teams
from utils import OperationLogger

REMOVED_TEAM_POLICIES = ("delete", "deactivate")


def sync_teams(
        cursor:             sqlite3.Cursor,
        session:            Optional[requests.Session] = None,
        club_id:            int = SWISS_CLUB_ID,
        run_id:             Optional[str] = None,
        removed_policy:     str = SYNC_REMOVED_TEAM_POLICY,
        delete_orphans:     bool = SYNC_DELETE_ORPHAN_PLAYERS,
        timeout:            float = REQUEST_TIMEOUT,
    ) -> SyncResult:
    """
    Converge the synced teams (swiss_id NOT NULL) to the club's team list on Swiss Unihockey.

    - known TeamID      → overwrite name, slug, photo and is_active (display_name & co. stay)
    - new TeamID        → insert, club-owned fields left empty
    - TeamID gone       → removed_policy "delete" deletes the team, "deactivate" sets is_active = 0;
                          both drop the synced players' assignments to it
    - fetch failure     → nothing is written, result.status == "failed"
    - write failure     → logged with the TeamID, the team is skipped, the rest continues
    """
    if removed_policy not in REMOVED_TEAM_POLICIES:
        raise ValueError(f"removed_policy must be one of {REMOVED_TEAM_POLICIES}, got {removed_policy!r}")

    logger = OperationLogger(
        verbosity       = 2,
        print_output    = False,
        log_to_db       = True,
        cursor          = cursor,
        object_type     = "team",
        run_type        = "sync",
        run_id          = run_id,
    )
    logger.set_run_remark(f"club_id={club_id}, removed_policy={removed_policy}, delete_orphans={delete_orphans}")
    result = SyncResult(phase="teams")
    session = session or init_session()

    logger.info(f"Fetching teams of club {club_id} from Swiss Unihockey...", to_console=True)
    try:
        api_teams = fetch_club_teams(session, club_id, timeout=timeout)
    except FetchError as e:
        result.fetch_failed = True
        result.errors.append((None, str(e)))
        logger.failed({"club_id": club_id}, f"Fetching teams failed, local teams left unchanged: {e}")
        logger.summarize()
        logger.commit_run_summary(cursor)
        return result

    valid_teams = []
    skipped_ids = set()
    for raw in api_teams:
        logger.inc_processed()
        try:
            valid_teams.append(raw.ensure_valid())
        except DataShapeError as e:
            if raw.swiss_id is not None:
                skipped_ids.add(raw.swiss_id)
            result.add_error(raw.swiss_id, e.message, skipped=True)
            logger.skipped({"swiss_id": raw.swiss_id, "name": raw.name}, f"Invalid team from API: {e.message}")

    local_teams = Team.get_all_synced(cursor)
    plan = build_sync_plan(valid_teams, local_teams, lambda t: t.swiss_id, lambda t: t.swiss_id,
                           keep_ids=skipped_ids)

    for team in plan.kept:
        logger.warning({"swiss_id": team.swiss_id, "team_id": team.team_id},
                       "Team left unchanged: listed by the API, but invalid")

    for dup in plan.duplicates:
        result.add_error(dup.swiss_id, "Duplicate TeamID in API response", skipped=True)
        logger.skipped({"swiss_id": dup.swiss_id, "name": dup.name}, "Duplicate TeamID in API response, first occurrence kept")

    for raw in plan.to_create:
        keys = {"swiss_id": raw.swiss_id, "name": raw.name}
        try:
            team = _create_team(cursor, raw)
            result.created += 1
            logger.success({**keys, "team_id": team.team_id}, "Team created")
        except WriteError as e:
            result.add_error(raw.swiss_id, str(e))
            logger.failed(keys, f"Team insert failed: {e.message}")

    for team, raw in plan.to_update:
        keys = {"swiss_id": raw.swiss_id, "team_id": team.team_id}
        try:
            action = _update_team(cursor, team, raw)
            if action == "updated":
                result.updated += 1
            else:
                result.unchanged += 1
            logger.success(keys, f"Team {action}")
        except WriteError as e:
            result.add_error(raw.swiss_id, str(e))
            logger.failed(keys, f"Team update failed: {e.message}")

    for team in plan.to_delete:
        keys = {"swiss_id": team.swiss_id, "team_id": team.team_id}
        try:
            _remove_team(cursor, team, removed_policy, delete_orphans, result, logger)
        except WriteError as e:
            result.add_error(team.swiss_id, str(e))
            logger.failed(keys, f"Team removal failed: {e.message}")

    logger.info(result.summary(), to_console=True)
    logger.summarize()
    logger.commit_run_summary(cursor)
    return result


def _create_team(cursor: sqlite3.Cursor, raw: TeamRaw) -> Team:
    team = Team(swiss_id=raw.swiss_id, **raw.to_synced_fields())
    try:
        team.insert(cursor)
    except sqlite3.Error as e:
        raise WriteError(f"Insert error: {e}", swiss_id=raw.swiss_id) from e
    return team


def _update_team(cursor: sqlite3.Cursor, team: Team, raw: TeamRaw) -> str:
    for name, value in raw.to_synced_fields().items():
        setattr(team, name, value)
    try:
        return team.update_synced(cursor)
    except sqlite3.Error as e:
        raise WriteError(f"Update error: {e}", swiss_id=raw.swiss_id) from e


def _remove_team(
        cursor:         sqlite3.Cursor,
        team:           Team,
        policy:         str,
        delete_orphans: bool,
        result:         SyncResult,
        logger:         OperationLogger,
    ) -> None:
    keys = {"swiss_id": team.swiss_id, "team_id": team.team_id, "name": team.label}
    try:
        member_ids = TeamPlayer.get_player_ids_for_team(cursor, team.team_id)

        if policy == "delete":
            # Assignments go with the team (ON DELETE CASCADE)
            removed = len(member_ids)
            if Team.delete_by_id(cursor, team.team_id):
                result.deleted += 1
                logger.success(keys, "Team deleted (no longer listed by Swiss Unihockey)")
        else:
            removed = TeamPlayer.remove_for_team(cursor, team.team_id, only_synced_players=True)
            if Team.deactivate(cursor, team.team_id):
                result.deactivated += 1
                logger.success(keys, "Team deactivated (no longer listed by Swiss Unihockey)")
        result.memberships_removed += removed

        if delete_orphans:
            for player_id in member_ids:
                if Player.delete_if_orphaned(cursor, player_id):
                    result.orphans_deleted += 1
                    logger.success({**keys, "player_id": player_id}, "Player deleted (no team left)")
    except sqlite3.Error as e:
        raise WriteError(f"Delete error: {e}", swiss_id=team.swiss_id) from e
