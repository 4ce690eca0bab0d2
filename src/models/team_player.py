# src/models/team_player.py

from dataclasses import dataclass
from typing import Optional, Dict, Any, Tuple, List, Iterable, Set
import sqlite3

POSITIONS = ("goalkeeper", "defender", "forward")

@dataclass
class TeamPlayer:
    team_id:            Optional[int] = None
    player_id:          Optional[int] = None
    jersey_number:      Optional[int] = None
    position:           Optional[str] = None    # goalkeeper | defender | forward | None (unknown)
    photo_url:          Optional[str] = None
    row_created:        Optional[str] = None

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "TeamPlayer":
        return TeamPlayer(
            team_id         = d.get("team_id"),
            player_id       = d.get("player_id"),
            jersey_number   = d.get("jersey_number"),
            position        = d.get("position"),
            photo_url       = d.get("photo_url"),
            row_created     = d.get("row_created"),
        )

    def validate(self) -> Tuple[bool, str]:
        """
        Validate fields.
        Returns: (is_valid, error_message)
        """
        missing = []
        if not self.team_id:
            missing.append("team_id")
        if not self.player_id:
            missing.append("player_id")

        if missing:
            return False, f"Missing/invalid fields: {', '.join(missing)}"
        if self.position is not None and self.position not in POSITIONS:
            return False, f"Invalid position: {self.position}"

        return True, ""

    def key(self) -> Tuple:
        """Everything the federation owns about the assignment; equal keys mean nothing to write."""
        return (self.team_id, self.player_id, self.jersey_number, self.position, self.photo_url)

    @classmethod
    def get_for_team(cls, cursor: sqlite3.Cursor, team_id: int, only_synced_players: bool = False) -> List["TeamPlayer"]:
        """All assignments of a team, optionally only those of players with a swiss_id."""
        sql = """
            SELECT tp.team_id, tp.player_id, tp.jersey_number, tp.position, tp.photo_url, tp.row_created
            FROM team_player tp
        """
        if only_synced_players:
            sql += " JOIN player p ON p.player_id = tp.player_id AND p.swiss_id IS NOT NULL"
        sql += " WHERE tp.team_id = ? ORDER BY tp.player_id"
        cursor.execute(sql, (team_id,))
        return [
            TeamPlayer(
                team_id         = r[0],
                player_id       = r[1],
                jersey_number   = r[2],
                position        = r[3],
                photo_url       = r[4],
                row_created     = r[5],
            )
            for r in cursor.fetchall()
        ]

    @staticmethod
    def get_player_ids_for_team(cursor: sqlite3.Cursor, team_id: int) -> Set[int]:
        cursor.execute("SELECT player_id FROM team_player WHERE team_id = ?", (team_id,))
        return {r[0] for r in cursor.fetchall()}

    @classmethod
    def remove_for_team(cls, cursor: sqlite3.Cursor, team_id: int, only_synced_players: bool = False) -> int:
        """
        Remove the assignments of a team. With only_synced_players, assignments of
        hand-made players (swiss_id NULL) are kept.
        """
        if only_synced_players:
            cursor.execute("""
                DELETE FROM team_player
                WHERE team_id = ?
                  AND player_id IN (SELECT player_id FROM player WHERE swiss_id IS NOT NULL)
            """, (team_id,))
        else:
            cursor.execute("DELETE FROM team_player WHERE team_id = ?", (team_id,))
        return cursor.rowcount

    @staticmethod
    def insert_many(cursor: sqlite3.Cursor, rows: Iterable["TeamPlayer"]) -> int:
        rows = list(rows)
        for tp in rows:
            is_valid, err = tp.validate()
            if not is_valid:
                raise ValueError(f"Invalid team_player (team_id: {tp.team_id}, player_id: {tp.player_id}): {err}")
        cursor.executemany("""
            INSERT INTO team_player (team_id, player_id, jersey_number, position, photo_url)
            VALUES (?, ?, ?, ?, ?)
        """, [(tp.team_id, tp.player_id, tp.jersey_number, tp.position, tp.photo_url) for tp in rows])
        return len(rows)
