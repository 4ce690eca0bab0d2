# src/models/player.py

from dataclasses import dataclass
from typing import Optional, List, Dict, Any, Tuple
import sqlite3
from utils import compute_content_hash as _compute_content_hash

@dataclass
class Player:
    player_id:      Optional[int]   = None
    swiss_id:       Optional[int]   = None      # Swiss Unihockey PlayerID, NULL for players created by hand

    # Synced
    first_name:     Optional[str]   = None
    last_name:      Optional[str]   = None
    is_active:      int             = 1

    # Owned by the club / the player's account
    birth_date:     Optional[str]   = None      # YYYY-MM-DD
    photo_url:      Optional[str]   = None
    user_id:        Optional[str]   = None

    content_hash:   Optional[str]   = None
    last_synced_at: Optional[str]   = None
    row_created:    Optional[str]   = None
    row_updated:    Optional[str]   = None

    SYNCED_FIELDS       = ("first_name", "last_name", "is_active")
    PROTECTED_FIELDS    = ("birth_date", "photo_url", "user_id")

    _COLUMNS = (
        "player_id, swiss_id, first_name, last_name, is_active, "
        "birth_date, photo_url, user_id, content_hash, last_synced_at, row_created, row_updated"
    )

    @staticmethod
    def from_dict(data: dict) -> "Player":
        return Player(
            player_id       = data.get("player_id"),
            swiss_id        = data.get("swiss_id"),
            first_name      = data.get("first_name"),
            last_name       = data.get("last_name"),
            is_active       = data.get("is_active", 1),
            birth_date      = data.get("birth_date"),
            photo_url       = data.get("photo_url"),
            user_id         = data.get("user_id"),
            content_hash    = data.get("content_hash"),
            last_synced_at  = data.get("last_synced_at"),
            row_created     = data.get("row_created"),
            row_updated     = data.get("row_updated"),
        )

    @staticmethod
    def from_row(row: tuple) -> "Player":
        (player_id, swiss_id, first_name, last_name, is_active,
         birth_date, photo_url, user_id, content_hash, last_synced_at, row_created, row_updated) = row
        return Player(
            player_id       = player_id,
            swiss_id        = swiss_id,
            first_name      = first_name,
            last_name       = last_name,
            is_active       = is_active,
            birth_date      = birth_date,
            photo_url       = photo_url,
            user_id         = user_id,
            content_hash    = content_hash,
            last_synced_at  = last_synced_at,
            row_created     = row_created,
            row_updated     = row_updated,
        )

    def validate(self) -> Tuple[bool, str]:
        missing = []
        if not self.first_name:
            missing.append("first_name")
        if not self.last_name:
            missing.append("last_name")
        if missing:
            return False, f"Missing fields: {', '.join(missing)}"
        return True, ""

    def synced_values(self) -> Dict[str, Any]:
        return {f: getattr(self, f) for f in self.SYNCED_FIELDS}

    def compute_content_hash(self) -> str:
        return _compute_content_hash(self.synced_values(), self.SYNCED_FIELDS)

    @classmethod
    def get_by_id(cls, cursor: sqlite3.Cursor, player_id: int) -> Optional["Player"]:
        cursor.execute(f"SELECT {cls._COLUMNS} FROM player WHERE player_id = ?", (player_id,))
        row = cursor.fetchone()
        return cls.from_row(row) if row else None

    @classmethod
    def get_by_swiss_id(cls, cursor: sqlite3.Cursor, swiss_id: int) -> Optional["Player"]:
        cursor.execute(f"SELECT {cls._COLUMNS} FROM player WHERE swiss_id = ?", (swiss_id,))
        row = cursor.fetchone()
        return cls.from_row(row) if row else None

    @classmethod
    def get_all_synced(cls, cursor: sqlite3.Cursor) -> List["Player"]:
        """All players with a swiss_id (the global player table, keyed by PlayerID)."""
        cursor.execute(f"SELECT {cls._COLUMNS} FROM player WHERE swiss_id IS NOT NULL ORDER BY player_id")
        return [cls.from_row(r) for r in cursor.fetchall()]

    @classmethod
    def get_synced_for_team(cls, cursor: sqlite3.Cursor, team_id: int) -> List["Player"]:
        """Synced players currently assigned to a team."""
        cols = ", ".join(f"p.{c.strip()}" for c in cls._COLUMNS.split(","))
        cursor.execute(f"""
            SELECT {cols}
            FROM player p
            JOIN team_player tp ON tp.player_id = p.player_id
            WHERE tp.team_id = ? AND p.swiss_id IS NOT NULL
            ORDER BY p.player_id
        """, (team_id,))
        return [cls.from_row(r) for r in cursor.fetchall()]

    def insert(self, cursor: sqlite3.Cursor) -> int:
        self.content_hash = self.compute_content_hash()
        cursor.execute("""
            INSERT INTO player (
                swiss_id, first_name, last_name, is_active,
                birth_date, photo_url, user_id, content_hash, last_synced_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, CASE WHEN ? IS NULL THEN NULL ELSE CURRENT_TIMESTAMP END)
            RETURNING player_id
        """, (
            self.swiss_id, self.first_name, self.last_name, self.is_active,
            self.birth_date, self.photo_url, self.user_id, self.content_hash, self.swiss_id
        ))
        self.player_id = cursor.fetchone()[0]
        return self.player_id

    def update_synced(self, cursor: sqlite3.Cursor) -> str:
        """Overwrite first/last name and is_active if they changed. Returns "updated" or "unchanged"."""
        new_hash = self.compute_content_hash()
        cursor.execute("""
            UPDATE player
            SET first_name      = ?,
                last_name       = ?,
                is_active       = ?,
                content_hash    = ?,
                last_synced_at  = CURRENT_TIMESTAMP,
                row_updated     = CURRENT_TIMESTAMP
            WHERE player_id = ?
              AND (content_hash IS NULL OR content_hash <> ?)
        """, (
            self.first_name, self.last_name, self.is_active,
            new_hash, self.player_id, new_hash
        ))
        self.content_hash = new_hash
        return "updated" if cursor.rowcount > 0 else "unchanged"

    @staticmethod
    def delete_by_id(cursor: sqlite3.Cursor, player_id: int) -> bool:
        cursor.execute("DELETE FROM player WHERE player_id = ?", (player_id,))
        return cursor.rowcount > 0

    @staticmethod
    def get_orphaned_ids(cursor: sqlite3.Cursor) -> List[int]:
        """Synced players without any team_player row."""
        cursor.execute("""
            SELECT p.player_id
            FROM player p
            WHERE p.swiss_id IS NOT NULL
              AND NOT EXISTS (SELECT 1 FROM team_player tp WHERE tp.player_id = p.player_id)
            ORDER BY p.player_id
        """)
        return [r[0] for r in cursor.fetchall()]

    @staticmethod
    def delete_if_orphaned(cursor: sqlite3.Cursor, player_id: int) -> bool:
        """
        Delete a synced player that no longer belongs to any team.
        Hand-made players (swiss_id NULL) are never deleted here.
        """
        cursor.execute("""
            DELETE FROM player
            WHERE player_id = ?
              AND swiss_id IS NOT NULL
              AND NOT EXISTS (SELECT 1 FROM team_player tp WHERE tp.player_id = player.player_id)
        """, (player_id,))
        return cursor.rowcount > 0
