# src/models/team.py

from dataclasses import dataclass
from typing import Optional, Dict, Any, Tuple, List
import sqlite3
from utils import compute_content_hash as _compute_content_hash

@dataclass
class Team:
    team_id:            Optional[int]   = None      # PK in team
    swiss_id:           Optional[int]   = None      # Swiss Unihockey TeamID, NULL for teams created by hand

    # Synced from Swiss Unihockey on every run
    name:               Optional[str]   = None
    slug:               Optional[str]   = None
    team_photo_url:     Optional[str]   = None
    is_active:          int             = 1

    # Owned by the club, never overwritten by the sync
    display_name:       Optional[str]   = None
    category:           Optional[str]   = None
    description:        Optional[str]   = None
    contact_email:      Optional[str]   = None
    display_order:      int             = 0

    content_hash:       Optional[str]   = None
    last_synced_at:     Optional[str]   = None
    row_created:        Optional[str]   = None
    row_updated:        Optional[str]   = None

    SYNCED_FIELDS       = ("name", "slug", "team_photo_url", "is_active")
    PROTECTED_FIELDS    = ("display_name", "category", "description", "contact_email", "display_order")

    _COLUMNS = (
        "team_id, swiss_id, name, slug, team_photo_url, is_active, "
        "display_name, category, description, contact_email, display_order, "
        "content_hash, last_synced_at, row_created, row_updated"
    )

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Team":
        return Team(
            team_id         = d.get("team_id"),
            swiss_id        = d.get("swiss_id"),
            name            = d.get("name"),
            slug            = d.get("slug"),
            team_photo_url  = d.get("team_photo_url"),
            is_active       = d.get("is_active", 1),
            display_name    = d.get("display_name"),
            category        = d.get("category"),
            description     = d.get("description"),
            contact_email   = d.get("contact_email"),
            display_order   = d.get("display_order", 0),
            content_hash    = d.get("content_hash"),
            last_synced_at  = d.get("last_synced_at"),
            row_created     = d.get("row_created"),
            row_updated     = d.get("row_updated"),
        )

    @staticmethod
    def from_row(row: tuple) -> "Team":
        """Construct from a SELECT in _COLUMNS order."""
        (team_id, swiss_id, name, slug, team_photo_url, is_active,
         display_name, category, description, contact_email, display_order,
         content_hash, last_synced_at, row_created, row_updated) = row
        return Team(
            team_id         = team_id,
            swiss_id        = swiss_id,
            name            = name,
            slug            = slug,
            team_photo_url  = team_photo_url,
            is_active       = is_active,
            display_name    = display_name,
            category        = category,
            description     = description,
            contact_email   = contact_email,
            display_order   = display_order,
            content_hash    = content_hash,
            last_synced_at  = last_synced_at,
            row_created     = row_created,
            row_updated     = row_updated,
        )

    @property
    def label(self) -> str:
        """Name shown on the public pages: the club's display_name wins over the federation name."""
        return self.display_name or self.name or ""

    def validate(self) -> Tuple[bool, str]:
        if not self.name:
            return False, "Missing fields: name"
        return True, ""

    def synced_values(self) -> Dict[str, Any]:
        return {f: getattr(self, f) for f in self.SYNCED_FIELDS}

    def compute_content_hash(self) -> str:
        return _compute_content_hash(self.synced_values(), self.SYNCED_FIELDS)

    @classmethod
    def get_by_id(cls, cursor: sqlite3.Cursor, team_id: int) -> Optional["Team"]:
        cursor.execute(f"SELECT {cls._COLUMNS} FROM team WHERE team_id = ?", (team_id,))
        row = cursor.fetchone()
        return cls.from_row(row) if row else None

    @classmethod
    def get_by_swiss_id(cls, cursor: sqlite3.Cursor, swiss_id: int) -> Optional["Team"]:
        """Lookup a team by its Swiss Unihockey TeamID."""
        cursor.execute(f"SELECT {cls._COLUMNS} FROM team WHERE swiss_id = ?", (swiss_id,))
        row = cursor.fetchone()
        return cls.from_row(row) if row else None

    @classmethod
    def get_all_synced(cls, cursor: sqlite3.Cursor, only_active: bool = False) -> List["Team"]:
        """All teams that came from Swiss Unihockey. Hand-made teams (swiss_id NULL) are never returned."""
        sql = f"SELECT {cls._COLUMNS} FROM team WHERE swiss_id IS NOT NULL"
        if only_active:
            sql += " AND is_active = 1"
        sql += " ORDER BY display_order, team_id"
        cursor.execute(sql)
        return [cls.from_row(r) for r in cursor.fetchall()]

    def insert(self, cursor: sqlite3.Cursor) -> int:
        """
        Insert a new team. Protected fields are written as given (NULL/defaults for synced teams).
        Returns the new team_id.
        """
        self.content_hash = self.compute_content_hash()
        cursor.execute("""
            INSERT INTO team (
                swiss_id, name, slug, team_photo_url, is_active,
                display_name, category, description, contact_email, display_order,
                content_hash, last_synced_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, CASE WHEN ? IS NULL THEN NULL ELSE CURRENT_TIMESTAMP END)
            RETURNING team_id
        """, (
            self.swiss_id, self.name, self.slug, self.team_photo_url, self.is_active,
            self.display_name, self.category, self.description, self.contact_email, self.display_order,
            self.content_hash, self.swiss_id
        ))
        self.team_id = cursor.fetchone()[0]
        return self.team_id

    def update_synced(self, cursor: sqlite3.Cursor) -> str:
        """
        Overwrite the synced fields only, gated on content_hash.

        Returns "updated" or "unchanged". Protected fields are not part of the statement.
        """
        new_hash = self.compute_content_hash()
        cursor.execute("""
            UPDATE team
            SET name            = ?,
                slug            = ?,
                team_photo_url  = ?,
                is_active       = ?,
                content_hash    = ?,
                last_synced_at  = CURRENT_TIMESTAMP,
                row_updated     = CURRENT_TIMESTAMP
            WHERE team_id = ?
              AND (content_hash IS NULL OR content_hash <> ?)
        """, (
            self.name, self.slug, self.team_photo_url, self.is_active,
            new_hash, self.team_id, new_hash
        ))
        self.content_hash = new_hash
        return "updated" if cursor.rowcount > 0 else "unchanged"

    @staticmethod
    def deactivate(cursor: sqlite3.Cursor, team_id: int) -> bool:
        """Set is_active = 0. The content_hash is reset so a reappearing team is reactivated on the next run."""
        cursor.execute("""
            UPDATE team
            SET is_active = 0, content_hash = NULL, row_updated = CURRENT_TIMESTAMP
            WHERE team_id = ? AND is_active <> 0
        """, (team_id,))
        return cursor.rowcount > 0

    @staticmethod
    def delete_by_id(cursor: sqlite3.Cursor, team_id: int) -> bool:
        """Delete a team. team_player rows go with it (ON DELETE CASCADE)."""
        cursor.execute("DELETE FROM team WHERE team_id = ?", (team_id,))
        return cursor.rowcount > 0
