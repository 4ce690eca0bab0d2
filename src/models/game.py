# src/models/game.py

from __future__ import annotations

from dataclasses import dataclass
import datetime
from typing import Optional, Dict, Any, Tuple, List
import sqlite3
from utils import parse_date
from utils import compute_content_hash as _compute_content_hash


@dataclass
class Game:
    game_id:                Optional[int] = None
    game_id_ext:            Optional[str] = None            # from row.link.ids[0]
    season:                 Optional[str] = None            # e.g. "2025"
    game_date:              Optional[datetime.date] = None  # "18.10.2025" on the API
    game_time:              Optional[str] = None            # "14:30", "00:00" if not scheduled yet
    location:               Optional[str] = None
    location_x:             Optional[float] = None
    location_y:             Optional[float] = None
    league:                 Optional[str] = None            # only in club mode
    home_team:              Optional[str] = None
    away_team:              Optional[str] = None
    result:                 Optional[str] = None            # "-" until played
    is_highlighted:         int = 0
    content_hash:           Optional[str] = None
    last_seen_at:           Optional[datetime.datetime] = None
    row_created:            Optional[datetime.datetime] = None
    row_updated:            Optional[datetime.datetime] = None

    HASHED_FIELDS = (
        "season", "game_date", "game_time", "location", "location_x", "location_y",
        "league", "home_team", "away_team", "result", "is_highlighted",
    )

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Game":
        return Game(
            game_id         = d.get("game_id"),
            game_id_ext     = d.get("game_id_ext"),
            season          = d.get("season"),
            game_date       = parse_date(d.get("game_date"), context="Game.from_dict"),
            game_time       = d.get("game_time"),
            location        = d.get("location"),
            location_x      = d.get("location_x"),
            location_y      = d.get("location_y"),
            league          = d.get("league"),
            home_team       = d.get("home_team"),
            away_team       = d.get("away_team"),
            result          = d.get("result"),
            is_highlighted  = int(bool(d.get("is_highlighted", 0))),
            content_hash    = d.get("content_hash"),
            last_seen_at    = d.get("last_seen_at"),
            row_created     = d.get("row_created"),
            row_updated     = d.get("row_updated"),
        )

    def validate(self) -> Tuple[bool, str]:
        missing = []
        for field in ("game_id_ext", "home_team", "away_team"):
            if not getattr(self, field):
                missing.append(field)
        if missing:
            return False, f"Missing fields: {', '.join(missing)}"
        return True, ""

    def starts_at(self) -> Optional[datetime.datetime]:
        if not self.game_date:
            return None
        try:
            t = datetime.datetime.strptime(self.game_time or "00:00", "%H:%M").time()
        except ValueError:
            t = datetime.time(0, 0)
        return datetime.datetime.combine(self.game_date, t)

    def compute_content_hash(self) -> str:
        return _compute_content_hash({f: getattr(self, f) for f in self.HASHED_FIELDS}, self.HASHED_FIELDS)

    def upsert(self, cursor: sqlite3.Cursor) -> Optional[str]:
        """
        Upsert game on game_id_ext with content-hash gating.

        Returns one of: "inserted", "updated", "unchanged", or None (invalid).
        """
        is_valid, err = self.validate()
        if not is_valid:
            return None

        new_hash = self.compute_content_hash()
        existed = self.get_id_by_ext(cursor, self.game_id_ext) is not None

        sql = """
        INSERT INTO game (
            game_id_ext, season, game_date, game_time, location, location_x, location_y,
            league, home_team, away_team, result, is_highlighted, content_hash, last_seen_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
        ON CONFLICT (game_id_ext) DO UPDATE SET
            season = excluded.season,
            game_date = excluded.game_date,
            game_time = excluded.game_time,
            location = excluded.location,
            location_x = excluded.location_x,
            location_y = excluded.location_y,
            league = excluded.league,
            home_team = excluded.home_team,
            away_team = excluded.away_team,
            result = excluded.result,
            is_highlighted = excluded.is_highlighted,
            content_hash = excluded.content_hash,
            last_seen_at = CURRENT_TIMESTAMP,
            row_updated = CURRENT_TIMESTAMP
        WHERE game.content_hash IS NULL OR game.content_hash <> excluded.content_hash
        RETURNING game_id;
        """

        vals = (
            self.game_id_ext,
            self.season,
            self.game_date,
            self.game_time,
            self.location,
            self.location_x,
            self.location_y,
            self.league,
            self.home_team,
            self.away_team,
            self.result,
            self.is_highlighted,
            new_hash,
        )

        cursor.execute(sql, vals)
        row = cursor.fetchone()
        self.content_hash = new_hash
        if row:
            self.game_id = row[0]
            return "updated" if existed else "inserted"

        touch_sql = """
        UPDATE game
        SET last_seen_at = CURRENT_TIMESTAMP
        WHERE game_id_ext = ?
        RETURNING game_id;
        """
        cursor.execute(touch_sql, (self.game_id_ext,))
        touched = cursor.fetchone()
        if touched:
            self.game_id = touched[0]
        return "unchanged"

    @staticmethod
    def get_id_by_ext(cursor: sqlite3.Cursor, game_id_ext: str) -> Optional[int]:
        cursor.execute("SELECT game_id FROM game WHERE game_id_ext = ?", (game_id_ext,))
        row = cursor.fetchone()
        return row[0] if row else None

    @classmethod
    def get_by_season(cls, cursor: sqlite3.Cursor, season: str) -> List["Game"]:
        cursor.execute("""
            SELECT game_id, game_id_ext, season, game_date, game_time, location, location_x, location_y,
                   league, home_team, away_team, result, is_highlighted, content_hash
            FROM game
            WHERE season = ?
            ORDER BY game_date, game_time
        """, (season,))
        cols = [c[0] for c in cursor.description]
        return [cls.from_dict(dict(zip(cols, r))) for r in cursor.fetchall()]


def separate_games(games: List[Game], now: Optional[datetime.datetime] = None) -> Tuple[List[Game], List[Game]]:
    """
    Split into (upcoming, past). Upcoming soonest first, past most recent first.
    Games without a date count as past.
    """
    now = now or datetime.datetime.now()
    upcoming, past = [], []
    for g in games:
        start = g.starts_at()
        if start is not None and start > now:
            upcoming.append(g)
        else:
            past.append(g)

    upcoming.sort(key=lambda g: g.starts_at())
    past.sort(key=lambda g: g.starts_at() or datetime.datetime.min, reverse=True)
    return upcoming, past
