# src/models/team_raw.py

from dataclasses import dataclass
from typing import Optional, Dict, Any, Tuple
from errors import DataShapeError
from utils import slugify

@dataclass
class TeamRaw:
    """
    One team as listed by clubapi/initclubteams.
    Never persisted as such; resolved into team rows by upd_teams.
    """
    swiss_id:       Optional[int] = None    # TeamID
    name:           Optional[str] = None    # TeamName
    alias:          Optional[str] = None    # TeamAlias, source of the slug
    photo_url:      Optional[str] = None    # TeamBanner.PictureURLimage800

    @staticmethod
    def from_api(d: Dict[str, Any]) -> "TeamRaw":
        banner = d.get("TeamBanner") or {}
        return TeamRaw(
            swiss_id    = _to_int(d.get("TeamID")),
            name        = (d.get("TeamName") or "").strip() or None,
            alias       = (d.get("TeamAlias") or "").strip() or None,
            photo_url   = banner.get("PictureURLimage800") or None,
        )

    def validate(self) -> Tuple[bool, str]:
        missing = []
        if self.swiss_id is None:
            missing.append("swiss_id")
        if not self.name:
            missing.append("name")
        if missing:
            return False, f"Missing fields: {', '.join(missing)}"
        return True, ""

    def ensure_valid(self) -> "TeamRaw":
        is_valid, msg = self.validate()
        if not is_valid:
            raise DataShapeError(msg, swiss_id=self.swiss_id)
        return self

    def to_synced_fields(self) -> Dict[str, Any]:
        """
        Values for the team columns the federation owns.
        A missing photo is written as NULL: the API is authoritative, also for "no value".
        """
        return {
            "name":             self.name,
            "slug":             slugify(self.alias or self.name),
            "team_photo_url":   self.photo_url,
            "is_active":        1,
        }


def _to_int(value) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
