# src/models/player_raw.py

from dataclasses import dataclass
from typing import Optional, Dict, Any, Tuple
from errors import DataShapeError
from models.team_raw import _to_int
from models.team_player import POSITIONS

@dataclass
class PlayerRaw:
    """
    One roster line from teamapi/initplayersadminvc.
    Carries both the player (PlayerID) and the assignment attributes for this team.
    """
    swiss_id:           Optional[int] = None    # PlayerID, stable across teams
    team_swiss_id:      Optional[int] = None    # TeamID
    first_name:         Optional[str] = None
    last_name:          Optional[str] = None
    shirt_number:       Optional[int] = None
    position:           Optional[str] = None    # normalized, None = unknown
    thumbnail_url:      Optional[str] = None    # None if the API only has its default avatar

    @staticmethod
    def from_api(d: Dict[str, Any]) -> "PlayerRaw":
        return PlayerRaw(
            swiss_id        = _to_int(d.get("PlayerID")),
            team_swiss_id   = _to_int(d.get("TeamID")),
            first_name      = (d.get("FirstName") or "").strip() or None,
            last_name       = (d.get("LastName") or "").strip() or None,
            shirt_number    = _to_int(d.get("ShirtNumber")),
            position        = normalize_position(d.get("Position")),
            thumbnail_url   = normalize_thumbnail(d.get("ThumbnailURL")),
        )

    def validate(self) -> Tuple[bool, str]:
        missing = []
        if self.swiss_id is None:
            missing.append("swiss_id")
        if not self.first_name:
            missing.append("first_name")
        if not self.last_name:
            missing.append("last_name")
        if missing:
            return False, f"Missing fields: {', '.join(missing)}"
        return True, ""

    def ensure_valid(self) -> "PlayerRaw":
        is_valid, msg = self.validate()
        if not is_valid:
            raise DataShapeError(msg, swiss_id=self.swiss_id)
        return self

    def to_synced_fields(self) -> Dict[str, Any]:
        return {
            "first_name":   self.first_name,
            "last_name":    self.last_name,
            "is_active":    1,
        }


def normalize_position(value: Optional[str]) -> Optional[str]:
    """'Goalkeeper' -> 'goalkeeper'; anything outside goalkeeper/defender/forward is unknown (None)."""
    if not value:
        return None
    value = value.strip().lower()
    return value if value in POSITIONS else None


def normalize_thumbnail(url: Optional[str]) -> Optional[str]:
    if not url or "defaultplayeravatar" in url:
        return None
    return url
