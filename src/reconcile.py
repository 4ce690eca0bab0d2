# src/reconcile.py

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, Set, Tuple, TypeVar

E = TypeVar("E")    # external item (TeamRaw, PlayerRaw)
L = TypeVar("L")    # local row (Team, Player)


@dataclass
class SyncPlan(Generic[E, L]):
    """What one reconciliation run has to do, before anything is written."""
    to_create:      List[E]             = field(default_factory=list)
    to_update:      List[Tuple[L, E]]   = field(default_factory=list)   # (local, external)
    to_delete:      List[L]             = field(default_factory=list)
    duplicates:     List[E]             = field(default_factory=list)   # repeated external ids in one batch
    kept:           List[L]             = field(default_factory=list)   # listed, but not usable this run
    external_ids:   set                 = field(default_factory=set)


def build_sync_plan(
        external_items: List[E],
        local_items:    List[L],
        external_key:   Callable[[E], Any],
        local_key:      Callable[[L], Any],
        keep_ids:       Optional[Set[Any]] = None,
    ) -> SyncPlan:
    """
    Diff an external list against the local rows that carry an external id.

    1) lookup external_id -> local (locals without an id are left out entirely)
    2) set of external ids
    3) every external item is an update (id known) or a create (id unknown)
    4) every local whose id is no longer listed is a delete, unless its id is in
       keep_ids (listed by the source but skipped as invalid): those go to kept

    External items must already be valid. For a repeated id the first occurrence wins.
    Order of external_items is kept in to_create / to_update.
    """
    keep_ids = keep_ids or set()
    lookup: Dict[Any, L] = {}
    for local in local_items:
        key = local_key(local)
        if key is not None:
            lookup[key] = local

    plan = SyncPlan()
    for item in external_items:
        key = external_key(item)
        if key in plan.external_ids:
            plan.duplicates.append(item)
            continue
        plan.external_ids.add(key)

        local = lookup.get(key)
        if local is not None:
            plan.to_update.append((local, item))
        else:
            plan.to_create.append(item)

    for key, local in lookup.items():
        if key in plan.external_ids:
            continue
        if key in keep_ids:
            plan.kept.append(local)
        else:
            plan.to_delete.append(local)
    return plan


@dataclass
class SyncResult:
    """Counters for one phase (teams, one team's players, games) or an aggregate of several."""
    phase:                  str
    created:                int = 0
    updated:                int = 0
    unchanged:              int = 0
    deleted:                int = 0
    deactivated:            int = 0
    memberships_replaced:   int = 0
    memberships_removed:    int = 0
    orphans_deleted:        int = 0
    skipped:                int = 0
    failed:                 int = 0
    fetch_failed:           bool = False
    errors:                 List[Tuple[Any, str]] = field(default_factory=list)   # (swiss_id, message)

    def add_error(self, swiss_id: Any, message: str, *, skipped: bool = False):
        if skipped:
            self.skipped += 1
        else:
            self.failed += 1
        self.errors.append((swiss_id, message))

    @property
    def writes(self) -> int:
        """Rows written by this run. 0 on a second run against an unchanged source."""
        return (self.created + self.updated + self.deleted + self.deactivated
                + self.memberships_replaced + self.memberships_removed + self.orphans_deleted)

    @property
    def status(self) -> str:
        if self.fetch_failed:
            return "failed"
        if self.failed or self.skipped:
            return "completed_with_errors"
        return "success"

    def merge(self, other: "SyncResult") -> "SyncResult":
        for name in ("created", "updated", "unchanged", "deleted", "deactivated",
                     "memberships_replaced", "memberships_removed", "orphans_deleted",
                     "skipped", "failed"):
            setattr(self, name, getattr(self, name) + getattr(other, name))
        self.fetch_failed = self.fetch_failed or other.fetch_failed
        self.errors.extend(other.errors)
        return self

    def summary(self) -> str:
        return (
            f"{self.phase}: {self.created} created, {self.updated} updated, "
            f"{self.unchanged} unchanged, {self.deleted} deleted, {self.deactivated} deactivated, "
            f"{self.orphans_deleted} orphans deleted, {self.skipped} skipped, {self.failed} failed "
            f"[{self.status}]"
        )


def to_dict(result: Optional[SyncResult]) -> Dict[str, Any]:
    if result is None:
        return {}
    return {
        "phase":                result.phase,
        "status":               result.status,
        "created":              result.created,
        "updated":              result.updated,
        "unchanged":            result.unchanged,
        "deleted":              result.deleted,
        "deactivated":          result.deactivated,
        "memberships_replaced": result.memberships_replaced,
        "memberships_removed":  result.memberships_removed,
        "orphans_deleted":      result.orphans_deleted,
        "skipped":              result.skipped,
        "failed":               result.failed,
    }
