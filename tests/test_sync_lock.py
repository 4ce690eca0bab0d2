from __future__ import annotations

import datetime

from models.sync_lock import acquire_lock, release_lock

T0 = datetime.datetime(2025, 10, 18, 8, 0, 0)


def test_second_owner_is_refused_while_lock_is_live(cursor) -> None:
    assert acquire_lock(cursor, "sync", "run-a", ttl_seconds=600, now=T0)
    assert not acquire_lock(cursor, "sync", "run-b", ttl_seconds=600, now=T0 + datetime.timedelta(minutes=5))


def test_expired_lock_is_taken_over(cursor) -> None:
    acquire_lock(cursor, "sync", "run-a", ttl_seconds=600, now=T0)

    assert acquire_lock(cursor, "sync", "run-b", ttl_seconds=600, now=T0 + datetime.timedelta(minutes=11))
    cursor.execute("SELECT owner FROM sync_lock WHERE lock_name = 'sync'")
    assert cursor.fetchone()[0] == "run-b"


def test_same_owner_can_extend(cursor) -> None:
    acquire_lock(cursor, "sync", "run-a", ttl_seconds=600, now=T0)

    assert acquire_lock(cursor, "sync", "run-a", ttl_seconds=600, now=T0 + datetime.timedelta(minutes=1))


def test_release_only_by_owner(cursor) -> None:
    acquire_lock(cursor, "sync", "run-a", ttl_seconds=600, now=T0)

    assert not release_lock(cursor, "sync", "run-b")
    assert release_lock(cursor, "sync", "run-a")
    assert acquire_lock(cursor, "sync", "run-b", ttl_seconds=600, now=T0)
