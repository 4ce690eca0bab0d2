# src/models/sync_lock.py

import datetime
import logging
import sqlite3
from typing import Optional


def acquire_lock(
        cursor:         sqlite3.Cursor,
        lock_name:      str,
        owner:          str,
        ttl_seconds:    int,
        now:            Optional[datetime.datetime] = None
    ) -> bool:
    """
    Take the named run lock for `owner`.

    Returns False if another owner holds a lock that has not expired yet.
    An expired lock (crashed run) is taken over. Re-acquiring your own lock extends it.
    """
    now = now or datetime.datetime.now()
    expires_at = now + datetime.timedelta(seconds=ttl_seconds)

    cursor.execute("""
        INSERT INTO sync_lock (lock_name, owner, acquired_at, expires_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT (lock_name) DO UPDATE SET
            owner       = excluded.owner,
            acquired_at = excluded.acquired_at,
            expires_at  = excluded.expires_at
        WHERE sync_lock.expires_at <= ? OR sync_lock.owner = excluded.owner
    """, (lock_name, owner, now, expires_at, now))
    acquired = cursor.rowcount > 0
    cursor.connection.commit()

    if acquired:
        logging.info(f"Lock '{lock_name}' acquired by {owner} until {expires_at:%Y-%m-%d %H:%M:%S}")
    else:
        cursor.execute("SELECT owner, expires_at FROM sync_lock WHERE lock_name = ?", (lock_name,))
        row = cursor.fetchone()
        logging.warning(f"Lock '{lock_name}' is held by {row[0] if row else '?'} until {row[1] if row else '?'}")
    return acquired


def release_lock(cursor: sqlite3.Cursor, lock_name: str, owner: str) -> bool:
    """Release the lock if `owner` still holds it."""
    cursor.execute("DELETE FROM sync_lock WHERE lock_name = ? AND owner = ?", (lock_name, owner))
    released = cursor.rowcount > 0
    cursor.connection.commit()
    if released:
        logging.info(f"Lock '{lock_name}' released by {owner}")
    return released
