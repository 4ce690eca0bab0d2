# db.py:

import os
import sqlite3
from config import DB_NAME
import logging
import datetime
from contextlib import contextmanager

# --- register adapters/converters once (Python 3.12+ friendly) ---
_ADAPTERS_REGISTERED = False

def get_conn(db_name=None):

    db_name = db_name or DB_NAME
    try:
        _register_sqlite_date_time_adapters()

        # Same data/ tree as the log file; created on first run
        if db_name != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(db_name)), exist_ok=True)

        # Enable parsing for declared column types (DATE/TIMESTAMP)
        conn = sqlite3.connect(
            db_name,
            detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
        )
        logging.debug(f"Connected to database: {db_name}")

        conn.execute("PRAGMA journal_mode = WAL;")
        conn.execute("PRAGMA synchronous = NORMAL;")
        conn.execute("PRAGMA temp_store = MEMORY;")
        conn.execute("PRAGMA foreign_keys = ON;")

        return conn, conn.cursor()

    except sqlite3.Error as e:
        print(f"❌ Database connection failed: {e}")
        raise


def compact_sqlite(db_name=None):
    print("ℹ️  Compacting SQLite database...")
    try:
        con = sqlite3.connect(db_name or DB_NAME)
        con.execute("PRAGMA wal_checkpoint(TRUNCATE);")
        con.execute("VACUUM;")  # rebuilds/shrinks the same file
        con.close()
    except sqlite3.Error as e:
        print(f"❌ Error during database compaction: {e}")
        raise


def _register_sqlite_date_time_adapters() -> None:
    global _ADAPTERS_REGISTERED
    if _ADAPTERS_REGISTERED:
        return

    # Serialize Python date/datetime -> ISO strings
    sqlite3.register_adapter(datetime.date, lambda d: d.isoformat())
    sqlite3.register_adapter(datetime.datetime, lambda dt: dt.isoformat(sep=" "))

    # Parse DB values back into Python objects for columns declared as DATE/TIMESTAMP
    sqlite3.register_converter("DATE", lambda b: datetime.date.fromisoformat(b.decode()))
    sqlite3.register_converter("TIMESTAMP", lambda b: datetime.datetime.fromisoformat(b.decode()))

    _ADAPTERS_REGISTERED = True

@contextmanager
def savepoint(cursor, name):
    """
    Make a group of statements all-or-nothing without committing the surrounding work.
    Rolled back to the savepoint (and re-raised) on any exception.
    """
    cursor.execute(f"SAVEPOINT {name}")
    try:
        yield cursor
    except Exception:
        cursor.execute(f"ROLLBACK TO SAVEPOINT {name}")
        cursor.execute(f"RELEASE SAVEPOINT {name}")
        raise
    cursor.execute(f"RELEASE SAVEPOINT {name}")

def drop_tables(cursor, logger, tables):

    dropped = []
    for table_name in tables:
        try:
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name=?;",
                (table_name,)   # single element tuple explains why we use a comma here
            )
            if cursor.fetchone():
                cursor.execute(f"DROP TABLE IF EXISTS {table_name}")
                dropped.append(table_name)
            else:
                logger.warning({}, f"Table not found, skipping drop: {table_name}", to_console=True)
        except sqlite3.Error as e:
            logger.failed({}, f"Error dropping table {table_name}: {e}", to_console=True)
    if not dropped:
        logger.info("No tables dropped.", to_console=True)
    else:
        logger.info(f"Dropped {len(dropped)} tables: {', '.join(dropped)}", to_console=True)

def create_tables(cursor):

    try:

        logging.info("Creating tables if needed...")
        logging.info("-------------------------------------------------------------------")

        # Teams. swiss_id NULL = created by hand in the admin panel, never touched by the sync.
        # display_name, category, description, contact_email and display_order are owned by the club.
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS team (
                team_id                             INTEGER PRIMARY KEY AUTOINCREMENT,
                swiss_id                            INTEGER UNIQUE,
                name                                TEXT NOT NULL,
                slug                                TEXT,
                team_photo_url                      TEXT,
                is_active                           BOOLEAN DEFAULT 1,
                display_name                        TEXT,
                category                            TEXT,
                description                         TEXT,
                contact_email                       TEXT,
                display_order                       INTEGER DEFAULT 0,
                content_hash                        TEXT,
                last_synced_at                      TIMESTAMP,
                row_created                         TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                row_updated                         TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        # Players. birth_date, photo_url and user_id are owned by the club / the player account.
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS player (
                player_id                           INTEGER PRIMARY KEY AUTOINCREMENT,
                swiss_id                            INTEGER UNIQUE,
                first_name                          TEXT NOT NULL,
                last_name                           TEXT NOT NULL,
                is_active                           BOOLEAN DEFAULT 1,
                birth_date                          DATE,
                photo_url                           TEXT,
                user_id                             TEXT,
                content_hash                        TEXT,
                last_synced_at                      TIMESTAMP,
                row_created                         TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                row_updated                         TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        # Team <-> player assignment, attributes owned by the federation for synced players
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS team_player (
                team_id                             INTEGER NOT NULL,
                player_id                           INTEGER NOT NULL,
                jersey_number                       INTEGER,
                position                            TEXT CHECK (position IN ('goalkeeper', 'defender', 'forward')),
                photo_url                           TEXT,
                row_created                         TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (team_id)               REFERENCES team(team_id)        ON DELETE CASCADE,
                FOREIGN KEY (player_id)             REFERENCES player(player_id)    ON DELETE CASCADE,
                UNIQUE (team_id, player_id)
            )
        ''')

        # Club schedule from the api-v2 games endpoint
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS game (
                game_id                             INTEGER PRIMARY KEY AUTOINCREMENT,
                game_id_ext                         TEXT NOT NULL,
                season                              TEXT,
                game_date                           DATE,
                game_time                           TEXT,
                location                            TEXT,
                location_x                          REAL,
                location_y                          REAL,
                league                              TEXT,
                home_team                           TEXT,
                away_team                           TEXT,
                result                              TEXT,
                is_highlighted                      BOOLEAN DEFAULT 0,
                content_hash                        TEXT,
                last_seen_at                        TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                row_created                         TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                row_updated                         TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (game_id_ext)
            )
        ''')

        # One row per named lock, expires_at lets a crashed run release itself
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS sync_lock (
                lock_name                           TEXT PRIMARY KEY,
                owner                               TEXT NOT NULL,
                acquired_at                         TIMESTAMP NOT NULL,
                expires_at                          TIMESTAMP NOT NULL
            )
        ''')

        ############ DEBUG TABLES ######################

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS log_details (
                id                      INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id                  TEXT NOT NULL,
                run_date                DATETIME DEFAULT CURRENT_TIMESTAMP,
                object_type             TEXT NOT NULL,      -- Same as parent run
                process_type            TEXT NOT NULL,      -- Same as parent run
                function_name           TEXT NOT NULL,
                filename                TEXT NOT NULL,
                context_json            TEXT,
                status                  TEXT NOT NULL,      -- 'error', 'warning', 'skipped', 'success'
                message                 TEXT NOT NULL,
                msg_id                  TEXT
            );
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS log_runs (
                id                      INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id                  TEXT NOT NULL,
                run_date                DATETIME DEFAULT CURRENT_TIMESTAMP,
                object_type             TEXT NOT NULL,          -- e.g., 'team', 'player', 'game'
                process_type            TEXT NOT NULL,          -- e.g., 'sync'
                records_processed       INTEGER DEFAULT 0,
                records_success         INTEGER DEFAULT 0,
                records_failed          INTEGER DEFAULT 0,
                records_skipped         INTEGER DEFAULT 0,
                records_warnings        INTEGER DEFAULT 0,
                runtime_seconds         REAL,
                remarks                 TEXT
            );
        ''')

    except sqlite3.Error as e:
        print(f"Error creating tables: {e}")
        logging.error(f"Error creating tables: {e}")
        raise

def create_indexes(cursor):

    indexes = [
        # -------------------------------
        # Team Player
        # -------------------------------
        # "Does this player still belong to any team?" (orphan cleanup)
        "CREATE INDEX IF NOT EXISTS idx_team_player_player ON team_player(player_id)",

        # -------------------------------
        # Game
        # -------------------------------
        # Sorting / filtering schedule by date
        "CREATE INDEX IF NOT EXISTS idx_game_date ON game(game_date)",

        # -------------------------------
        # Logs
        # -------------------------------
        "CREATE INDEX IF NOT EXISTS idx_log_details_run ON log_details(run_id)",
    ]

    try:
        for stmt in indexes:
            cursor.execute(stmt)

    except sqlite3.Error as e:
        print(f"Error creating indexes: {e}")
        logging.error(f"Error creating indexes: {e}")
        raise
