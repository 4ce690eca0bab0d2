# src/utils.py
# Reusable helpers: logging setup, the per-run OperationLogger, hashing, date parsing and log exports.

import hashlib
import inspect
import json
import time
import pandas as pd
from collections import defaultdict
import logging
import os
import re
from datetime import datetime, date
from config import LOG_FILE, LOG_LEVEL
from typing import Any, Dict, Iterable, Optional, Union
import sqlite3
import uuid
from db import get_conn


def setup_logging(log_file: str = LOG_FILE, log_level: str = LOG_LEVEL):

    # DEBUG: Detailed logs for development and debugging.
    # INFO: High-level events (like sync start, phase completion).
    # WARNING: Non-critical issues that should be looked at.
    # ERROR: Serious issues that affect functionality but the run can continue.
    # CRITICAL: Fatal errors, the run cannot continue.

    # Create log directory if not exists (derive from log_file)
    log_dir = os.path.dirname(os.path.abspath(log_file))
    os.makedirs(log_dir, exist_ok=True)

    # Clear any existing handlers to avoid duplicates
    logging.getLogger().handlers = []

    # File handler with UTF-8 encoding
    file_handler = logging.FileHandler(log_file, encoding='utf-8', mode='a')  # 'a' for append
    file_handler.setLevel(log_level)
    file_formatter = logging.Formatter('[%(asctime)s] %(levelname)-8s %(filename)-32.32s%(lineno)-5d%(funcName)-35.35s: %(message)-100s', datefmt='%b %d %a] [%H:%M:%S')
    file_handler.setFormatter(file_formatter)

    logging.getLogger().addHandler(file_handler)
    logging.getLogger().setLevel(log_level)

    logging.info(f"Logging configured to {log_file} at level {log_level}")
    logging.info("-------------------------------------------------------------------")
    print(f"Logging configured to {log_file} at level {log_level}")
    print("-------------------------------------------------------------------")

def parse_date(date_str, context=None, return_iso=False):
    """
    Parse a date string in 'YYYY-MM-DD', 'DD.MM.YYYY' (Swiss Unihockey) or 'YYYYMMDD' into a datetime.date object.
    If input is already a datetime.date, returns it unchanged (or as ISO string if requested).
    Optionally returns the date in ISO format ('YYYY-MM-DD') string.
    """
    if isinstance(date_str, date):
        return date_str.isoformat() if return_iso else date_str

    date_str = date_str.strip() if date_str else "None"
    for fmt in ("%Y-%m-%d", "%d.%m.%Y", "%d.%m.%y", "%Y%m%d"):
        try:
            parsed = datetime.strptime(date_str, fmt).date()
            return parsed.isoformat() if return_iso else parsed
        except ValueError:
            continue
    logging.debug(f"Invalid date format: {date_str} (context: {context or 'unknown calling function'})")
    return None

def slugify(text: Optional[str]) -> Optional[str]:
    """
    Lowercase and replace whitespace runs with '-'.
    Example: 'Herren I' -> 'herren-i'
    """
    if text is None:
        return None
    return re.sub(r"\s+", "-", text.strip().lower())

def compute_content_hash(values: Dict[str, Any], include_fields: Iterable[str] = None) -> str:
    """
    Compute a stable SHA256 hash over a dict of column values.
    Only include_fields are hashed (all keys if None), in the given order.
    - strings are hashed as-is (a changed capital letter is a change)
    - dates use ISO format
    - booleans are cast to int (0/1)
    - None → empty string
    """
    keys = list(include_fields) if include_fields is not None else sorted(values)

    parts = []
    for key in keys:
        value = values.get(key)
        if value is None:
            parts.append("")
        elif isinstance(value, str):
            parts.append(value)
        elif isinstance(value, date):
            parts.append(value.isoformat())
        elif isinstance(value, bool):
            parts.append(str(int(value)))
        else:
            parts.append(str(value))  # int, float, fallback

    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


class OperationLogger:
    """
    Tracks success, failed, skipped and warnings for one sync phase (teams, players, games).

    Usage:
    - Initialize at the start of a phase:
      logger = OperationLogger(verbosity=2, print_output=False, log_to_db=True, cursor=cursor,
                               object_type="team", run_type="sync", run_id=run_id)
    - Add messages during processing:
      logger.success({"swiss_id": 1}, 'Team created')
      logger.failed({"swiss_id": 2}, 'Insert error: UNIQUE constraint failed')
      logger.skipped({"swiss_id": None}, 'Missing swiss_id')
      logger.warning({"swiss_id": 4}, 'Duplicate swiss_id in API response')
    - Call summarize() at the end, commit_run_summary() to persist it.

    Parameters:
    - verbosity (int): Controls detail level:
        0: Summary totals only.
        1: Totals + reason breakdowns (default), failures to the log file.
        2: Level 1 + warnings to the log file.
        3: Level 2 + every success/skip to the log file and log_details.
    - print_output (bool): Default for console printing when to_console is not given.
    - log_to_db (bool): If True, failures and warnings go to log_details (requires cursor).
    - cursor (sqlite3.Cursor): DB cursor for log_details / log_runs.
    - run_id (str): Shared by all phases of one pipeline run. Generated if omitted.
    """
    def __init__(
        self,
        verbosity:      int = 1,
        print_output:   bool = True,
        log_to_db:      bool = False,
        cursor:         Optional[sqlite3.Cursor] = None,
        object_type:    Optional[str] = None,   # e.g., 'team', 'player', 'game'
        run_type:       Optional[str] = None,   # e.g., 'sync'
        run_id:         Optional[str] = None
    ):
        self.run_id             = run_id or str(uuid.uuid4())
        self.verbosity          = verbosity
        self.print_output       = print_output
        self.log_to_db          = log_to_db
        self.cursor             = cursor if log_to_db else None
        self.results            = defaultdict(lambda: {"success": 0, "failed": 0, "skipped": 0})
        self.reasons            = {"success": defaultdict(int), "failed": defaultdict(int), "skipped": defaultdict(int), "warning": defaultdict(int)}
        self.individual_logs    = []
        self.object_type        = object_type
        self.run_type           = run_type
        self.run_remark         = None
        self.processed          = 0
        self.start_time         = time.time()

        if log_to_db and not cursor:
            raise ValueError("Cursor required if log_to_db is True")

    def inc_processed(self, n: int = 1):
        """Increment number of processed records (used for throughput)."""
        self.processed += n

    def set_run_remark(self, remark: str):
        """Free-text remark stored with the run summary (filters, club id, policy...)."""
        self.run_remark = remark

    def _format_msg(self, context: dict, reason: str) -> str:
        return f"({', '.join(f'{k}: {v}' for k,v in context.items())}): {reason}"

    def _enrich_context(self, context: dict) -> dict:
        """
        Enrich context dict with readable names by querying DB.
        Adds 'team_name' / 'player_name' if team_id / player_id present.
        """
        enriched = context.copy()

        for key, value in enriched.items():
            if isinstance(value, date):
                enriched[key] = value.isoformat()

        if enriched.get('team_id') is not None and self.cursor:
            try:
                self.cursor.execute(
                    "SELECT COALESCE(display_name, name) FROM team WHERE team_id = ?",
                    (enriched['team_id'],)
                )
                row = self.cursor.fetchone()
                if row:
                    enriched['team_name'] = row[0]
            except sqlite3.Error as e:
                logging.debug(f"Could not enrich team context: {e}")

        if enriched.get('player_id') is not None and self.cursor:
            try:
                self.cursor.execute(
                    "SELECT first_name, last_name FROM player WHERE player_id = ?",
                    (enriched['player_id'],)
                )
                row = self.cursor.fetchone()
                if row:
                    enriched['player_name'] = f"{row[0]} {row[1]}".strip()
            except sqlite3.Error as e:
                logging.debug(f"Could not enrich player context: {e}")

        return enriched

    def _to_context(self, context: Union[dict, str]) -> dict:
        if isinstance(context, str):
            return {'key': context}
        return context

    def _log_to_db(self, status: str, context_json: str, reason: str, msg_id: Optional[str], function_name: str, filename: str):
        if not self.cursor:
            return
        try:
            self.cursor.execute('''
                INSERT INTO log_details (
                    run_id, run_date, object_type, process_type,
                    function_name, filename, context_json, status, message, msg_id
                ) VALUES (?, CURRENT_TIMESTAMP, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                self.run_id,
                self.object_type or "unknown",
                self.run_type or "unknown",
                function_name,
                filename,
                context_json,
                status,
                reason,
                msg_id
            ))
        except sqlite3.Error as e:
            logging.error(f"Error logging {status} to DB: {e}")

    def _record(
        self,
        status:         str,
        context:        Union[dict, str],
        reason:         str,
        msg_id:         Optional[str],
        to_console:     Optional[bool],
        emoji:          str,
        show_key:       bool,
        log_level:      int,
        min_verbosity:  int,
        db_verbosity:   int,
    ):
        context = self._to_context(context)
        if status != "warning":
            self.results[str(context)][status] += 1
        self.reasons[status][reason] += 1

        # Caller of success()/failed()/... is two frames up
        frame = inspect.currentframe().f_back.f_back
        function_name = frame.f_code.co_name
        filename = os.path.basename(inspect.getfile(frame))

        enriched_context = self._enrich_context(context)
        context_json = json.dumps(enriched_context, default=str)

        if show_key:
            msg = self._format_msg(enriched_context, reason)
        else:
            msg = reason

        if self.verbosity >= db_verbosity:
            self._log_to_db("error" if status == "failed" else status, context_json, reason, msg_id, function_name, filename)

        if self.verbosity >= min_verbosity:
            logging.log(log_level, msg, stacklevel=3)

        should_print = self.print_output if to_console is None else to_console
        if should_print:
            print(f"{emoji} {msg}")

        self.individual_logs.append({
            'status': "error" if status == "failed" else status,
            'context': enriched_context,
            'message': reason,
            'msg_id': msg_id,
            'function_name': function_name,
            'filename': filename
        })

    def info(
        self,
        item_key_or_message: Union[dict, str],
        reason: Optional[str] = None,
        *,
        show_key: bool = True,
        to_console: Optional[bool] = None,
        emoji: str = "ℹ️ ",
    ):
        """
        Usage:
        logger.info("Syncing teams...", to_console=True)              # message-only
        logger.info({"swiss_id": 12}, "Fetching players")             # with key

        Does NOT affect counters/summaries.
        """
        if reason is None:
            log_msg = str(item_key_or_message)
        elif isinstance(item_key_or_message, dict):
            log_msg = self._format_msg(item_key_or_message, reason) if show_key else reason
        else:
            log_msg = f"{item_key_or_message}: {reason}" if (item_key_or_message and show_key) else reason

        logging.info(log_msg, stacklevel=2)

        should_print = self.print_output if to_console is None else to_console
        if should_print:
            print(f"{emoji} {log_msg}")

    def success(
        self,
        context: Union[dict, str],
        reason: Optional[str] = "Success",
        msg_id: Optional[str] = None,
        *,  # keyword-only after this
        to_console: Optional[bool] = False,
        emoji: str = "✅ ",
        show_key: bool = True,
    ):
        self._record("success", context, reason, msg_id, to_console, emoji, show_key,
                     logging.INFO, min_verbosity=3, db_verbosity=3)

    def failed(
        self,
        context: Union[dict, str],
        reason: Optional[str] = "Failed",
        msg_id: Optional[str] = None,
        *,  # keyword-only after this
        to_console: Optional[bool] = False,
        emoji: str = "❌ ",
        show_key: bool = True,
    ):
        # Failures always go to log_details
        self._record("failed", context, reason, msg_id, to_console, emoji, show_key,
                     logging.ERROR, min_verbosity=1, db_verbosity=0)

    def skipped(
        self,
        context: Union[dict, str],
        reason: Optional[str] = "Skipped",
        msg_id: Optional[str] = None,
        *,  # keyword-only after this
        to_console: Optional[bool] = False,
        emoji: str = "⏭️  ",
        show_key: bool = True,
    ):
        self._record("skipped", context, reason, msg_id, to_console, emoji, show_key,
                     logging.WARNING, min_verbosity=2, db_verbosity=2)

    def warning(
        self,
        context: Union[dict, str],
        reason: str,
        msg_id: Optional[str] = None,
        *,
        to_console: Optional[bool] = False,
        emoji: str = "⚠️  ",
        show_key: bool = True,
    ):
        self._record("warning", context, reason, msg_id, to_console, emoji, show_key,
                     logging.WARNING, min_verbosity=2, db_verbosity=0)

    def totals(self) -> Dict[str, int]:
        return {
            "success":  sum(d["success"] for d in self.results.values()),
            "failed":   sum(d["failed"] for d in self.results.values()),
            "skipped":  sum(d["skipped"] for d in self.results.values()),
            "warning":  sum(self.reasons["warning"].values()),
        }

    def summarize(self):
        """Generate and print/log the full summary, always including totals, one line at a time."""
        totals = self.totals()

        lines = []
        lines.append(f"📊 Operation Summary ({self.object_type or 'unknown'}):")
        for status, emoji, label in [
            ("success", "✅", "Success"),
            ("failed",  "❌", "Failed"),
            ("skipped", "⏭️ ", "Skipped"),
            ("warning", "⚠️ ", "Warnings"),
        ]:
            lines.append(f"   {emoji} {label}: {totals[status]}")
            if self.verbosity >= 1:
                for reason, count in self.reasons[status].items():
                    lines.append(f"      • {reason}: {count}")

        runtime_seconds = time.time() - self.start_time
        lines.append("")
        lines.append(f"   ⏱️  Runtime: {runtime_seconds:.1f}s")
        lines.append(f"   📦 Records processed: {self.processed}")
        if runtime_seconds > 0:
            throughput = self.processed / runtime_seconds
            lines.append(f"   ⚡ Throughput: {throughput:.1f} records/sec")

        for line in lines:
            logging.info(line, stacklevel=2)
            if self.print_output:
                print(line)

    def commit_run_summary(self, cursor: Optional[sqlite3.Cursor] = None, remarks: Optional[str] = None):
        cursor = cursor or self.cursor
        if cursor is None:
            return
        runtime_seconds = time.time() - self.start_time
        totals = self.totals()

        cursor.execute("""
            INSERT INTO log_runs (
                run_id, object_type, process_type, records_processed,
                records_success, records_failed, records_skipped,
                records_warnings, runtime_seconds, remarks
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            self.run_id,
            self.object_type or "unknown",
            self.run_type or "unknown",
            self.processed, totals["success"], totals["failed"],
            totals["skipped"], totals["warning"], runtime_seconds,
            remarks or self.run_remark
        ))
        cursor.connection.commit()

def export_logs_to_excel(db_name: Optional[str] = None, path: str = "logs.xlsx"):
    """
    Export the latest run's record-level logs (log_details) to logs.xlsx.
    Always rewrites the file, so it only contains the most recent run.
    """
    conn, cursor = get_conn(db_name)
    df = pd.read_sql_query(
        "SELECT * FROM log_details WHERE run_id = (SELECT run_id FROM log_details ORDER BY id DESC LIMIT 1)",
        conn
    )
    conn.close()

    if df.empty:
        print("ℹ️  No logs to export.")
        logging.info("No logs to export.")
        return

    # Parse and flatten context_json into columns
    df['context'] = df['context_json'].apply(lambda x: json.loads(x) if x else {})
    context_df = pd.json_normalize(df['context'])
    df = pd.concat([df.drop(['context', 'context_json'], axis=1), context_df], axis=1)

    with pd.ExcelWriter(path, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name='All_Logs', index=False)

        # By status (split into tabs)
        for status in ['error', 'warning', 'skipped']:
            subset = df[df['status'] == status]
            if not subset.empty:
                subset.to_excel(writer, sheet_name=status.capitalize(), index=False)

        # One tab per object type (team / player / game)
        for object_type in df['object_type'].unique():
            subset = df[df['object_type'] == object_type]
            subset.to_excel(writer, sheet_name=f'obj_{object_type}'[:31], index=False)  # Excel sheet name limit

    print(f"ℹ️  Exported latest run logs to {path}")
    logging.info(f"Exported latest run logs to {path}")


def export_runs_to_excel(db_name: Optional[str] = None, path: str = "run_log.xlsx"):
    """
    Export the latest run-level summaries (log_runs) to run_log.xlsx.
    Always rewrites the file, so it only contains the most recent run.
    """
    conn, cursor = get_conn(db_name)
    df = pd.read_sql_query(
        "SELECT * FROM log_runs WHERE run_id = (SELECT run_id FROM log_runs ORDER BY id DESC LIMIT 1)",
        conn
    )
    conn.close()

    if df.empty:
        print("ℹ️  No run summaries to export.")
        logging.info("No run summaries to export.")
        return

    with pd.ExcelWriter(path, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name='Run_Summary', index=False)

    print(f"ℹ️  Exported latest run summary to {path}")
    logging.info(f"Exported latest run summary to {path}")


def clear_debug_tables(cursor: sqlite3.Cursor, clear_logs: bool = True, clear_runs: bool = False):
    """
    Clear debug tables based on flags.

    - clear_logs=True  → clears log_details table (record-level logs).
    - clear_runs=True  → clears log_runs table (run-level summaries).
    """
    try:
        if clear_logs:
            cursor.execute("DELETE FROM log_details")
            logging.info("log_details table cleared.")

        if clear_runs:
            cursor.execute("DELETE FROM log_runs")
            logging.info("log_runs table cleared.")

        cursor.connection.commit()
    except sqlite3.Error as e:
        logging.error(f"Error clearing tables: {e}")
        print(f"❌ Error clearing tables: {e}")
        raise
