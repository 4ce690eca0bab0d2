# src/main.py

import logging
import sys
import uuid
from upd_swiss_unihockey    import upd_swiss_unihockey

from utils import (
    clear_debug_tables,
    export_logs_to_excel,
    export_runs_to_excel,
    setup_logging,
)

from db import (
    get_conn,
    create_tables,
    create_indexes,
)
from errors import SyncLockedError


def main():

    results = {}
    try:

        pipeline_run_id = str(uuid.uuid4())
        setup_logging()
        logging.info(f"Starting new run with ID: {pipeline_run_id}")

        ### DB stuff
        ################################################################################################
        # compact_sqlite()

        conn, cursor = get_conn()
        create_tables(cursor)
        create_indexes(cursor)
        clear_debug_tables(cursor, clear_logs=True, clear_runs=False)
        conn.commit()
        conn.close()

        ################################################################################################

        results = upd_swiss_unihockey(
            run_id              = pipeline_run_id,
            do_sync_teams       = True,
            do_sync_players     = True,
            # do_sync_games     = False,
        )

        export_runs_to_excel()
        export_logs_to_excel()

    except SyncLockedError as e:
        print(f"⚠️  {e}")
        sys.exit(2)

    except Exception as e:
        logging.error(f"Error: {e}", stack_info=True, stacklevel=3, exc_info=True)
        print(f"❌ Error: {e}")
        sys.exit(1)

    emojis = {"success": "✅", "completed_with_errors": "⚠️ ", "failed": "❌"}
    for result in results.values():
        print(f"{emojis[result.status]} {result.summary()}")

    if any(result.status == "failed" for result in results.values()):
        sys.exit(1)

if __name__ == "__main__":
    main()
