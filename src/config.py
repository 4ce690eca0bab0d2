# config.py

LOG_FILE                                = "../data/logs/log.log"
LOG_LEVEL                               = "INFO"    # Options: DEBUG, INFO, WARNING, ERROR, CRITICAL
DB_NAME                                 = "../data/club.db"

# Swiss Unihockey
SWISS_API_BASE                          = "https://unihockey.swiss/api"
SWISS_GAMES_API_BASE                    = "https://api-v2.swissunihockey.ch/api/games"
SWISS_RANKINGS_API_BASE                 = "https://api-v2.swissunihockey.ch/api/rankings"
SWISS_CLUB_ID                           = 805       # ClubID used by the club/team admin API
SWISS_GAMES_CLUB_ID                     = "447636"  # club_id used by the api-v2 games endpoint
SWISS_SEASON                            = "2025"

REQUEST_TIMEOUT                         = 20        # Seconds per HTTP request
REQUEST_DELAY                           = 0         # Seconds to sleep between team player requests

# Sync behaviour
SYNC_REMOVED_TEAM_POLICY                = "delete"  # "delete" or "deactivate" for teams no longer listed by the API
SYNC_DELETE_ORPHAN_PLAYERS              = True      # Delete synced players that end a run without any team
SYNC_LOCK_TTL_SECONDS                   = 30 * 60   # A crashed run releases its lock after this many seconds
SYNC_GAMES                              = True      # Also refresh the club schedule into the game table
SYNC_GAMES_PER_PAGE                     = 100
