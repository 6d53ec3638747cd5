"""
Ladderboard — Roster & Ranked Ladder Tracker for a Gaming Community
=====================================================================
Registers community members, periodically pulls their ranked standing and
recent matches from the Riot TFT API, and serves a leaderboard plus an
admin API on top of the stored results.

Package layout::

    ladderboard/
    ├── config.py           # env / YAML → typed Python config
    ├── constants.py        # queue variants, tier order, lobby size
    ├── scheduler.py        # ``python -m ladderboard.scheduler`` cron sweep
    ├── database/
    │   ├── engine.py       # SQLAlchemy engine + session helper
    │   └── models.py       # members, matches, participations, sync_logs
    ├── engine/
    │   ├── recent.py       # rolling record codec + win-rate rule
    │   └── ranking.py      # leaderboard comparator
    ├── services/
    │   ├── errors.py       # sync error taxonomy
    │   ├── riot_client.py  # external ranked API client
    │   ├── sync_state.py   # per-member bookkeeping + audit log writes
    │   ├── sync_runner.py  # retry / backoff engine
    │   ├── member_sync.py  # single-pass member sync orchestrator
    │   ├── batch_service.py  # stale-member batch coordinator
    │   ├── retention_service.py  # sync log pruning
    │   └── member_service.py     # admin create / delete
    └── api/
        ├── main.py         # FastAPI app
        ├── deps.py         # dependency injection
        └── routes/         # public, members, admin
"""

__version__ = "0.1.0"
