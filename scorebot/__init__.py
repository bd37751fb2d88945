"""
ScoreBot — Community Challenge Bot for Discord
================================================
Members solve puzzles posted by challenge makers, spend points on hints,
and earn digital badges or secret text rewards.  Admins review every
challenge before it goes live and can reset progress or remove players.

Package layout::

    scorebot/
    ├── config.py          # YAML → typed Python config
    ├── errors.py          # Domain exception hierarchy
    ├── constants.py       # Limits + answer/hint normalization
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # ORM models (6 tables)
    ├── engine/
    │   ├── points.py      # Points calculator (difficulty × hint penalty)
    │   ├── lifecycle.py   # Challenge state machine
    │   ├── rewards.py     # Badge / text reward variants
    │   ├── pending.py     # Confirmation tokens
    │   ├── index.py       # In-memory index of approved challenges + sort orders
    │   └── paging.py      # Page arithmetic for listings
    ├── services/
    │   ├── challenge_service.py    # Challenge store + approval workflow
    │   ├── progress_service.py     # Progress store, stats, leaderboard
    │   ├── gameplay_service.py     # /hint and /submit flows
    │   ├── reward_service.py       # Reward dispatcher
    │   ├── badge_client.py         # Badgr HTTP client
    │   ├── announcement_service.py # Public posts + owner DMs
    │   ├── user_service.py         # Registration, admin deletion
    │   └── seed.py                 # challenges.yaml import
    ├── bot/
    │   ├── core.py        # Bot subclass, cog loader
    │   └── cogs/          # player, maker, admin slash commands
    └── api/
        ├── main.py        # FastAPI app
        └── routes/        # Public + admin REST endpoints
"""

__version__ = "0.1.0"
