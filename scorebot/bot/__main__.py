"""
scorebot.bot.__main__ — Entry point for ``python -m scorebot.bot``
==================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (soft settings).
3. Create the SQLAlchemy engine and ensure tables exist.
4. Import curated challenges from challenges.yaml (idempotent).
5. Build the approved-challenge index.
6. Create the ScoreBot and start it (blocking).

Run with::

    python -m scorebot.bot
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from scorebot.bot.core import ScoreBot
from scorebot.config import load_config
from scorebot.database.engine import create_db_engine, init_db
from scorebot.engine.index import ChallengeIndex
from scorebot.services.seed import reload_from_file

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("scorebot")


def main() -> None:
    """Bootstrap and run the ScoreBot."""

    # 1. Environment variables (secrets).
    load_dotenv()

    token = os.getenv("DISCORD_TOKEN")
    if not token or token == "your-discord-bot-token-here":
        logger.critical(
            "DISCORD_TOKEN is not set.  "
            "Copy .env.example → .env and paste your bot token."
        )
        sys.exit(1)

    # 2. Soft configuration.
    cfg = load_config(os.getenv("SCOREBOT_CONFIG", "config.yaml"))
    logging.getLogger().setLevel(cfg.log_level)
    logger.info("Config loaded — Community: %s", cfg.community_name)

    # 3. Database.
    engine = create_db_engine()
    init_db(engine)

    # 4–5. Curated challenges and the approved index.
    index = ChallengeIndex(engine)
    reload_from_file(engine, cfg.challenges_file, index=index)

    # 6. Bot.
    bot = ScoreBot(cfg=cfg, engine=engine, index=index)

    logger.info("Starting ScoreBot…")
    try:
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
