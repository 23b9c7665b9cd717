"""
Healthcare Portal - Expired Credential Cleanup

Deletes expired sessions and reset tokens. Validation already ignores
expired rows, so this only reclaims storage; run it from cron.

Usage:
    python -m scripts.purge_expired
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlmodel import Session

from healthportal.config import configure_logging, settings
from healthportal.auth.database import get_engine, init_db
from healthportal.auth.reset_tokens import purge_expired_reset_tokens
from healthportal.auth.sessions import purge_expired_sessions

logger = logging.getLogger("healthportal.purge")


async def purge() -> tuple:
    engine = get_engine(settings.DATABASE_URL)
    init_db(engine)

    try:
        with Session(engine) as session:
            sessions = await purge_expired_sessions(session)
            tokens = await purge_expired_reset_tokens(session)
    finally:
        engine.dispose()

    return sessions, tokens


if __name__ == "__main__":
    configure_logging()
    sessions, tokens = asyncio.run(purge())
    logger.info("Purged %d expired session(s) and %d expired reset token(s)", sessions, tokens)
