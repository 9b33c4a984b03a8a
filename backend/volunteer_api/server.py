"""
Volunteer API — Server Entry Point
===================================

`volunteer-api` (console script) and `python -m volunteer_api` both land in
main(). It is the only place that decides the process exit code:

    missing required environment  → log each key, exit 78
    startup failed (DB, schema, bind) → exit 70
    fatal error while serving     → the process guardian exits 71 / 72
"""

import logging
import sys

import uvicorn

from volunteer_api.config import settings
from volunteer_api.guardian import ExitCode, guardian

logger = logging.getLogger(__name__)


def main() -> None:
    from volunteer_api.main import setup_logging

    setup_logging(settings.log_level)
    guardian.install()

    missing = settings.missing_required_environment()
    if missing:
        for key in missing:
            logger.critical("Environment variable %s is missing", key)
        sys.exit(ExitCode.MISSING_ENVIRONMENT)

    config = uvicorn.Config(
        "volunteer_api.main:app",
        host=settings.host,
        port=settings.port,
        lifespan="on",
        log_config=None,
        # Client addresses are resolved by the middleware using TRUST_PROXY
        proxy_headers=False,
    )
    server = uvicorn.Server(config)
    try:
        server.run()
    except SystemExit:
        # uvicorn exits 1 when it cannot bind the listener
        if server.started:
            raise

    if not server.started:
        logger.critical("Server failed to start; exiting with code %d", int(ExitCode.STARTUP_FAILURE))
        sys.exit(ExitCode.STARTUP_FAILURE)
