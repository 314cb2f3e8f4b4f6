"""Run the API with uvicorn: `python -m habit_tracker [--host H] [--port P]`."""

import argparse
import logging
from typing import Optional, Sequence

import uvicorn

from .config import Settings

logger = logging.getLogger("habit_tracker")


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Parse CLI flags and serve `create_app()` until interrupted.

    Flags override the HOST/PORT environment settings. The app is built
    through uvicorn's factory mode so a database that cannot be opened
    aborts startup before any request is served.
    """
    settings = Settings()
    parser = argparse.ArgumentParser(description="Habit tracker API server")
    parser.add_argument("--host", default=settings.HOST)
    parser.add_argument("--port", type=int, default=settings.PORT)
    parser.add_argument("--reload", action="store_true", help="restart on code changes (dev only)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.LOG_LEVEL)
    logger.info("running on %s:%s", args.host, args.port)
    uvicorn.run(
        "habit_tracker.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
