"""
Process entry point: python -m garage.
Exits non-zero when required configuration (JWT_SECRET) is missing.
"""

import logging
import sys

import uvicorn
from pydantic import ValidationError

from garage.config import get_settings

logger = logging.getLogger("garage")


def main() -> int:
    try:
        settings = get_settings()
    except ValidationError as exc:
        logging.basicConfig(level=logging.ERROR)
        missing = ", ".join(".".join(str(p) for p in err["loc"]).upper() for err in exc.errors())
        logger.critical("Invalid or missing configuration: %s", missing)
        return 1
    uvicorn.run("garage.main:app", host=settings.host, port=settings.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
