"""Run the aggregator with uvicorn: ``python -m dexagg``."""
from __future__ import annotations

import uvicorn

from .core.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "dexagg.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
