"""Run the API with uvicorn: ``python -m leadcapture``."""
from __future__ import annotations

import sys

import uvicorn
from pydantic import ValidationError

from leadcapture.core.config import get_settings
from leadcapture.core.logging import configure_structlog, get_structlog_logger
from leadcapture.main import create_app


def main() -> None:
    try:
        settings = get_settings()
    except ValidationError as e:
        # Never serve with missing store credentials.
        configure_structlog()
        get_structlog_logger(__name__).critical(
            "config.invalid",
            errors=[{"field": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]} for err in e.errors()],
        )
        sys.exit(1)

    app = create_app(settings)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_config=None)


if __name__ == "__main__":
    main()
