"""Run the service with uvicorn: ``python -m order_service``."""

from __future__ import annotations

import uvicorn

from order_service.core.settings import get_app_settings


def main() -> None:
    settings = get_app_settings()
    uvicorn.run(
        "order_service.app.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
