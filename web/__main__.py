"""
API entry point.

Run with ``python -m web``.
"""

from aiohttp import web

from app.config.settings import settings
from app.utils.logging_setup import setup_logging
from web.app import create_app


def main() -> None:
    setup_logging("web", settings.log_level)
    web.run_app(
        create_app(),
        host=settings.web_host,
        port=settings.web_port,
        print=None,
    )


if __name__ == "__main__":
    main()
