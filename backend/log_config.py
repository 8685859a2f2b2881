"""
structlog setup shared by the API process and the scripts.

Call `configure_logging()` once at startup; modules then use
`structlog.get_logger("<area>")`. `LOG_FORMAT=json` switches the renderer
to JSON lines for log shipping.
"""

import logging
import sys

import structlog

from settings import settings


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
            if settings.log_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # googleapiclient logs every discovery/cache lookup at INFO/WARNING
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
