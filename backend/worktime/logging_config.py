import logging
import sys

from worktime.settings import get_settings


def setup_logging() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    # engine echo is driven by APP_DEBUG; keep it out of the app log otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.APP_DEBUG else logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger(__name__).info("Logging configured (env=%s)", settings.APP_ENV)
