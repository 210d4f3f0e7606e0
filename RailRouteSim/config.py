# config.py
import os
import logging
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _env_bool(name, default="false"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    LOG_LEVEL: str = os.getenv("RAILROUTE_LOG_LEVEL", "WARNING").upper()

    # Dashboard server
    HOST: str = os.getenv("RAILROUTE_HOST", "127.0.0.1")
    PORT: int = int(os.getenv("RAILROUTE_PORT", "8050"))
    DEBUG: bool = _env_bool("RAILROUTE_DEBUG")

    # Map preloaded into the dashboard editor
    DEFAULT_MAP: str | None = os.getenv("RAILROUTE_DEFAULT_MAP")
    MAX_TRAINS: int = int(os.getenv("RAILROUTE_MAX_TRAINS", "10000"))

    def __init__(self):
        if logging.getLevelName(self.LOG_LEVEL) == f"Level {self.LOG_LEVEL}":
            logger.warning("Unknown RAILROUTE_LOG_LEVEL=%s, using WARNING", self.LOG_LEVEL)
            self.LOG_LEVEL = "WARNING"
        if self.MAX_TRAINS < 1:
            logger.warning("RAILROUTE_MAX_TRAINS must be positive, using 10000")
            self.MAX_TRAINS = 10000

    def configure_logging(self, level=None):
        logging.basicConfig(
            level=level or self.LOG_LEVEL,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


settings = Settings()
