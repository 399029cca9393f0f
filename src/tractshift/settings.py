"""
TractShift - Global Settings & Logging.
"""
import os
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define a library-specific logger
logger = logging.getLogger("tractshift")
logger.addHandler(logging.NullHandler()) # Default to silence unless configured

# Environment Variable Names
ENV_API_KEY = "TRACTSHIFT_CENSUS_API_KEY"
ENV_CACHE_DIR = "TRACTSHIFT_CACHE_DIR"

# NAD83 / Conus Albers (equal-area). Any projected CRS in metres or feet works.
DEFAULT_CRS = 5070

# Intersections smaller than this share of the origin area count as zero.
DEFAULT_MIN_FRACTION = 1e-9


class Settings:
    _instance = None

    def __init__(self):
        # Picks up CENSUS_API_KEY & friends from a local .env, if any
        load_dotenv()

        # Priority: Env TRACTSHIFT_CENSUS_API_KEY -> Env CENSUS_API_KEY -> None
        self.census_api_key: Optional[str] = (
            os.getenv(ENV_API_KEY) or
            os.getenv("CENSUS_API_KEY")
        )

        # Default cache location
        env_cache = os.getenv(ENV_CACHE_DIR)
        if env_cache:
            self.cache_dir = Path(env_cache)
        else:
            self.cache_dir = Path.cwd() / ".tractshift_cache"

    @classmethod
    def _get_instance(cls):
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def get_api_key(cls) -> Optional[str]:
        # The Census API answers keyless requests (rate limited), so no raise here
        return cls._get_instance().census_api_key

    @classmethod
    def set_api_key(cls, key: Optional[str]):
        inst = cls._get_instance()
        inst.census_api_key = key

    @classmethod
    def get_cache_dir(cls) -> Path:
        inst = cls._get_instance()
        # Ensure dir exists when requested
        inst.cache_dir.mkdir(parents=True, exist_ok=True)
        return inst.cache_dir

# --- Public Helpers (Exposed in __init__.py) ---

def get_api_key() -> Optional[str]:
    """Retrieves the current Census Data API key (None when unset)."""
    return Settings.get_api_key()

def resolve_api_key(api_key: str | None) -> Optional[str]:
    """Return an explicit api_key or fall back to Settings/env."""
    return api_key or get_api_key()

def set_api_key(key: Optional[str]):
    """Sets the Census Data API key for all subsequent calls."""
    Settings.set_api_key(key)

def get_cache_dir() -> Path:
    """Retrieves the current cache directory path."""
    return Settings.get_cache_dir()

def configure_logging(level: int = logging.INFO):
    """Enable console logging for the library (idempotent)."""
    # Check if a StreamHandler is already attached to avoid duplicates
    has_stream = any(isinstance(h, logging.StreamHandler) for h in logger.handlers)

    if not has_stream:
        handler = logging.StreamHandler()
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(level)
