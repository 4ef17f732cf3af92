"""
Configuration - Environment-driven settings.

Reads a .env file if present, then the process environment:
    MASTERY_BACKEND   memory | redis (default memory)
    REDIS_HOST, REDIS_PORT, REDIS_PASSWORD, REDIS_DB
    SKILL_GRAPH_PATH  concept registry JSON (default: bundled frontend track)
    SESSION_SEED      integer seed for practice sessions (default: random)
    LOG_LEVEL         logging level name (default INFO)
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from core.skill_graph import DEFAULT_REGISTRY

# Load environment variables from .env
load_dotenv()

BACKENDS = ("memory", "redis")


@dataclass
class Settings:
    mastery_backend: str = "memory"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0
    skill_graph_path: str = str(DEFAULT_REGISTRY)
    session_seed: Optional[int] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        seed = os.getenv("SESSION_SEED")
        settings = cls(
            mastery_backend=os.getenv("MASTERY_BACKEND", "memory").lower(),
            redis_host=os.getenv("REDIS_HOST", "localhost"),
            redis_port=int(os.getenv("REDIS_PORT", 6379)),
            redis_password=os.getenv("REDIS_PASSWORD", None),
            redis_db=int(os.getenv("REDIS_DB", 0)),
            skill_graph_path=os.getenv("SKILL_GRAPH_PATH", str(DEFAULT_REGISTRY)),
            session_seed=int(seed) if seed else None,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
        if settings.mastery_backend not in BACKENDS:
            raise ValueError(
                f"MASTERY_BACKEND must be one of {BACKENDS}, got '{settings.mastery_backend}'"
            )
        return settings


def setup_logging(
    level="INFO",
    fmt: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt: str = "%Y-%m-%dT%H:%M:%S%z",
) -> None:
    """Configure the root logger with timestamped output."""
    logging.basicConfig(level=level, format=fmt, datefmt=datefmt, force=True)
