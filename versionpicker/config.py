"""
Runtime configuration.

Settings come from environment variables, optionally seeded from a .env file
in the working directory.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_DB_PATH = Path("data") / "versionpicker.db"


@dataclass(frozen=True)
class Settings:
    db_path: Path = DEFAULT_DB_PATH
    log_level: str = "INFO"
    log_dir: Optional[Path] = None
    max_retries: int = 0
    retry_delay: float = 0.05


def load_env() -> None:
    """Load .env from the working directory if present."""
    env_path = Path.cwd() / ".env"
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path)


def load_settings() -> Settings:
    """
    Build Settings from the environment.

    Raises:
        ValueError: a numeric variable does not parse
    """
    log_dir = os.getenv("VERSIONPICKER_LOG_DIR")
    return Settings(
        db_path=Path(os.getenv("VERSIONPICKER_DB_PATH", str(DEFAULT_DB_PATH))),
        log_level=os.getenv("VERSIONPICKER_LOG_LEVEL", "INFO").upper(),
        log_dir=Path(log_dir) if log_dir else None,
        max_retries=int(os.getenv("VERSIONPICKER_MAX_RETRIES", "0")),
        retry_delay=float(os.getenv("VERSIONPICKER_RETRY_DELAY", "0.05")),
    )
