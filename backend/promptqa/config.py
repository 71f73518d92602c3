"""
Engine configuration, read from PROMPTQA_* environment variables.
A .env file in the working directory is loaded first when present.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EngineConfig:
    """Configuration for resolution, execution and batch runs"""
    action_timeout_ms: int = 10000
    navigation_timeout_ms: int = 30000
    probe_timeout_ms: int = 2000  # per select tier and per hidden-candidate wait
    click_retry_rounds: int = 3
    retry_delay_ms: int = 2000  # fixed, between click retry rounds
    poll_interval_ms: int = 250
    diagnostics_limit: int = 5
    interaction_delay_ms: int = 0  # pause between consecutive actions
    headless: bool = True
    browser_type: str = "chromium"
    batch_size: int = 5
    concurrency: int = 2
    data_dir: str = "data"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "EngineConfig":
        """Build a config from the environment, after loading .env."""
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()
        defaults = cls()
        return cls(
            action_timeout_ms=_env_int("PROMPTQA_ACTION_TIMEOUT_MS", defaults.action_timeout_ms),
            navigation_timeout_ms=_env_int("PROMPTQA_NAVIGATION_TIMEOUT_MS", defaults.navigation_timeout_ms),
            probe_timeout_ms=_env_int("PROMPTQA_PROBE_TIMEOUT_MS", defaults.probe_timeout_ms),
            click_retry_rounds=_env_int("PROMPTQA_CLICK_RETRY_ROUNDS", defaults.click_retry_rounds),
            retry_delay_ms=_env_int("PROMPTQA_RETRY_DELAY_MS", defaults.retry_delay_ms),
            poll_interval_ms=_env_int("PROMPTQA_POLL_INTERVAL_MS", defaults.poll_interval_ms),
            diagnostics_limit=_env_int("PROMPTQA_DIAGNOSTICS_LIMIT", defaults.diagnostics_limit),
            interaction_delay_ms=_env_int("PROMPTQA_INTERACTION_DELAY_MS", defaults.interaction_delay_ms),
            headless=_env_bool("PROMPTQA_HEADLESS", defaults.headless),
            browser_type=os.getenv("PROMPTQA_BROWSER", defaults.browser_type),
            batch_size=_env_int("PROMPTQA_BATCH_SIZE", defaults.batch_size),
            concurrency=_env_int("PROMPTQA_CONCURRENCY", defaults.concurrency),
            data_dir=os.getenv("PROMPTQA_DATA_DIR", defaults.data_dir),
        )
