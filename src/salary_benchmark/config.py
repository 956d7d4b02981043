"""Environment-driven settings for the salary benchmark server"""

import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import find_dotenv, load_dotenv
from loguru import logger

DEFAULT_MODEL = "gemini-2.5-flash"

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    value = env.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Invalid {name}={value!r}, using default {default}")
        return default


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None or value.strip() == "":
        return default
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    logger.warning(f"Invalid {name}={value!r}, using default {default}")
    return default


@dataclass(frozen=True)
class Settings:
    """Runtime configuration"""

    api_key: str | None = None
    model: str = DEFAULT_MODEL
    request_timeout: float = 60.0
    batch_delay: float = 0.5
    use_fallback_data: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, dotenv_path: str | os.PathLike | None = None) -> "Settings":
        """
        Build settings from environment variables.

        GEMINI_API_KEY (or API_KEY), GEMINI_MODEL, SALARY_BENCHMARK_TIMEOUT,
        SALARY_BENCHMARK_BATCH_DELAY, SALARY_BENCHMARK_USE_FALLBACK, LOG_LEVEL

        When no explicit mapping is given, a .env file (``dotenv_path``, or the
        nearest one from the working directory) is loaded first. Variables
        already set in the process environment win.
        """
        if env is None:
            env_loaded = load_dotenv(dotenv_path or find_dotenv(usecwd=True))
            logger.debug(f"Loaded .env file: {env_loaded}")
            env = os.environ
        return cls(
            api_key=env.get("GEMINI_API_KEY") or env.get("API_KEY") or None,
            model=env.get("GEMINI_MODEL") or DEFAULT_MODEL,
            request_timeout=_env_float(env, "SALARY_BENCHMARK_TIMEOUT", 60.0),
            batch_delay=_env_float(env, "SALARY_BENCHMARK_BATCH_DELAY", 0.5),
            use_fallback_data=_env_bool(env, "SALARY_BENCHMARK_USE_FALLBACK", True),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )
