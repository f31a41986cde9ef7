"""
`.env` loading for local overrides (`HAZARDROUTE_LOG_LEVEL`, `HAZARDROUTE_CONFIG_PATH`, CORS).

`HAZARDROUTE_ENV_FILE` names the file explicitly; otherwise the nearest `.env` from the
working directory upwards is used. Variables already set in the process always win.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import find_dotenv, load_dotenv


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load `.env` once; returns the path that was loaded, or None."""
    explicit = os.getenv("HAZARDROUTE_ENV_FILE")
    if explicit:
        env_path = Path(explicit).expanduser().resolve()
        if not env_path.is_file():
            return None
        load_dotenv(dotenv_path=env_path, override=False)
        return env_path

    found = find_dotenv(usecwd=True)
    if not found:
        return None
    load_dotenv(dotenv_path=found, override=False)
    return Path(found)
