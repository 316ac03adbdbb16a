import os
from functools import lru_cache
from pathlib import Path

from query_insight.core.config.loader import load_config
from query_insight.core.config.models import AppConfig

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


@lru_cache
def get_config() -> AppConfig:
    return load_config(os.environ.get("CONFIG_PATH"), project_root=PROJECT_ROOT)
