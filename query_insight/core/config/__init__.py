from query_insight.core.config.loader import load_config
from query_insight.core.config.models import AppConfig, TimeoutConfig
from query_insight.core.config.env import get_env_vars

__all__ = ["load_config", "AppConfig", "TimeoutConfig", "get_env_vars"]
