from query_insight.core.config.loader import load_config
from query_insight.core.config.models import AppConfig, TimeoutConfig
from query_insight.core.exceptions import ConfigError, QueryExecutionError, ValidationError

__all__ = [
    "load_config",
    "AppConfig",
    "TimeoutConfig",
    "ConfigError",
    "QueryExecutionError",
    "ValidationError",
]
