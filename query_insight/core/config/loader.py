import json
from pathlib import Path

from query_insight.core.config.env import config_overrides_from_env, get_env_vars
from query_insight.core.config.models import AppConfig
from query_insight.core.exceptions import ConfigError


def load_config(config_path: str | Path | None = None, project_root: Path | None = None) -> AppConfig:
    """Load AppConfig from an optional JSON file, then overlay QUERY_INSIGHT_* env vars (.env included)."""
    root = project_root or Path.cwd()
    data: dict = {}
    if config_path is not None:
        path = Path(config_path) if not isinstance(config_path, Path) else config_path
        if not path.is_absolute():
            path = root / path
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            raw = path.read_text(encoding="utf-8")
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Invalid config in {path}: expected a JSON object")

    env_file_path = data.get("env_file_path", AppConfig.model_fields["env_file_path"].default)
    env = get_env_vars(env_file_path, root)
    data.update(config_overrides_from_env(env))
    try:
        return AppConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid config schema: {e}") from e
