import os
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "QUERY_INSIGHT_"

# env var suffix -> AppConfig field
ENV_FIELDS = {
    "API_URL": "api_url",
    "API_TOKEN": "api_token",
    "MODEL": "model",
    "DATABASE_URL": "database_url",
    "VERIFY_TLS": "verify_tls",
}


def load_env_from_path(env_file_path: str | None, project_root: Path | None = None) -> None:
    if not env_file_path:
        return
    root = project_root or Path.cwd()
    path = root / env_file_path
    if path.exists():
        load_dotenv(path, override=False)


def get_env_vars(env_file_path: str | None = None, project_root: Path | None = None) -> dict[str, str]:
    load_env_from_path(env_file_path, project_root)
    return dict(os.environ)


def config_overrides_from_env(env: dict[str, str]) -> dict[str, str]:
    """Pick QUERY_INSIGHT_* values that map onto AppConfig fields. Empty values are skipped."""
    overrides = {}
    for suffix, field in ENV_FIELDS.items():
        value = env.get(ENV_PREFIX + suffix)
        if value:
            overrides[field] = value
    return overrides
