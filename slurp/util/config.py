"""Load and validate run configuration.

Settings are layered: built-in defaults < .env file < SLURP_* environment
variables < CLI flags (passed in as overrides). Everything ends up in one
ScanConfig so the rest of the code never touches os.environ.
"""

import os
from pathlib import Path
from typing import Optional, Any, Callable, Dict

from dotenv import load_dotenv

from .errors import ConfigError
from .types import ScanConfig


# env var -> (ScanConfig field, parser)
_ENV_FIELDS: Dict[str, tuple] = {
    "SLURP_CONCURRENCY": ("concurrency", int),
    "SLURP_PERMUTATIONS_FILE": ("permutations_file", str),
    "SLURP_ENDPOINT": ("endpoint", str),
    "SLURP_WARMUP_DELAY": ("warmup_delay", float),
    "SLURP_HEADER_TIMEOUT": ("header_timeout", float),
    "SLURP_IDLE_TIMEOUT": ("idle_timeout", float),
    "SLURP_MAX_RETRIES": ("max_retries", int),
    "SLURP_BACKOFF_BASE": ("backoff_base", float),
    "SLURP_BACKOFF_MAX": ("backoff_max", float),
    "SLURP_TLD_CACHE_DIR": ("tld_cache_dir", str),
    "SLURP_OFFLINE_SUFFIX_LIST": ("offline_suffix_list", lambda v: _parse_bool(v)),
    "SLURP_LOG_FILE": ("log_file", str),
    "SLURP_DEBUG": ("debug", lambda v: _parse_bool(v)),
}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse(name: str, raw: str, parser: Callable[[str], Any]) -> Any:
    try:
        return parser(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid value for {name}: {raw!r} ({e})") from e


def load_config(env_file: Optional[Path] = None, **overrides) -> ScanConfig:
    """Build a ScanConfig from .env, environment and explicit overrides.

    Args:
        env_file: Path to a .env file. Defaults to ./.env; a missing file
                  is fine - every setting has a default.
        **overrides: ScanConfig field values (usually from the CLI).
                     None means "not given" and does not override.

    Raises:
        ConfigError: a value cannot be parsed or is out of range
    """
    env_file = Path(env_file) if env_file else Path.cwd() / ".env"
    if env_file.exists():
        load_dotenv(env_file)

    values: Dict[str, Any] = {}
    for env_name, (field_name, parser) in _ENV_FIELDS.items():
        raw = os.getenv(env_name)
        if raw is None or raw == "":
            continue
        values[field_name] = _parse(env_name, raw, parser)

    for key, value in overrides.items():
        if value is None:
            continue
        if key not in ScanConfig.__dataclass_fields__:
            raise ConfigError(f"Unknown configuration option: {key}")
        values[key] = value

    config = ScanConfig(**values)
    _validate(config)
    return config


def _validate(config: ScanConfig):
    """Reject values that would make the run meaningless."""
    if config.warmup_delay < 0:
        raise ConfigError("warmup_delay must be >= 0")
    if config.header_timeout <= 0:
        raise ConfigError("header_timeout must be > 0")
    if config.idle_timeout < 0:
        raise ConfigError("idle_timeout must be >= 0")
    if config.backoff_base < 0 or config.backoff_max < 0:
        raise ConfigError("backoff values must be >= 0")
    if not config.endpoint.startswith(("http://", "https://")):
        raise ConfigError(f"endpoint must be an http(s) URL, got {config.endpoint!r}")
