import os

import pytest

from slurp.util.config import load_config
from slurp.util.errors import ConfigError


def test_defaults(clean_env, tmp_path):
    config = load_config(env_file=tmp_path / "missing.env")

    assert config.concurrency == (os.cpu_count() or 1)
    assert config.endpoint == "http://s3-1-w.amazonaws.com"
    assert config.warmup_delay == 0.5
    assert config.header_timeout == 3.0
    assert config.idle_timeout == 1.0
    assert config.max_retries == 10
    assert config.permutations_file is None
    assert config.debug is False


def test_env_file_is_read(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "SLURP_CONCURRENCY=12\n"
        "SLURP_WARMUP_DELAY=0.1\n"
        "SLURP_DEBUG=true\n"
        "SLURP_OFFLINE_SUFFIX_LIST=yes\n"
    )
    config = load_config(env_file=env_file)

    assert config.concurrency == 12
    assert config.warmup_delay == 0.1
    assert config.debug is True
    assert config.offline_suffix_list is True


def test_environment_beats_env_file(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("SLURP_MAX_RETRIES=4\n")
    clean_env["SLURP_MAX_RETRIES"] = "7"

    assert load_config(env_file=env_file).max_retries == 7


def test_overrides_beat_environment(clean_env, tmp_path):
    clean_env["SLURP_CONCURRENCY"] = "12"
    config = load_config(env_file=tmp_path / "none", concurrency=2, permutations_file=None)

    assert config.concurrency == 2
    assert config.permutations_file is None


def test_non_positive_concurrency_means_cpu_count(clean_env, tmp_path):
    config = load_config(env_file=tmp_path / "none", concurrency=-1)
    assert config.concurrency == (os.cpu_count() or 1)


def test_unparsable_value_is_rejected(clean_env, tmp_path):
    clean_env["SLURP_CONCURRENCY"] = "lots"
    with pytest.raises(ConfigError, match="SLURP_CONCURRENCY"):
        load_config(env_file=tmp_path / "none")


@pytest.mark.parametrize("overrides", [
    {"warmup_delay": -1.0},
    {"header_timeout": 0.0},
    {"endpoint": "s3-1-w.amazonaws.com"},
    {"backoff_base": -0.5},
])
def test_out_of_range_values_are_rejected(clean_env, tmp_path, overrides):
    with pytest.raises(ConfigError):
        load_config(env_file=tmp_path / "none", **overrides)


def test_unknown_override_is_rejected(clean_env, tmp_path):
    with pytest.raises(ConfigError, match="Unknown"):
        load_config(env_file=tmp_path / "none", colour=True)
