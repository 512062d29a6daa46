from pathlib import Path

import pytest

from rvtools_migrate.config import load_config

pytestmark = pytest.mark.usefixtures("clean_env")


def test_defaults():
    cfg = load_config()
    assert cfg.catalog.pricing_proxy_url == ""
    assert cfg.catalog.cache_dir is None
    assert cfg.catalog.cache_ttl_hours == 24
    assert cfg.cost.region == "us-south"
    assert cfg.cost.discount == "onDemand"
    thresholds = cfg.assessment.thresholds()
    assert thresholds.snapshot_blocker_days == 30
    assert thresholds.hw_version_minimum == 10


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PRICING_PROXY_URL", "https://proxy.example/pricing")
    monkeypatch.setenv("CATALOG_CACHE_DIR", "/var/cache/rvtools")
    monkeypatch.setenv("SNAPSHOT_WARNING_DAYS", "3")
    monkeypatch.setenv("DEFAULT_REGION", "eu-de")

    cfg = load_config()
    assert cfg.catalog.pricing_proxy_url == "https://proxy.example/pricing"
    assert cfg.catalog.cache_dir == Path("/var/cache/rvtools")
    assert cfg.assessment.snapshot_warning_days == 3
    assert cfg.cost.region == "eu-de"


def test_env_file_is_read_without_overriding_environment(monkeypatch, tmp_path):
    env_file = tmp_path / "custom.env"
    env_file.write_text(
        "# catalog proxies\n"
        "PROFILES_PROXY_URL='https://proxy.example/profiles'\n"
        "DEFAULT_REGION=jp-tok\n"
        "\n"
        'HW_VERSION_RECOMMENDED="15"\n'
    )
    monkeypatch.setenv("DEFAULT_REGION", "ca-tor")

    cfg = load_config(env_file)
    assert cfg.catalog.profiles_proxy_url == "https://proxy.example/profiles"
    assert cfg.assessment.hw_version_recommended == 15
    assert cfg.cost.region == "ca-tor"


def test_dotenv_in_working_directory(tmp_path):
    (tmp_path / ".env").write_text("DEFAULT_DISCOUNT=threeYear\n")
    assert load_config().cost.discount == "threeYear"
