import pytest

from config.constants import get_default_headers, get_user_agent
from sniffer.models.config import SniffConfig
from sniffer.models.exceptions import ConfigurationException


def test_defaults_are_valid():
    cfg = SniffConfig()
    cfg.validate()

    assert cfg.max_thumbnails == 3
    assert cfg.thumbnail_timeout == 2.0
    assert cfg.default_category == "browser"
    assert not cfg.has_api_credentials


def test_from_env_reads_known_variables():
    env = {
        "MYNEST_API_URL": "https://nest.local",
        "MYNEST_API_TOKEN": "abc",
        "MYNEST_CATEGORY": "videos",
        "MYNEST_TIMEOUT": "30",
        "UNRELATED": "x",
    }

    cfg = SniffConfig.from_env(env, headless=True)

    assert cfg.api_url == "https://nest.local"
    assert cfg.default_category == "videos"
    assert cfg.timeout == 30
    assert cfg.headless is True
    assert cfg.has_api_credentials


def test_overrides_coerce_types():
    cfg = SniffConfig().apply_overrides({
        "thumbnails": "yes",
        "allow_blob": "0",
        "size_probe_timeout": "2.5",
        "max_thumbnails": "2",
        "not_a_field": 1,
        "proxy_url": None,
    })

    assert cfg.thumbnails is True
    assert cfg.allow_blob is False
    assert cfg.size_probe_timeout == 2.5
    assert cfg.max_thumbnails == 2
    assert cfg.proxy_url is None


def test_bad_numeric_override():
    with pytest.raises(ConfigurationException) as excinfo:
        SniffConfig.from_env({"MYNEST_TIMEOUT": "soon"})
    assert excinfo.value.context["config_key"] == "timeout"


def test_validate_collects_errors():
    cfg = SniffConfig(timeout=0, size_workers=100, max_thumbnails=50, output_format="xml", api_url="nest.local")

    with pytest.raises(ConfigurationException) as excinfo:
        cfg.validate()

    errors = excinfo.value.context["errors"]
    assert len(errors) == 5
    assert "API URL must start with http:// or https://" in errors


def test_to_dict_masks_token():
    cfg = SniffConfig(api_url="https://nest.local", api_token="secret", headers={"X-A": "1"})

    data = cfg.to_dict()

    assert data["api_token"] == "***"
    assert data["headers"] == {"X-A": "1"}
    assert cfg.api_token == "secret"


def test_default_headers_are_copies():
    headers = get_default_headers()
    headers["Accept"] = "nothing"

    assert get_default_headers()["Accept"] != "nothing"
    assert "Mozilla/5.0" in get_user_agent()


def test_exception_hierarchy_is_what_the_pipeline_raises():
    import sniffer.models as models

    exported = {
        name for name in models.__all__
        if isinstance(getattr(models, name), type) and issubclass(getattr(models, name), models.SnifferException)
    }

    assert exported == {
        "SnifferException",
        "NetworkException",
        "SecurityException",
        "ValidationException",
        "ConfigurationException",
        "PageUnreachableException",
        "MyNestAPIException",
        "OutputException",
        "URLValidationException",
        "ContentSizeException",
    }
    assert issubclass(models.MyNestAPIException, models.NetworkException)
    assert issubclass(models.URLValidationException, models.ValidationException)
