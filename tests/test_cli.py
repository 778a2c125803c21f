import json
import logging

import pytest

import mynest_sniff
from conftest import FakeFetcher, FakeSource
from mynest_sniff import MyNestSniffCLI, main
from sniffer.core.bridge import ContentBridge
from sniffer.core.parser import PageParser
from sniffer.core.size_resolver import SizeResolver


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("MYNEST_API_URL", "MYNEST_API_TOKEN", "MYNEST_CATEGORY", "MYNEST_USER_AGENT",
                "MYNEST_PROXY", "MYNEST_TIMEOUT", "MYNEST_LOG_LEVEL", "MYNEST_LOG_FILE"):
        monkeypatch.delenv(var, raising=False)
    yield
    root = logging.getLogger("mynest")
    for h in list(root.handlers):
        root.removeHandler(h)


def _run(argv):
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    return excinfo.value.code


def test_missing_target_is_usage_error():
    assert _run(["--quiet"]) == 1


def test_bad_header_is_usage_error():
    assert _run(["--quiet", "--header", "no-colon-here", "https://example.com/"]) == 1


def test_restricted_page_is_unreachable():
    assert _run(["--quiet", "chrome://settings"]) == 4


def test_connection_check_without_credentials():
    assert _run(["--quiet", "--test-connection"]) == 5


def test_version():
    assert _run(["--version"]) == 0


def test_broken_profile_is_config_error(tmp_path):
    profile = tmp_path / "profile.json"
    profile.write_text("[1, 2]", encoding="utf-8")

    assert _run(["--quiet", "--profile", str(profile), "https://example.com/"]) == 3


def test_profile_then_cli_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("MYNEST_CATEGORY", "from-env")
    profile = tmp_path / "profile.json"
    profile.write_text(json.dumps({
        "api_url": "https://nest.local",
        "api_token": "tok",
        "category": "from-profile",
        "headers": {"X-Profile": "1"},
    }), encoding="utf-8")

    cli = MyNestSniffCLI()
    args = cli.parse_arguments([
        "--profile", str(profile), "--category", "from-cli", "--header", "X-Cli: 2", "--json", "https://x/",
    ])
    config = cli._create_config(args)

    assert config.api_url == "https://nest.local"
    assert config.default_category == "from-cli"
    assert config.headers == {"X-Profile": "1", "X-Cli": "2"}
    assert config.output_format == "json"


def test_json_output(monkeypatch, capsys):
    html = '<img src="https://x/a.jpg"><video src="https://x/v.mp4"></video>'

    def for_url(url, config):
        snapshot = PageParser().snapshot_from_html(html, url)
        fetcher = FakeFetcher({"https://x/a.jpg": 10, "https://x/v.mp4": 5000})
        return ContentBridge(FakeSource(url, snapshot), size_resolver=SizeResolver(fetcher))

    monkeypatch.setattr(mynest_sniff.ContentBridge, "for_url", for_url)

    code = _run(["--quiet", "--json", "example.com/post"])

    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert [d["url"] for d in data] == ["https://x/v.mp4", "https://x/a.jpg"]
