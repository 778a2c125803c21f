import logging

import pytest

from sniffer.utils.logger import SniffLogFormatter, get_logger, setup_logging, sniff_timer


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "logs" / "sniff.log"
    yield path
    root = logging.getLogger("mynest")
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()


def _record(name, level=logging.INFO, msg="hello"):
    return logging.LogRecord(name, level, __file__, 1, msg, None, None)


def test_formatter_drops_root_prefix():
    line = SniffLogFormatter().format(_record("mynest.size", logging.WARNING, "slow host"))

    assert line.endswith(" WARNING size: slow host")
    assert "mynest" not in line


def test_formatter_colours_only_the_level():
    line = SniffLogFormatter(use_colors=True).format(_record("mynest.bridge", logging.ERROR, "boom"))

    assert "\033[31mERROR  \033[0m" in line
    assert line.endswith("bridge: boom")


def test_setup_writes_file_and_is_repeatable(log_file):
    setup_logging(level="debug", log_file=str(log_file), enable_console=False)
    setup_logging(level="debug", log_file=str(log_file), enable_console=False)

    get_logger("bridge").debug("cached 3 resources")

    assert len(logging.getLogger("mynest").handlers) == 1
    text = log_file.read_text(encoding="utf-8")
    assert text.count("bridge: cached 3 resources") == 1
    assert logging.getLogger("urllib3").level == logging.DEBUG


def test_quiet_setup_silences_urllib3(log_file):
    setup_logging(level="INFO", enable_console=False)

    assert logging.getLogger("urllib3").level == logging.WARNING
    assert isinstance(logging.getLogger("mynest").handlers[0], logging.NullHandler)


def test_sniff_timer_logs_duration_and_counts(log_file):
    setup_logging(level="INFO", log_file=str(log_file), enable_console=False)
    log = get_logger("orchestrator")

    with sniff_timer(log, "sniff", page="https://x/") as timing:
        timing["resources"] = 4

    assert timing["duration"] >= 0
    line = log_file.read_text(encoding="utf-8").strip()
    assert "orchestrator: [Timing] sniff took" in line
    assert line.endswith("page=https://x/ resources=4")


def test_sniff_timer_logs_when_block_raises(log_file):
    setup_logging(level="INFO", log_file=str(log_file), enable_console=False)

    with pytest.raises(ValueError):
        with sniff_timer(get_logger("size"), "sizes"):
            raise ValueError("bad")

    assert "size: [Timing] sizes took" in log_file.read_text(encoding="utf-8")
