import logging

import pytest

from octopulse.cli import configure_logging, main


@pytest.fixture
def clean_logging():
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if (handler.name or "").startswith("octopulse."):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def test_configure_logging_writes_debug_to_file(tmp_path, clean_logging):
    handlers = configure_logging(tmp_path / "logs")
    logging.getLogger("octopulse.test").debug("file marker %d", 7)
    for handler in handlers:
        handler.flush()
    text = (tmp_path / "logs" / "app.log").read_text(encoding="utf-8")
    assert "file marker 7" in text
    assert "DEBUG" in text


def test_configure_logging_writes_to_stdout(tmp_path, capsys, clean_logging):
    handlers = configure_logging(tmp_path)
    logging.getLogger("octopulse.test").info("stdout marker")
    for handler in handlers:
        handler.flush()
    assert "stdout marker" in capsys.readouterr().out


def test_configure_logging_twice_does_not_duplicate(tmp_path, clean_logging):
    configure_logging(tmp_path)
    second = configure_logging(tmp_path)
    ours = [
        h for h in logging.getLogger().handlers if (h.name or "").startswith("octopulse.")
    ]
    assert len(second) == 2
    assert set(ours) == set(second)
    assert logging.getLogger().level == logging.DEBUG


def test_main_without_token_fails(tmp_path, capsys, monkeypatch, clean_logging):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    log_dir = tmp_path / "logs"
    assert main(["--log-dir", str(log_dir)]) == 1
    assert "GITHUB_TOKEN environment variable not set" in capsys.readouterr().err
    assert (log_dir / "app.log").exists()


def test_main_with_empty_token_fails(tmp_path, capsys, monkeypatch, clean_logging):
    monkeypatch.setenv("GITHUB_TOKEN", "")
    assert main(["--log-dir", str(tmp_path)]) == 1
    assert "GITHUB_TOKEN" in capsys.readouterr().err


def test_main_rejects_bad_interval(tmp_path, clean_logging):
    with pytest.raises(SystemExit) as excinfo:
        main(["--log-dir", str(tmp_path), "--interval", "soon"])
    assert excinfo.value.code == 2