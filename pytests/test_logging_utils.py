from __future__ import annotations

import logging
import re

import logging_utils


def test_logs_dir_env_override(monkeypatch, tmp_path):
    monkeypatch.setenv("SDN_OPENAPI_LOG_DIR", str(tmp_path))
    assert logging_utils.logs_dir() == str(tmp_path)

    monkeypatch.setenv("SDN_OPENAPI_LOG_DIR", "  ")
    assert logging_utils.logs_dir().endswith("logs")


def test_module_logger_writes_own_utc_file(monkeypatch, tmp_path):
    monkeypatch.setenv("SDN_OPENAPI_LOG_DIR", str(tmp_path))

    logger = logging_utils.get_logger("pytests.log_probe")
    assert logger.name == "sdn_openapi.pytests.log_probe"

    logger.warning("probe event | k=%s", "v")
    for h in logger.handlers:
        h.flush()

    text = (tmp_path / "pytests_log_probe.log").read_text(encoding="utf-8")
    assert "probe event | k=v" in text
    assert re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z WARNING pid=\d+ ", text)


def test_get_logger_is_idempotent():
    a = logging_utils.get_logger("pytests.same")
    b = logging_utils.get_logger("pytests.same")
    assert a is b
    assert len(a.handlers) == 1


def test_app_logger_does_not_propagate_to_root():
    app_logger = logging_utils.configure_app_logging("INFO")
    assert app_logger.propagate is False
    assert logging.getLogger("sdn_openapi.anything").parent is app_logger


def test_set_log_level_relevels_existing_module_loggers(monkeypatch, tmp_path):
    monkeypatch.setenv("SDN_OPENAPI_LOG_DIR", str(tmp_path))
    logger = logging_utils.get_logger("pytests.relevel")
    assert not logger.isEnabledFor(logging.DEBUG)

    try:
        logging_utils.set_log_level("debug")

        assert logger.isEnabledFor(logging.DEBUG)
        assert all(h.level == logging.DEBUG for h in logger.handlers)
        app_logger = logging.getLogger("sdn_openapi")
        assert all(h.level == logging.DEBUG for h in app_logger.handlers)

        logger.debug("relevel event | k=%s", "v")
        for h in logger.handlers:
            h.flush()
        text = (tmp_path / "pytests_relevel.log").read_text(encoding="utf-8")
        assert "relevel event | k=v" in text
    finally:
        logging_utils.set_log_level("INFO")

    assert not logger.isEnabledFor(logging.DEBUG)
