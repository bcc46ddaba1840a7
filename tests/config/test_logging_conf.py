from __future__ import annotations

import io
import json
import logging
import warnings
from pathlib import Path

from iboot.config.logging_conf import PACKAGE_LOGGER, configure_logging
from iboot.config.settings import Settings, reset_settings_cache
from iboot.exceptions import IntervalHitEndWarning


def _cleanup_logging() -> None:
    logging.captureWarnings(False)
    for name in (PACKAGE_LOGGER, "py.warnings"):
        logger = logging.getLogger(name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)


def teardown_function() -> None:  # pragma: no cover - cleanup helper
    _cleanup_logging()
    reset_settings_cache()


def _settings(tmp_path: Path) -> Settings:
    return Settings.from_env(
        environ={}, overrides={"project_root": tmp_path, "LOGS_DIR": tmp_path / "logs"}
    )


def test_configure_logging_structured_output(tmp_path: Path) -> None:
    stream = io.StringIO()
    settings = _settings(tmp_path)

    configure_logging(
        settings=settings, structured=True, stream=stream, context={"run_id": "unit"}
    )

    logger = logging.getLogger("iboot.tests")
    logger.info("interval built", extra={"interval_type": "bca", "nboot": [2000, 0]})

    payload = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert payload["run_id"] == "unit"
    assert payload["interval_type"] == "bca"
    assert payload["nboot"] == [2000, 0]
    assert payload["logger"] == "iboot.tests"

    log_file = settings.logs_dir / "iboot.log"
    assert log_file.exists()


def test_configure_logging_plaintext(tmp_path: Path) -> None:
    stream = io.StringIO()

    package_logger = configure_logging(settings=_settings(tmp_path), structured=False, stream=stream)

    logging.getLogger("iboot.tests").warning("plain message")

    output = stream.getvalue()
    assert package_logger.name == "iboot"
    assert "plain message" in output
    assert "WARNING" in output


def test_bootstrap_warnings_carry_their_category(tmp_path: Path) -> None:
    stream = io.StringIO()
    configure_logging(settings=_settings(tmp_path), structured=True, stream=stream)

    with warnings.catch_warnings():
        warnings.simplefilter("always")
        warnings.warn("interval hit the end", IntervalHitEndWarning)

    payload = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert payload["logger"] == "py.warnings"
    assert payload["warning_category"] == "IntervalHitEndWarning"


def test_reconfiguring_replaces_installed_handlers_only(tmp_path: Path) -> None:
    host_handler = logging.NullHandler()
    logging.getLogger(PACKAGE_LOGGER).addHandler(host_handler)
    first, second = io.StringIO(), io.StringIO()

    configure_logging(settings=_settings(tmp_path), structured=False, stream=first)
    configure_logging(settings=_settings(tmp_path), structured=False, stream=second)
    logging.getLogger("iboot.tests").info("after reconfigure")

    handlers = logging.getLogger(PACKAGE_LOGGER).handlers
    assert host_handler in handlers
    assert len(handlers) == 3
    assert "after reconfigure" not in first.getvalue()
    assert "after reconfigure" in second.getvalue()
