"""Logging setup: file sink and stdlib interception."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator

import pytest
from loguru import logger

from modelkeeper.persistence.log import setup_logging
from modelkeeper.persistence.settings import ModelkeeperSettings


@pytest.fixture
def restore_logger() -> Iterator[None]:
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_log_file_records_debug_and_stdlib(tmp_path, restore_logger) -> None:
    log_file = tmp_path / "logs" / "modelkeeper.log"
    setup_logging("WARNING", log_file=log_file)

    logger.debug("sync trace for acme")
    logging.getLogger("yaml").warning("stdlib record")
    logger.remove()

    text = log_file.read_text(encoding="utf-8")
    assert "sync trace for acme" in text
    assert "stdlib record" in text


def test_log_path_resolves_under_base_path(tmp_path) -> None:
    settings = ModelkeeperSettings(data_root=str(tmp_path), data_prefix="team", log_file="logs/mk.log")
    assert settings.log_path == tmp_path / "team" / "logs" / "mk.log"
    assert ModelkeeperSettings(data_root=str(tmp_path)).log_path is None
