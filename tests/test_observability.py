"""Tests for logging setup helpers."""

import logging

import pytest
import structlog

from s3_download.core import log_context, set_log_level
from s3_download.core.exceptions import ValidationError


@pytest.fixture
def restore_root_level():
    level = logging.getLogger().level
    yield
    logging.getLogger().setLevel(level)


def test_set_log_level(restore_root_level):
    set_log_level("debug")

    assert logging.getLogger().level == logging.DEBUG


def test_unknown_log_level_rejected(restore_root_level):
    with pytest.raises(ValidationError):
        set_log_level("chatty")


def test_log_context_binds_and_unbinds():
    with log_context(bucket="backups"):
        assert structlog.contextvars.get_contextvars()["bucket"] == "backups"

    assert "bucket" not in structlog.contextvars.get_contextvars()
