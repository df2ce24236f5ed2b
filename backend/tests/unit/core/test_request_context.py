import logging

import pytest

from barberbook.core.config import Settings
from barberbook.core.logging_config import LOG_FORMAT, configure_logging
from barberbook.core.request_context import (
    RequestIdFilter,
    attach_request_id_filter,
    get_actor_id,
    get_request_id,
    get_request_id_value,
    reset_actor_id,
    reset_request_id,
    set_actor_id,
    set_request_id,
)


def _record() -> logging.LogRecord:
    return logging.LogRecord("barberbook", logging.INFO, __file__, 1, "msg", None, None)


@pytest.mark.unit
class TestRequestContext:
    def test_request_id_round_trip(self) -> None:
        token = set_request_id("req-1")
        try:
            assert get_request_id() == "req-1"
            assert get_request_id_value() == "req-1"
        finally:
            reset_request_id(token)

        assert get_request_id() is None
        assert get_request_id("fallback") == "fallback"
        assert get_request_id_value() == "no-request"

    def test_empty_request_id_is_unset(self) -> None:
        token = set_request_id(None)
        try:
            assert get_request_id() is None
        finally:
            reset_request_id(token)

    def test_actor_round_trip(self) -> None:
        token = set_actor_id(42)
        try:
            assert get_actor_id() == 42
        finally:
            reset_actor_id(token)
        assert get_actor_id() is None


@pytest.mark.unit
class TestRequestIdFilter:
    def test_stamps_context_on_records(self) -> None:
        request_token = set_request_id("req-9")
        actor_token = set_actor_id(7)
        try:
            record = _record()
            assert RequestIdFilter().filter(record) is True
        finally:
            reset_request_id(request_token)
            reset_actor_id(actor_token)

        assert record.request_id == "req-9"
        assert record.actor_id == 7

    def test_defaults_without_context(self) -> None:
        record = _record()
        RequestIdFilter().filter(record)

        assert record.request_id == "no-request"
        assert record.actor_id == "-"

    def test_explicit_extra_wins(self) -> None:
        record = _record()
        record.request_id = "from-extra"
        RequestIdFilter().filter(record)

        assert record.request_id == "from-extra"

    def test_attach_is_idempotent(self) -> None:
        logger = logging.getLogger("barberbook.test.attach")
        handler = logging.NullHandler()
        logger.addHandler(handler)
        try:
            attach_request_id_filter(logger)
            attach_request_id_filter(logger)
            assert sum(isinstance(f, RequestIdFilter) for f in handler.filters) == 1
        finally:
            logger.removeHandler(handler)


@pytest.mark.unit
class TestConfigureLogging:
    def test_sets_level_and_format(self) -> None:
        root = logging.getLogger()
        previous_level = root.level
        try:
            configure_logging(Settings(_env_file=None, log_level="warning"))

            assert root.level == logging.WARNING
            assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
            assert "request_id" in LOG_FORMAT
        finally:
            root.setLevel(previous_level)

    def test_unknown_level_falls_back_to_info(self) -> None:
        root = logging.getLogger()
        previous_level = root.level
        try:
            configure_logging(Settings(_env_file=None, log_level="chatty"))

            assert root.level == logging.INFO
        finally:
            root.setLevel(previous_level)
