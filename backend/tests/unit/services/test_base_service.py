from unittest.mock import MagicMock, Mock, patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from barberbook.core.exceptions import (
    BookingIntegrityError,
    RepositoryException,
    ServiceException,
    ValidationException,
)
from barberbook.services.base import BaseService


class _Diag:
    constraint_name = "uq_bookings_provider_active_start"


class _PgError(Exception):
    diag = _Diag()


@pytest.fixture
def session() -> Mock:
    return Mock()


@pytest.mark.unit
class TestTransaction:
    def test_commits_on_success(self, session) -> None:
        service = BaseService(session)

        with service.transaction():
            pass

        session.commit.assert_called_once()
        session.rollback.assert_not_called()

    def test_domain_errors_roll_back_and_propagate(self, session) -> None:
        service = BaseService(session)

        with pytest.raises(ValidationException):
            with service.transaction():
                raise ValidationException("bad")

        session.rollback.assert_called_once()
        session.commit.assert_not_called()

    def test_integrity_error_carries_constraint_name(self, session) -> None:
        service = BaseService(session)
        session.commit.side_effect = IntegrityError("INSERT", {}, _PgError())

        with pytest.raises(BookingIntegrityError) as exc_info:
            with service.transaction():
                pass

        assert exc_info.value.constraint_name == "uq_bookings_provider_active_start"
        session.rollback.assert_called_once()

    def test_booking_integrity_error_is_reraised(self, session) -> None:
        service = BaseService(session)

        with pytest.raises(BookingIntegrityError):
            with service.transaction():
                raise BookingIntegrityError("dup", constraint_name=None)

        session.rollback.assert_called_once()

    @pytest.mark.parametrize(
        "error",
        [OperationalError("SELECT 1", {}, Exception("gone")), RepositoryException("query failed")],
    )
    def test_storage_failures_become_service_exceptions(self, session, error) -> None:
        service = BaseService(session)

        with pytest.raises(ServiceException):
            with service.transaction():
                raise error

        session.rollback.assert_called_once()

    def test_requires_session(self) -> None:
        with pytest.raises(ServiceException):
            with BaseService(None).transaction():
                pass


@pytest.mark.unit
class TestMeasureOperation:
    def test_records_success_and_failure(self) -> None:
        class Measured(BaseService):
            @BaseService.measure_operation("work")
            def work(self, fail: bool = False) -> str:
                if fail:
                    raise ValueError("nope")
                return "done"

        service = Measured(Mock())
        service.reset_metrics()

        assert service.work() == "done"
        with pytest.raises(ValueError):
            service.work(fail=True)

        metrics = service.get_metrics()["work"]
        assert metrics["count"] == 2
        assert metrics["success_count"] == 1
        assert metrics["failure_count"] == 1
        assert Measured.work._is_measured is True

    def test_slow_operations_are_logged(self) -> None:
        class Slow(BaseService):
            @BaseService.measure_operation("slow")
            def slow(self) -> None:
                return None

        service = Slow(Mock())
        with patch("barberbook.services.base.time.perf_counter", side_effect=[0.0, 5.0]):
            with patch.object(service.logger, "warning") as mock_warning:
                service.slow()

        mock_warning.assert_called_once()


@pytest.mark.unit
class TestCacheInvalidation:
    def test_no_cache_is_a_noop(self, session) -> None:
        BaseService(session).invalidate_cache("prov:5")

    def test_failures_are_swallowed(self, session) -> None:
        cache = MagicMock()
        cache.delete.side_effect = RuntimeError("redis down")
        service = BaseService(session, cache)

        service.invalidate_cache("prov:5", "avail:5")

        assert cache.delete.call_count == 2
