from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from barberbook.core.exceptions import BookingIntegrityError
from barberbook.repositories import RepositoryFactory
from barberbook.repositories.base_repository import constraint_name_from
from barberbook.repositories.booking_repository import BookingRepository


def utc(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def repository(db) -> BookingRepository:
    return RepositoryFactory.create_booking_repository(db)


@pytest.mark.unit
class TestFindActiveBookings:
    def test_half_open_overlap(self, repository, booking_factory) -> None:
        booking = booking_factory(start=utc(2024, 1, 15, 10))

        assert repository.find_active_bookings(5, utc(2024, 1, 15, 9), utc(2024, 1, 15, 10)) == []
        assert repository.find_active_bookings(5, utc(2024, 1, 15, 11), utc(2024, 1, 15, 12)) == []
        assert repository.find_active_bookings(
            5, utc(2024, 1, 15, 10, 59), utc(2024, 1, 15, 12)
        ) == [booking]

    def test_skips_inactive_and_excluded(self, repository, booking_factory) -> None:
        kept = booking_factory(start=utc(2024, 1, 15, 9))
        excluded = booking_factory(start=utc(2024, 1, 15, 10))
        booking_factory(start=utc(2024, 1, 15, 11), status="cancelled")
        booking_factory(start=utc(2024, 1, 15, 12), status="no_show")

        found = repository.find_active_bookings(
            5, utc(2024, 1, 15), utc(2024, 1, 16), exclude_booking_id=excluded.id, for_update=True
        )

        assert found == [kept]

    def test_results_are_ordered_by_start(self, repository, booking_factory) -> None:
        late = booking_factory(start=utc(2024, 1, 15, 15))
        early = booking_factory(start=utc(2024, 1, 15, 9))

        assert repository.find_active_bookings(5, utc(2024, 1, 15), utc(2024, 1, 16)) == [early, late]


@pytest.mark.unit
class TestBookingNumbers:
    def test_first_sequence_of_the_day(self, repository) -> None:
        assert repository.next_booking_sequence(date(2024, 1, 10)) == 1

    def test_continues_after_highest(self, repository, booking_factory) -> None:
        booking_factory(booking_number="BK-20240110-0007")
        booking_factory(start=utc(2024, 1, 15, 12), booking_number="BK-20240110-0002")
        booking_factory(start=utc(2024, 1, 15, 14), booking_number="BK-20240111-0050")

        assert repository.next_booking_sequence(date(2024, 1, 10)) == 8

    def test_lookup_by_number_and_uuid(self, repository, booking_factory) -> None:
        booking = booking_factory()

        assert repository.get_by_booking_number(booking.booking_number) is booking
        assert repository.get_by_uuid(booking.uuid) is booking
        assert repository.get_by_uuid("missing") is None


@pytest.mark.unit
class TestConditionalUpdates:
    def test_status_update_matches_expected(self, repository, booking_factory, db) -> None:
        booking = booking_factory(status="pending")

        assert repository.conditional_update_status(booking.id, "pending", "confirmed") == 1
        db.commit()
        assert repository.get_by_id(booking.id).status == "confirmed"

    def test_status_update_misses_when_status_moved(self, repository, booking_factory, db) -> None:
        booking = booking_factory(status="cancelled")

        assert repository.conditional_update_status(booking.id, "pending", "confirmed") == 0
        db.rollback()
        assert repository.get_by_id(booking.id).status == "cancelled"

    def test_extra_values_are_written(self, repository, booking_factory, db) -> None:
        booking = booking_factory(status="confirmed")

        repository.conditional_update_status(
            booking.id, "confirmed", "cancelled", cancellation_fee=Decimal("5.00"), cancelled_by=3
        )
        db.commit()

        refreshed = repository.get_by_id(booking.id)
        assert refreshed.cancellation_fee == Decimal("5.00")
        assert refreshed.cancelled_by == 3

    def test_update_schedule(self, repository, booking_factory, db) -> None:
        booking = booking_factory(status="pending")

        affected = repository.update_schedule(
            booking.id, ("pending", "confirmed"), utc(2024, 1, 16, 9), utc(2024, 1, 16, 9, 30), 30
        )
        db.commit()

        assert affected == 1
        refreshed = repository.get_by_id(booking.id)
        assert refreshed.scheduled_start_time == utc(2024, 1, 16, 9)
        assert refreshed.estimated_duration_minutes == 30

    def test_update_schedule_into_occupied_start(self, repository, booking_factory, db) -> None:
        booking_factory(start=utc(2024, 1, 16, 9))
        booking = booking_factory(start=utc(2024, 1, 15, 9))

        with pytest.raises(BookingIntegrityError):
            repository.update_schedule(
                booking.id, ("confirmed",), utc(2024, 1, 16, 9), utc(2024, 1, 16, 10), 60
            )
        db.rollback()


@pytest.mark.unit
class TestCreate:
    def test_duplicate_active_start_is_rejected(self, repository, booking_factory, db) -> None:
        existing = booking_factory(start=utc(2024, 1, 15, 10))

        with pytest.raises(BookingIntegrityError) as exc_info:
            repository.create(
                uuid="00000000-0000-0000-0000-000000000001",
                booking_number="BK-20240110-0001",
                provider_id=existing.provider_id,
                service_name="Fade",
                estimated_duration_minutes=30,
                status="pending",
                service_price=Decimal("20.00"),
                total_price=Decimal("20.00"),
                scheduled_start_time=utc(2024, 1, 15, 10),
                scheduled_end_time=utc(2024, 1, 15, 10, 30),
            )

        # SQLite does not report constraint names
        assert exc_info.value.constraint_name is None
        db.rollback()


@pytest.mark.unit
class TestStatsQueries:
    def test_counts_cover_every_status(self, repository, booking_factory) -> None:
        booking_factory(start=utc(2024, 1, 15, 10), status="completed")
        booking_factory(start=utc(2024, 1, 15, 12), status="completed")

        counts = repository.count_bookings_by_status(5, utc(2024, 1, 1), utc(2024, 2, 1))

        assert counts["completed"] == (2, Decimal("60"))
        assert counts["pending"] == (0, Decimal("0.00"))
        assert set(counts) == {"pending", "confirmed", "in_progress", "completed", "cancelled", "no_show"}

    def test_filters(self, repository, booking_factory) -> None:
        booking_factory(start=utc(2024, 1, 15, 10), booking_source="walk_in")
        booking_factory(start=utc(2024, 1, 15, 12), booking_source="phone")

        rows = repository.get_stats_rows(
            5, utc(2024, 1, 1), utc(2024, 2, 1), {"booking_source": ["walk_in"]}
        )

        assert len(rows) == 1
        assert rows[0][1] == "confirmed"


@pytest.mark.unit
class TestListingQueries:
    def test_customer_bookings_newest_created_first(self, repository, booking_factory) -> None:
        older = booking_factory(customer_id=77, created_at=utc(2024, 1, 1, 8))
        newer = booking_factory(
            start=utc(2024, 1, 15, 12), customer_id=77, created_at=utc(2024, 1, 3, 8)
        )
        booking_factory(start=utc(2024, 1, 15, 14), customer_id=78)

        assert repository.list_customer_bookings(77) == [newer, older]
        assert repository.list_customer_bookings(77, limit=1, offset=1) == [older]

    def test_customer_bookings_status_filter(self, repository, booking_factory) -> None:
        booking_factory(customer_id=77)
        cancelled = booking_factory(start=utc(2024, 1, 15, 12), customer_id=77, status="cancelled")

        assert repository.list_customer_bookings(77, statuses=["cancelled"]) == [cancelled]

    def test_upcoming_only_open_future_bookings(self, repository, booking_factory) -> None:
        booking_factory(start=utc(2024, 1, 9, 10))
        later = booking_factory(start=utc(2024, 1, 12, 10), status="pending")
        sooner = booking_factory(start=utc(2024, 1, 11, 10))
        booking_factory(start=utc(2024, 1, 11, 14), status="cancelled")
        booking_factory(start=utc(2024, 1, 11, 16), status="in_progress")
        other = booking_factory(provider_id=6, start=utc(2024, 1, 11, 11), customer_id=77)

        now = utc(2024, 1, 10, 9)
        assert repository.list_upcoming_bookings(now, provider_id=5) == [sooner, later]
        assert repository.list_upcoming_bookings(now, customer_id=77) == [other]
        assert repository.list_upcoming_bookings(now, limit=1) == [sooner]


@pytest.mark.unit
class TestConstraintNames:
    def test_postgres_diagnostics(self) -> None:
        orig = Exception("duplicate key")
        orig.diag = type("Diag", (), {"constraint_name": "uq_bookings_booking_number"})()

        assert constraint_name_from(IntegrityError("INSERT", {}, orig)) == "uq_bookings_booking_number"

    def test_sqlite_check_message(self) -> None:
        orig = Exception("CHECK constraint failed: ck_bookings_tip_non_negative")

        assert constraint_name_from(IntegrityError("INSERT", {}, orig)) == "ck_bookings_tip_non_negative"

    def test_sqlite_unique_message_has_no_name(self) -> None:
        orig = Exception("UNIQUE constraint failed: bookings.booking_number")

        assert constraint_name_from(IntegrityError("INSERT", {}, orig)) is None

    def test_real_check_violation_is_named(self, repository, booking_factory, db) -> None:
        booking = booking_factory()

        with pytest.raises(BookingIntegrityError) as exc_info:
            repository.update(booking.id, tip_amount=Decimal("-1.00"))
        db.rollback()

        assert exc_info.value.constraint_name == "ck_bookings_tip_non_negative"
