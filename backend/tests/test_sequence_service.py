# Overview: Pytest coverage for invoice numbering and business dates.

from datetime import date, datetime, timezone

from stockbook.models import InvoiceSequenceCounter
from stockbook.services.sequence_service import (
    allocate_serial,
    format_invoice_no,
    peek_next_serial,
    preview_invoice_no,
)
from stockbook.time_utils import business_date

DAY = date(2026, 10, 18)


class TestInvoiceNumberFormat:

    def test_format_matches_wire_format(self, app):
        assert format_invoice_no(7, DAY, 1) == "INV-20261018-7-0001"
        assert format_invoice_no(42, DAY, 123) == "INV-20261018-42-0123"

    def test_serials_sort_lexicographically_within_a_day(self, app):
        numbers = [format_invoice_no(3, DAY, serial) for serial in (1, 2, 9, 10, 99, 100, 1000)]
        assert sorted(numbers) == numbers

    def test_prefix_and_width_overrides(self, app):
        assert format_invoice_no(1, DAY, 5, prefix="BILL", width=6) == "BILL-20261018-1-000005"


class TestBusinessDate:

    def test_uses_business_timezone_not_utc(self):
        """18:45 UTC is already the next day in Asia/Kolkata (UTC+5:30)."""
        now = datetime(2026, 10, 18, 18, 45, tzinfo=timezone.utc)
        assert business_date("Asia/Kolkata", now) == date(2026, 10, 19)
        assert business_date("UTC", now) == date(2026, 10, 18)

    def test_naive_datetimes_are_utc(self):
        assert business_date("Asia/Kolkata", datetime(2026, 10, 18, 18, 29)) == date(2026, 10, 18)
        assert business_date("Asia/Kolkata", datetime(2026, 10, 18, 18, 30)) == date(2026, 10, 19)


class TestAllocateSerial:

    def test_first_allocation_of_the_day_is_one(self, db_session, user_a):
        assert allocate_serial(user_a.id, DAY) == 1
        db_session.commit()

        counter = db_session.query(InvoiceSequenceCounter).filter_by(
            user_id=user_a.id, business_date=DAY
        ).one()
        assert counter.next_serial == 2

    def test_allocations_are_contiguous(self, db_session, user_a):
        serials = []
        for _ in range(5):
            serials.append(allocate_serial(user_a.id, DAY))
            db_session.commit()
        assert serials == [1, 2, 3, 4, 5]

    def test_each_day_restarts_at_one(self, db_session, user_a):
        assert allocate_serial(user_a.id, DAY) == 1
        assert allocate_serial(user_a.id, DAY) == 2
        assert allocate_serial(user_a.id, date(2026, 10, 19)) == 1
        db_session.commit()

    def test_users_have_independent_sequences(self, db_session, user_a, user_b):
        assert allocate_serial(user_a.id, DAY) == 1
        assert allocate_serial(user_a.id, DAY) == 2
        assert allocate_serial(user_b.id, DAY) == 1
        db_session.commit()

    def test_rolled_back_allocation_is_reissued(self, db_session, user_a):
        """The counter moves with the enclosing transaction."""
        assert allocate_serial(user_a.id, DAY) == 1
        db_session.commit()

        assert allocate_serial(user_a.id, DAY) == 2
        db_session.rollback()

        assert allocate_serial(user_a.id, DAY) == 2
        db_session.commit()


class TestPreview:

    def test_preview_without_counter_is_first_serial(self, db_session, user_a):
        assert peek_next_serial(user_a.id, DAY) == 1
        assert preview_invoice_no(user_a.id, DAY) == f"INV-20261018-{user_a.id}-0001"

    def test_preview_does_not_consume(self, db_session, user_a):
        allocate_serial(user_a.id, DAY)
        db_session.commit()

        first = preview_invoice_no(user_a.id, DAY)
        second = preview_invoice_no(user_a.id, DAY)

        assert first == second == f"INV-20261018-{user_a.id}-0002"
        assert allocate_serial(user_a.id, DAY) == 2
        db_session.commit()

