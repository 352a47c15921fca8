"""Payment reconciliation: idempotency, amount integrity, late money."""

import logging
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select

from app.core.exceptions import (
    AmountMismatch,
    ConflictError,
    PaymentGatewayError,
    SeatConflict,
    UnknownReference,
    UpstreamTimeout,
)
from app.core.immutability import ImmutabilityViolationError
from app.gateways.base import ReportedStatus
from app.models.admin import AuditLog
from app.models.payment import Payment
from app.services.booking_service import booking_service
from app.services.reconciliation_service import ReconciliationResult, reconciliation_service
from app.services.seat_ledger import seat_ledger


async def _booking_with_payment(db, trip, seats=("A1", "B1")):
    booking = await booking_service.create_booking(db, trip.id, list(seats))
    await db.commit()
    payment = await reconciliation_service.initialize_payment(
        db, booking.id, booking.total_amount, "ada@example.com"
    )
    return booking, payment


async def _audit_count(db) -> int:
    result = await db.execute(select(func.count(AuditLog.id)))
    return result.scalar_one()


async def test_trip_scenario_confirm_then_duplicate_webhook(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["A1", "B1"], total_amount=5000)
    assert booking.status == "PENDING"
    assert await seat_ledger.available_seats(db, trip.id) == ["B2", "B3"]

    with pytest.raises(SeatConflict):
        await booking_service.create_booking(db, trip.id, ["A1"])

    await db.commit()
    payment = await reconciliation_service.initialize_payment(db, booking.id, 5000, "ada@example.com")

    outcome = await reconciliation_service.reconcile(db, payment.reference, "success", 5000)
    assert outcome.result == ReconciliationResult.CONFIRMED
    assert outcome.booking.status == "CONFIRMED"
    assert outcome.booking.confirmed_payment_id == payment.id
    assert outcome.payment.status == "PAID"
    assert outcome.payment.paid_at is not None
    await db.commit()

    audit_rows = await _audit_count(db)
    duplicate = await reconciliation_service.reconcile(db, payment.reference, "success", 5000)

    assert duplicate.result == ReconciliationResult.ALREADY_PAID
    assert duplicate.paid
    assert duplicate.booking.status == "CONFIRMED"
    assert await _audit_count(db) == audit_rows


async def test_wrong_amount_never_confirms(db, trip):
    booking, payment = await _booking_with_payment(db, trip)

    outcome = await reconciliation_service.reconcile(db, payment.reference, "success", 4000)

    assert outcome.result == ReconciliationResult.AMOUNT_MISMATCH
    assert outcome.payment.status == "FAILED"
    assert outcome.payment.failure_reason == "AmountMismatch"
    assert outcome.payment.requires_review is True
    assert outcome.booking.status == "CANCELLED"
    assert await seat_ledger.available_seats(db, trip.id) == ["A1", "B1", "B2", "B3"]

    replay = await reconciliation_service.reconcile(db, payment.reference, "success", 5000)
    assert replay.result == ReconciliationResult.MANUAL_REVIEW
    assert replay.booking.status == "CANCELLED"


async def test_missing_amount_is_a_mismatch(db, trip):
    _, payment = await _booking_with_payment(db, trip)

    outcome = await reconciliation_service.reconcile(db, payment.reference, "failed", None)

    assert outcome.result == ReconciliationResult.AMOUNT_MISMATCH
    assert outcome.payment.requires_review is False


async def test_unknown_reference_is_rejected(db, trip):
    with pytest.raises(UnknownReference):
        await reconciliation_service.reconcile(db, "PAY_NOPE", "success", 5000)


async def test_pending_report_changes_nothing(db, trip):
    booking, payment = await _booking_with_payment(db, trip)

    outcome = await reconciliation_service.reconcile(db, payment.reference, ReportedStatus.PENDING, 5000)

    assert outcome.result == ReconciliationResult.PENDING
    assert outcome.payment.status == "PENDING"
    assert outcome.booking.status == "PENDING"


async def test_failed_payment_cancels_booking_and_releases_seats(db, trip):
    booking, payment = await _booking_with_payment(db, trip)

    outcome = await reconciliation_service.reconcile(
        db, payment.reference, "failed", 5000, gateway_response="Insufficient funds"
    )

    assert outcome.result == ReconciliationResult.FAILED
    assert outcome.payment.failure_reason == "Insufficient funds"
    assert outcome.booking.status == "CANCELLED"
    assert outcome.booking.cancellation_reason == "payment_failed"
    assert outcome.message == "Insufficient funds"
    assert await seat_ledger.occupied_seats(db, trip.id) == []

    again = await reconciliation_service.reconcile(db, payment.reference, "failed", 5000)
    assert again.result == ReconciliationResult.ALREADY_FAILED


async def test_failure_without_reason_gets_generic_message(db, trip):
    _, payment = await _booking_with_payment(db, trip)

    outcome = await reconciliation_service.reconcile(db, payment.reference, "failed", 5000)

    assert outcome.message == "Payment could not be completed"


async def test_success_after_failure_goes_to_review(db, trip, caplog):
    booking, payment = await _booking_with_payment(db, trip)
    await reconciliation_service.reconcile(db, payment.reference, "failed", 5000)

    with caplog.at_level(logging.CRITICAL):
        outcome = await reconciliation_service.reconcile(db, payment.reference, "success", 5000)

    assert outcome.result == ReconciliationResult.MANUAL_REVIEW
    assert outcome.payment.requires_review is True
    assert outcome.payment.status == "FAILED"
    assert outcome.booking.status == "CANCELLED"
    assert any("OPERATIONAL_ALERT" in r.getMessage() for r in caplog.records)


async def test_second_payment_for_confirmed_booking_is_flagged(db, trip, caplog):
    booking, first = await _booking_with_payment(db, trip)
    second = await reconciliation_service.initialize_payment(db, booking.id, 5000, "ada@example.com")

    await reconciliation_service.reconcile(db, first.reference, "success", 5000)

    with caplog.at_level(logging.CRITICAL):
        outcome = await reconciliation_service.reconcile(db, second.reference, "success", 5000)

    assert outcome.result == ReconciliationResult.MANUAL_REVIEW
    assert outcome.payment.id == second.id
    assert outcome.payment.status == "PENDING"
    assert outcome.payment.requires_review is True
    assert outcome.booking.status == "CONFIRMED"
    assert outcome.booking.confirmed_payment_id == first.id
    assert any("manual review" in r.getMessage() for r in caplog.records)

    paid = await db.execute(
        select(func.count(Payment.id)).where(Payment.booking_id == booking.id, Payment.status == "PAID")
    )
    assert paid.scalar_one() == 1


async def test_success_for_expired_hold_goes_to_review(db, trip):
    booking, payment = await _booking_with_payment(db, trip)
    await booking_service.expire_hold(db, booking.id, now=datetime.now(UTC) + timedelta(minutes=16))

    outcome = await reconciliation_service.reconcile(db, payment.reference, "success", 5000)

    assert outcome.result == ReconciliationResult.MANUAL_REVIEW
    assert outcome.booking.status == "CANCELLED"
    assert outcome.payment.review_reason


async def test_initialize_rejects_wrong_amount(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["A1"])

    with pytest.raises(AmountMismatch):
        await reconciliation_service.initialize_payment(db, booking.id, 100, "ada@example.com")


async def test_initialize_requires_pending_booking(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["A1"])
    await booking_service.cancel(db, booking.id, "changed plans")

    with pytest.raises(ConflictError):
        await reconciliation_service.initialize_payment(db, booking.id, 2500, "ada@example.com")


async def test_initialize_rejects_expired_hold(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["A1"])

    with pytest.raises(ConflictError):
        await reconciliation_service.initialize_payment(
            db, booking.id, 2500, "ada@example.com", now=datetime.now(UTC) + timedelta(minutes=20)
        )


async def test_initialize_records_gateway_checkout(db, trip, fake_gateway):
    _, payment = await _booking_with_payment(db, trip)

    assert payment.status == "PENDING"
    assert payment.authorization_url == f"https://checkout.test/{payment.reference}"
    assert payment.reference.startswith("PAY_BK-")
    assert fake_gateway.initialized[0]["amount"] == 5000


async def test_initialize_timeout_leaves_payment_pending(db, trip, fake_gateway):
    booking = await booking_service.create_booking(db, trip.id, ["A1"])
    await db.commit()
    fake_gateway.initialize_error = UpstreamTimeout("paystack")

    with pytest.raises(UpstreamTimeout):
        await reconciliation_service.initialize_payment(db, booking.id, 2500, "ada@example.com")

    result = await db.execute(select(Payment).where(Payment.booking_id == booking.id))
    payment = result.scalar_one()
    assert payment.status == "PENDING"
    refreshed = await booking_service.get_booking(db, booking.id)
    assert refreshed.status == "PENDING"


async def test_initialize_decline_marks_payment_failed(db, trip, fake_gateway):
    booking = await booking_service.create_booking(db, trip.id, ["A1"])
    await db.commit()
    fake_gateway.decline_initialize = True

    with pytest.raises(PaymentGatewayError):
        await reconciliation_service.initialize_payment(db, booking.id, 2500, "ada@example.com")

    result = await db.execute(select(Payment).where(Payment.booking_id == booking.id))
    assert result.scalar_one().status == "FAILED"


async def test_verify_payment_confirms_and_short_circuits(db, trip, fake_gateway):
    _, payment = await _booking_with_payment(db, trip)
    fake_gateway.report(payment.reference, ReportedStatus.SUCCESS, 5000, channel="card")

    outcome = await reconciliation_service.verify_payment(db, payment.reference)
    assert outcome.result == ReconciliationResult.CONFIRMED
    assert outcome.payment.channel == "card"

    again = await reconciliation_service.verify_payment(db, payment.reference)
    assert again.result == ReconciliationResult.ALREADY_PAID
    assert fake_gateway.verify_calls == [payment.reference]


async def test_verify_payment_timeout_changes_nothing(db, trip, fake_gateway):
    booking, payment = await _booking_with_payment(db, trip)
    fake_gateway.verify_error = UpstreamTimeout("paystack")

    with pytest.raises(UpstreamTimeout):
        await reconciliation_service.verify_payment(db, payment.reference)

    assert (await booking_service.get_booking(db, booking.id)).status == "PENDING"


async def test_payment_stats(db, trip):
    _, paid = await _booking_with_payment(db, trip, seats=("A1",))
    _, failed = await _booking_with_payment(db, trip, seats=("B1",))
    await _booking_with_payment(db, trip, seats=("B2",))

    await reconciliation_service.reconcile(db, paid.reference, "success", 2500)
    await reconciliation_service.reconcile(db, failed.reference, "failed", 2500)
    await db.flush()

    stats = await reconciliation_service.payment_stats(db)
    assert stats["total"] == 3
    assert stats["successful"] == 1
    assert stats["failed"] == 1
    assert stats["pending"] == 1
    assert stats["revenue"] == 2500
    assert stats["success_rate"] == 33.33


async def test_list_for_booking(db, trip):
    booking, payment = await _booking_with_payment(db, trip)

    payments = await reconciliation_service.list_for_booking(db, booking.id)

    assert [p.reference for p in payments] == [payment.reference]


async def test_payments_cannot_be_deleted(db, trip):
    _, payment = await _booking_with_payment(db, trip)

    await db.delete(payment)
    with pytest.raises(ImmutabilityViolationError):
        await db.flush()


async def test_manual_gateway_checkout_stays_pending(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["A1"])
    await db.commit()

    payment = await reconciliation_service.initialize_payment(
        db, booking.id, 2500, "ada@example.com", gateway="manual"
    )
    outcome = await reconciliation_service.verify_payment(db, payment.reference)

    assert payment.gateway == "manual"
    assert f"reference={payment.reference}" in payment.authorization_url
    assert outcome.result == ReconciliationResult.PENDING
