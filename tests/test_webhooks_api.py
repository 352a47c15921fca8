"""Paystack webhook endpoint."""

import json

from app.gateways.paystack import PaystackGateway, sign_payload
from app.services.booking_service import booking_service
from app.services.gateway_service import gateway_service
from app.services.reconciliation_service import reconciliation_service

API = "/api/v1"
SECRET = "sk_test_webhook"


async def _pending_payment(db, trip) -> tuple[str, str]:
    booking = await booking_service.create_booking(db, trip.id, ["A1", "B1"])
    await db.commit()
    payment = await reconciliation_service.initialize_payment(db, booking.id, 5000, "ada@example.com")
    await db.commit()
    gateway_service.register(PaystackGateway(secret_key=SECRET))
    return str(booking.id), payment.reference


async def _send(client, event: dict, signature: str | None = None):
    body = json.dumps(event).encode()
    headers = {"content-type": "application/json"}
    headers["x-paystack-signature"] = signature if signature is not None else sign_payload(SECRET, body)
    return await client.post(f"{API}/webhooks/paystack", content=body, headers=headers)


def _charge(reference: str, amount: int = 5000, event: str = "charge.success") -> dict:
    return {
        "event": event,
        "data": {"reference": reference, "amount": amount, "channel": "card", "gateway_response": "Approved"},
    }


async def test_signed_success_confirms_booking(client, db, trip):
    booking_id, reference = await _pending_payment(db, trip)

    response = await _send(client, _charge(reference))

    assert response.status_code == 200
    assert response.json() == {"received": True, "reference": reference, "result": "confirmed"}
    booking = await client.get(f"{API}/bookings/{booking_id}")
    assert booking.json()["status"] == "CONFIRMED"


async def test_duplicate_delivery_is_acknowledged_without_change(client, db, trip):
    _, reference = await _pending_payment(db, trip)
    await _send(client, _charge(reference))

    response = await _send(client, _charge(reference))

    assert response.status_code == 200
    assert response.json()["result"] == "already_paid"


async def test_bad_signature_is_rejected(client, db, trip):
    booking_id, reference = await _pending_payment(db, trip)

    response = await _send(client, _charge(reference), signature="not-a-signature")

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_signature"
    booking = await client.get(f"{API}/bookings/{booking_id}")
    assert booking.json()["status"] == "PENDING"


async def test_wrong_amount_never_confirms(client, db, trip):
    booking_id, reference = await _pending_payment(db, trip)

    response = await _send(client, _charge(reference, amount=4000))

    assert response.json()["result"] == "amount_mismatch"
    booking = await client.get(f"{API}/bookings/{booking_id}")
    assert booking.json()["status"] == "CANCELLED"


async def test_charge_failed_cancels_booking(client, db, trip):
    booking_id, reference = await _pending_payment(db, trip)

    response = await _send(client, _charge(reference, event="charge.failed"))

    assert response.json()["result"] == "failed"


async def test_unknown_reference(client, db, trip):
    await _pending_payment(db, trip)

    response = await _send(client, _charge("PAY_NEVER_ISSUED"))

    assert response.status_code == 404
    assert response.json()["code"] == "unknown_reference"


async def test_other_events_are_acknowledged(client, db, trip):
    await _pending_payment(db, trip)

    response = await _send(client, {"event": "transfer.success", "data": {"reference": "TRF_1"}})

    assert response.status_code == 200
    assert response.json() == {"received": True}


async def test_signed_non_object_body_is_rejected(client, db, trip):
    await _pending_payment(db, trip)
    body = json.dumps([_charge("PAY_1")]).encode()

    response = await client.post(
        f"{API}/webhooks/paystack",
        content=body,
        headers={"content-type": "application/json", "x-paystack-signature": sign_payload(SECRET, body)},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_signature"
