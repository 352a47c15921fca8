#!/usr/bin/env python3
"""
Seat booking and payment flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_book_and_pay.py --trip-id <UUID> --seats A1 B1 --email rider@example.com

Flow:
    1. Show seat availability
    2. Create booking (guest checkout)
    3. Initialize payment
    4. Verify payment (after paying at the authorization URL)
    5. Show booking status
"""

import argparse
import json
import sys

import httpx

BASE_URL = "http://localhost:8000"


def api_request(method: str, endpoint: str, data: dict | None = None) -> dict:
    """Make an API request."""
    url = f"{BASE_URL}{endpoint}"
    response = httpx.request(method, url, json=data, timeout=20.0)
    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict, fields: list[str] | None = None):
    """Print result, optionally filtering fields."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False

    print(f"Status: {result['status']}")
    if fields:
        filtered = {k: result["data"].get(k) for k in fields if k in result["data"]}
        print(json.dumps(filtered, indent=2))
    else:
        print(json.dumps(result["data"], indent=2))
    return True


def main():
    parser = argparse.ArgumentParser(description="Book seats and pay for them")
    parser.add_argument("--trip-id", required=True, help="Trip UUID")
    parser.add_argument("--seats", nargs="+", required=True, help="Seat labels, e.g. A1 B1")
    parser.add_argument("--email", required=True, help="Payer email")
    parser.add_argument("--name", default="Test Rider", help="Contact name")
    args = parser.parse_args()

    # Step 1: Availability
    print_step(1, "Seat availability")
    seats_result = api_request("GET", f"/api/v1/trips/{args.trip_id}/seats")
    if not print_result(seats_result):
        sys.exit(1)

    # Step 2: Create booking
    print_step(2, "Create booking")
    booking_result = api_request("POST", "/api/v1/bookings", {
        "tripId": args.trip_id,
        "seatNumbers": args.seats,
        "passengerDetails": [{"fullName": args.name} for _ in args.seats],
        "contactInfo": {"name": args.name, "email": args.email},
    })
    if not print_result(booking_result, ["id", "bookingReference", "status", "totalAmount", "expiresAt"]):
        sys.exit(1)

    booking_id = booking_result["data"]["id"]
    total_amount = booking_result["data"]["totalAmount"]

    # Step 3: Initialize payment
    print_step(3, "Initialize payment")
    payment_result = api_request("POST", "/api/v1/payments/initialize", {
        "bookingId": booking_id,
        "amount": total_amount,
        "email": args.email,
    })
    if not print_result(payment_result, ["reference", "authorizationUrl", "amount", "currency"]):
        sys.exit(1)

    reference = payment_result["data"]["reference"]
    print(f"\nPay at: {payment_result['data']['authorizationUrl']}")
    input("Press Enter once the payment is complete...")

    # Step 4: Verify payment
    print_step(4, "Verify payment")
    verify_result = api_request("GET", f"/api/v1/payments/verify/{reference}")
    if not print_result(verify_result):
        sys.exit(1)

    # Step 5: Booking status
    print_step(5, "Booking status")
    final_result = api_request("GET", f"/api/v1/bookings/{booking_id}")
    print_result(final_result, ["bookingReference", "status", "seatNumbers", "confirmedAt"])


if __name__ == "__main__":
    main()
