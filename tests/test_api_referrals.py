import uuid
from unittest.mock import patch

from app.core.exceptions import UpstreamFailureException
from conftest import auth_headers

API = "/api/v1"


async def _generate(client, user, listing=None):
    body = {"listing_id": str(listing.id)} if listing else {}
    response = await client.post(f"{API}/referrals/generate", json=body, headers=auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()["referral"]


async def test_full_referral_lifecycle(client, traveler, host, listing):
    referral = await _generate(client, traveler, listing)
    code = referral["referral_code"]
    assert referral["status"] == "active"
    assert referral["referral_link"].endswith(f"/r/{code}")

    for _ in range(3):
        response = await client.post(f"{API}/referrals/track-click", json={"referral_code": code})
        assert response.status_code == 200
    assert response.json()["click_count"] == 3
    assert response.json()["message"] == "Click tracked"

    response = await client.post(
        f"{API}/referrals/track-booking",
        json={
            "referral_code": code,
            "guest_email": "g@x.com",
            "check_in": "2024-06-15",
            "check_out": "2024-06-20",
            "reported_by": "guest",
        },
        headers=auth_headers(traveler),
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["referral"]["status"] == "booked"
    assert body["referral"]["check_in_date"] == "2024-06-15"
    confirmation = body["confirmation"]
    assert confirmation["status"] == "pending_host_confirmation"
    assert confirmation["host_id"] == str(host.id)

    response = await client.get(f"{API}/host/confirmations/pending", headers=auth_headers(host))
    assert response.status_code == 200
    pending = response.json()
    assert pending["count"] == 1
    assert pending["items"][0]["listing"]["title"] == "Seaside Loft"

    response = await client.post(
        f"{API}/host/confirmations/{confirmation['id']}/confirm",
        headers=auth_headers(host),
    )
    assert response.status_code == 200, response.text
    decided = response.json()
    assert decided["confirmation"]["status"] == "host_confirmed"
    assert decided["referral"]["status"] == "completed"
    assert decided["referral"]["click_count"] == 3
    assert decided["reward"]["amount"] == 5.0
    assert decided["reward"]["currency"] == "POINTS"
    assert decided["message"] == "Booking confirmed"

    response = await client.get(f"{API}/rewards/history", headers=auth_headers(traveler))
    assert response.json()["count"] == 1

    response = await client.get(f"{API}/rewards/milestones", headers=auth_headers(traveler))
    assert response.json() == {"completed_bookings": 1, "next_milestone": 5, "free_nights_earned": 0}

    response = await client.post(
        f"{API}/host/confirmations/{confirmation['id']}/confirm",
        headers=auth_headers(host),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_STATE"


async def test_reversed_dates_are_rejected(client, traveler):
    referral = await _generate(client, traveler)

    response = await client.post(
        f"{API}/referrals/track-booking",
        json={
            "referral_code": referral["referral_code"],
            "guest_email": "g@x.com",
            "reported_by": "guest",
            "check_in": "2024-06-20",
            "check_out": "2024-06-15",
        },
        headers=auth_headers(traveler),
    )

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["errors"][0]["field"] == "check_out"


async def test_invalid_guest_email(client, traveler):
    referral = await _generate(client, traveler)

    response = await client.post(
        f"{API}/referrals/track-booking",
        json={
            "referral_code": referral["referral_code"],
            "guest_email": "nobody",
            "reported_by": "guest",
            "check_in": "2024-06-15",
            "check_out": "2024-06-20",
        },
        headers=auth_headers(traveler),
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "guest_email"


async def test_track_booking_requires_authentication(client, traveler):
    referral = await _generate(client, traveler)

    response = await client.post(
        f"{API}/referrals/track-booking",
        json={
            "referral_code": referral["referral_code"],
            "guest_email": "g@x.com",
            "reported_by": "referrer",
            "check_in": "2024-06-15",
            "check_out": "2024-06-20",
        },
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Not authenticated", "code": "UNAUTHORIZED"}


async def test_malformed_body_is_a_structured_400(client, traveler):
    response = await client.post(
        f"{API}/referrals/track-booking",
        json={"referral_code": "K7QMZP3D", "check_in": "not-a-date"},
        headers=auth_headers(traveler),
    )

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    fields = {error["field"] for error in body["errors"]}
    assert {"guest_email", "check_in", "check_out", "reported_by"} <= fields


async def test_unknown_code_is_404(client):
    response = await client.post(f"{API}/referrals/track-click", json={"referral_code": "ZZZZZZZZ"})
    assert response.status_code == 404
    assert response.json()["code"] == "INVALID_REFERRAL_CODE"


async def test_landing_counts_views(client, traveler, listing):
    referral = await _generate(client, traveler, listing)
    code = referral["referral_code"]

    first = await client.get(f"{API}/referrals/code/{code.lower()}")
    second = await client.get(f"{API}/referrals/code/{code}")

    assert first.status_code == 200
    assert first.json()["listing"]["city"] == "Lisbon"
    assert "user_id" not in first.json()["referral"]

    response = await client.get(f"{API}/referrals/{referral['id']}", headers=auth_headers(traveler))
    assert response.json()["view_count"] == 2
    assert second.json()["referral"]["referral_code"] == code


async def test_track_view(client, traveler):
    referral = await _generate(client, traveler)

    response = await client.post(
        f"{API}/referrals/track-view", json={"referral_code": referral["referral_code"]}
    )

    assert response.status_code == 200
    assert response.json()["view_count"] == 1
    assert response.json()["click_count"] == 0


async def test_referral_is_owner_only(client, traveler, other_traveler):
    referral = await _generate(client, traveler)

    response = await client.get(f"{API}/referrals/{referral['id']}", headers=auth_headers(other_traveler))

    assert response.status_code == 403
    assert response.json()["code"] == "ACCESS_DENIED"


async def test_user_listing_is_self_only(client, traveler, other_traveler):
    await _generate(client, traveler)

    own = await client.get(f"{API}/referrals/user/{traveler.id}", headers=auth_headers(traveler))
    other = await client.get(f"{API}/referrals/user/{traveler.id}", headers=auth_headers(other_traveler))

    assert own.status_code == 200
    assert own.json()["count"] == 1
    assert own.json()["items"][0]["confirmation_status"] is None
    assert other.status_code == 403


async def test_user_listing_filters(client, traveler):
    await _generate(client, traveler)

    response = await client.get(
        f"{API}/referrals/user/{traveler.id}",
        params={"status": "booked"},
        headers=auth_headers(traveler),
    )
    assert response.json()["count"] == 0

    response = await client.get(
        f"{API}/referrals/user/{traveler.id}",
        params={"status": "bogus"},
        headers=auth_headers(traveler),
    )
    assert response.status_code == 400


async def test_stats(client, traveler):
    referral = await _generate(client, traveler)
    await client.post(f"{API}/referrals/track-click", json={"referral_code": referral["referral_code"]})

    response = await client.get(f"{API}/referrals/stats", headers=auth_headers(traveler))

    assert response.status_code == 200
    assert response.json()["total_referrals"] == 1
    assert response.json()["total_clicks"] == 1


async def test_stats_degrade_to_zeros(client, traveler):
    with patch(
        "app.services.referral_service.referral_store.get_user_referral_stats",
        side_effect=RuntimeError("aggregate failed"),
    ):
        response = await client.get(f"{API}/referrals/stats", headers=auth_headers(traveler))

    assert response.status_code == 200
    assert response.json() == {
        "total_referrals": 0,
        "active_referrals": 0,
        "booked_referrals": 0,
        "completed_referrals": 0,
        "total_clicks": 0,
        "total_views": 0,
    }


async def test_generate_with_unknown_listing(client, traveler):
    response = await client.post(
        f"{API}/referrals/generate",
        json={"listing_id": str(uuid.uuid4())},
        headers=auth_headers(traveler),
    )
    assert response.status_code == 404


async def test_unexpected_errors_do_not_leak(client, traveler):
    with patch(
        "app.services.referral_service.ReferralService.create_referral",
        side_effect=RuntimeError("secret connection string"),
    ):
        response = await client.post(f"{API}/referrals/generate", json={}, headers=auth_headers(traveler))

    assert response.status_code == 500
    assert response.json() == {"error": "An unexpected error occurred", "code": "INTERNAL_ERROR"}


async def test_reported_by_is_required(client, traveler):
    referral = await _generate(client, traveler)

    response = await client.post(
        f"{API}/referrals/track-booking",
        json={
            "referral_code": referral["referral_code"],
            "guest_email": "g@x.com",
            "check_in": "2024-06-15",
            "check_out": "2024-06-20",
        },
        headers=auth_headers(traveler),
    )

    assert response.status_code == 400
    assert [error["field"] for error in response.json()["errors"]] == ["reported_by"]

    response = await client.get(f"{API}/referrals/{referral['id']}", headers=auth_headers(traveler))
    assert response.json()["status"] == "active"


async def test_overlong_code_is_404(client):
    response = await client.post(f"{API}/referrals/track-click", json={"referral_code": "K7QMZP3D" * 5})
    assert response.status_code == 404
    assert response.json()["code"] == "INVALID_REFERRAL_CODE"

    response = await client.post(f"{API}/referrals/track-view", json={"referral_code": "A" * 64})
    assert response.status_code == 404


async def test_upstream_failure_is_a_502(client, traveler):
    with patch(
        "app.services.referral_service.ReferralService.create_referral",
        side_effect=UpstreamFailureException(),
    ):
        response = await client.post(f"{API}/referrals/generate", json={}, headers=auth_headers(traveler))

    assert response.status_code == 502
    assert response.json() == {"error": "Upstream service unavailable", "code": "UPSTREAM_FAILURE"}
