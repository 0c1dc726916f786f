import uuid
from unittest.mock import patch, AsyncMock

from app.tasks.reward_tasks import retry_reward_issuance
from conftest import auth_headers

API = "/api/v1"


async def _pending_confirmation(client, traveler, listing):
    response = await client.post(
        f"{API}/referrals/generate",
        json={"listing_id": str(listing.id)},
        headers=auth_headers(traveler),
    )
    code = response.json()["referral"]["referral_code"]

    response = await client.post(
        f"{API}/referrals/track-booking",
        json={
            "referral_code": code,
            "guest_email": "g@x.com",
            "reported_by": "referrer",
            "check_in": "2024-07-01",
            "check_out": "2024-07-04",
            "booking_value": "350.00",
        },
        headers=auth_headers(traveler),
    )
    assert response.status_code == 201, response.text
    return response.json()["confirmation"]


async def test_host_routes_require_host_role(client, traveler, listing):
    confirmation = await _pending_confirmation(client, traveler, listing)

    for method, path in [
        ("GET", "/host/dashboard"),
        ("GET", "/host/listings"),
        ("GET", "/host/confirmations/pending"),
        ("POST", f"/host/confirmations/{confirmation['id']}/confirm"),
        ("POST", f"/host/confirmations/{confirmation['id']}/reject"),
    ]:
        response = await client.request(method, f"{API}{path}", headers=auth_headers(traveler))
        assert response.status_code == 403, path
        assert response.json() == {"error": "User is not a host", "code": "FORBIDDEN"}


async def test_host_routes_require_authentication(client):
    response = await client.get(f"{API}/host/confirmations/pending")
    assert response.status_code == 401


async def test_foreign_host_is_denied(client, traveler, listing, other_host):
    confirmation = await _pending_confirmation(client, traveler, listing)

    response = await client.post(
        f"{API}/host/confirmations/{confirmation['id']}/confirm",
        headers=auth_headers(other_host),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "ACCESS_DENIED"


async def test_unknown_confirmation_is_404(client, host):
    response = await client.post(
        f"{API}/host/confirmations/{uuid.uuid4()}/confirm",
        headers=auth_headers(host),
    )
    assert response.status_code == 404


async def test_reject_with_reason(client, traveler, host, listing):
    confirmation = await _pending_confirmation(client, traveler, listing)

    response = await client.post(
        f"{API}/host/confirmations/{confirmation['id']}/reject",
        json={"rejection_reason": "Guest never arrived"},
        headers=auth_headers(host),
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["confirmation"]["status"] == "host_rejected"
    assert body["confirmation"]["host_rejected_reason"] == "Guest never arrived"
    assert body["referral"]["status"] == "active"
    assert body["message"] == "Booking rejected"


async def test_reject_without_body(client, traveler, host, listing):
    confirmation = await _pending_confirmation(client, traveler, listing)

    response = await client.post(
        f"{API}/host/confirmations/{confirmation['id']}/reject",
        headers=auth_headers(host),
    )

    assert response.status_code == 200, response.text
    assert response.json()["confirmation"]["host_rejected_reason"] is None


async def test_pending_pagination_is_capped(client, traveler, host, listing):
    for _ in range(3):
        await _pending_confirmation(client, traveler, listing)

    response = await client.get(
        f"{API}/host/confirmations/pending",
        params={"limit": 2, "skip": 1},
        headers=auth_headers(host),
    )
    assert response.json()["count"] == 2

    response = await client.get(
        f"{API}/host/confirmations/pending",
        params={"limit": 1000},
        headers=auth_headers(host),
    )
    assert response.status_code == 200
    assert response.json()["count"] == 3


async def test_confirmations_status_filter(client, traveler, host, listing):
    confirmed = await _pending_confirmation(client, traveler, listing)
    await _pending_confirmation(client, traveler, listing)
    await client.post(f"{API}/host/confirmations/{confirmed['id']}/confirm", headers=auth_headers(host))

    response = await client.get(
        f"{API}/host/confirmations",
        params={"status": "host_confirmed"},
        headers=auth_headers(host),
    )

    items = response.json()["items"]
    assert [item["confirmation"]["id"] for item in items] == [confirmed["id"]]


async def test_dashboard_and_listings(client, traveler, host, listing):
    confirmation = await _pending_confirmation(client, traveler, listing)
    await client.post(f"{API}/host/confirmations/{confirmation['id']}/confirm", headers=auth_headers(host))

    response = await client.get(f"{API}/host/dashboard", headers=auth_headers(host))
    assert response.status_code == 200
    assert response.json() == {
        "total_listings": 1,
        "active_listings": 1,
        "pending_confirmations": 0,
        "confirmed_bookings": 1,
        "rejected_bookings": 0,
        "total_revenue": 350.0,
        "total_commissions_paid": 35.0,
    }

    response = await client.get(f"{API}/host/listings", headers=auth_headers(host))
    rows = response.json()
    assert len(rows) == 1
    assert rows[0]["listing"]["images"] == ["https://img.example.com/loft-1.jpg"]
    assert rows[0]["stats"]["completed_referrals"] == 1
    assert rows[0]["stats"]["confirmed_bookings"] == 1


async def test_confirm_succeeds_when_reward_write_fails(client, traveler, host, listing):
    confirmation = await _pending_confirmation(client, traveler, listing)

    with patch(
        "app.services.host_service.RewardService.issue_reward",
        new=AsyncMock(side_effect=RuntimeError("ledger unavailable")),
    ), patch.object(retry_reward_issuance, "delay") as delay:
        response = await client.post(
            f"{API}/host/confirmations/{confirmation['id']}/confirm",
            headers=auth_headers(host),
        )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["confirmation"]["status"] == "host_confirmed"
    assert body["referral"]["status"] == "completed"
    assert body["reward"] is None
    assert body["message"] == "Booking confirmed, reward is being processed"
    delay.assert_called_once_with(confirmation["id"])

    response = await client.get(f"{API}/rewards/history", headers=auth_headers(traveler))
    assert response.json()["count"] == 0
