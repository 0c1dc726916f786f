import asyncio
import uuid
from datetime import date
from unittest.mock import patch, AsyncMock

import pytest

from app.core.exceptions import (
    CodeExhaustedException,
    InvalidReferralCodeException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
    AccessDeniedException,
)
from app.models import ReferralStatus, ConfirmationStatus
from app.services.referral_service import ReferralService

CHECK_IN = date(2024, 6, 15)
CHECK_OUT = date(2024, 6, 20)


async def _create(session_factory, user, listing=None, **kwargs):
    async with session_factory() as session:
        return await ReferralService(session).create_referral(
            user.id, listing_id=listing.id if listing else None, **kwargs
        )


async def test_create_referral_starts_active(session_factory, traveler, listing):
    referral = await _create(session_factory, traveler, listing)

    assert referral.status == ReferralStatus.ACTIVE.value
    assert referral.click_count == 0
    assert referral.view_count == 0
    assert referral.listing_id == listing.id
    assert referral.referral_link == f"https://app.com/r/{referral.referral_code}"


async def test_create_referral_uses_given_base_url(session_factory, traveler):
    referral = await _create(session_factory, traveler, base_url="https://stay.example.org/")
    assert referral.referral_link == f"https://stay.example.org/r/{referral.referral_code}"


async def test_create_referral_unknown_listing(session_factory, traveler):
    async with session_factory() as session:
        with pytest.raises(NotFoundException):
            await ReferralService(session).create_referral(traveler.id, listing_id=uuid.uuid4())


async def test_taken_code_is_skipped(session_factory, traveler):
    with patch("app.services.referral_service.generate_referral_code", return_value="AAAAAAAA"):
        first = await _create(session_factory, traveler)

    with patch(
        "app.services.referral_service.generate_referral_code",
        side_effect=["AAAAAAAA", "BBBBBBBB"],
    ):
        second = await _create(session_factory, traveler)

    assert first.referral_code == "AAAAAAAA"
    assert second.referral_code == "BBBBBBBB"


async def test_insert_collision_retries_with_new_code(session_factory, traveler):
    with patch("app.services.referral_service.generate_referral_code", return_value="AAAAAAAA"):
        await _create(session_factory, traveler)

    # Existence check misses, as when another writer inserts between check and insert
    with patch(
        "app.services.referral_service.generate_referral_code",
        side_effect=["AAAAAAAA", "CCCCCCCC"],
    ), patch(
        "app.services.referral_service.referral_store.referral_code_exists",
        new=AsyncMock(return_value=False),
    ):
        referral = await _create(session_factory, traveler)

    assert referral.referral_code == "CCCCCCCC"


async def test_code_generation_gives_up(session_factory, traveler):
    with patch("app.services.referral_service.generate_referral_code", return_value="AAAAAAAA"):
        await _create(session_factory, traveler)

        with pytest.raises(CodeExhaustedException) as exc_info:
            await _create(session_factory, traveler)

    assert exc_info.value.status_code == 500
    assert exc_info.value.error_code == "CODE_EXHAUSTED"


async def test_lookup_normalizes_code(session_factory, traveler):
    referral = await _create(session_factory, traveler)

    async with session_factory() as session:
        found = await ReferralService(session).get_referral_by_code(f"  {referral.referral_code.lower()} ")

    assert found.id == referral.id


@pytest.mark.parametrize("code", ["NOPE", "ZZZZZZZZ", "bad-code!"])
async def test_lookup_unknown_or_malformed_code(session_factory, code):
    async with session_factory() as session:
        with pytest.raises(InvalidReferralCodeException) as exc_info:
            await ReferralService(session).get_referral_by_code(code)

    assert exc_info.value.status_code == 404


async def test_owner_only_fetch(session_factory, traveler, other_traveler):
    referral = await _create(session_factory, traveler)

    async with session_factory() as session:
        service = ReferralService(session)
        assert (await service.get_referral_for_owner(referral.id, traveler.id)).id == referral.id

        with pytest.raises(AccessDeniedException):
            await service.get_referral_for_owner(referral.id, other_traveler.id)


async def test_track_click_counts_and_records_email(session_factory, traveler):
    referral = await _create(session_factory, traveler)

    async with session_factory() as session:
        updated = await ReferralService(session).track_click(referral.referral_code, " Guest@X.com ")

    assert updated.click_count == 1
    assert updated.view_count == 0


async def test_track_click_rejects_bad_email_without_counting(session_factory, traveler):
    referral = await _create(session_factory, traveler)

    async with session_factory() as session:
        with pytest.raises(ValidationException):
            await ReferralService(session).track_click(referral.referral_code, "not-an-email")

    async with session_factory() as session:
        current = await ReferralService(session).get_referral_by_code(referral.referral_code)
    assert current.click_count == 0


async def test_concurrent_clicks_are_not_lost(session_factory, traveler):
    referral = await _create(session_factory, traveler)

    async def click():
        async with session_factory() as session:
            await ReferralService(session).track_click(referral.referral_code)

    await asyncio.gather(*(click() for _ in range(10)))

    async with session_factory() as session:
        current = await ReferralService(session).get_referral_by_code(referral.referral_code)
    assert current.click_count == 10


async def test_concurrent_views_are_not_lost(session_factory, traveler):
    referral = await _create(session_factory, traveler)

    async def view():
        async with session_factory() as session:
            await ReferralService(session).track_view(referral.referral_code)

    await asyncio.gather(*(view() for _ in range(10)))

    async with session_factory() as session:
        current = await ReferralService(session).get_referral_by_code(referral.referral_code)
    assert current.view_count == 10
    assert current.click_count == 0


async def test_concurrent_creates_get_distinct_codes(session_factory, traveler, other_traveler, listing):
    users = [traveler, other_traveler] * 10

    referrals = await asyncio.gather(*(_create(session_factory, user, listing) for user in users))

    codes = {referral.referral_code for referral in referrals}
    assert len(codes) == len(users)


async def test_landing_counts_a_view(session_factory, traveler, listing):
    referral = await _create(session_factory, traveler, listing)

    async with session_factory() as session:
        landing = await ReferralService(session).get_landing(referral.referral_code)

    assert landing["referral"].view_count == 1
    assert landing["listing"]["title"] == "Seaside Loft"
    assert landing["listing"]["city"] == "Lisbon"


async def test_report_booking_opens_confirmation_for_listing_host(session_factory, traveler, host, listing):
    referral = await _create(session_factory, traveler, listing)

    async with session_factory() as session:
        result = await ReferralService(session).report_booking(
            referral.referral_code,
            guest_email="g@x.com",
            check_in=CHECK_IN,
            check_out=CHECK_OUT,
            reported_by="guest",
        )

    booked = result["referral"]
    confirmation = result["confirmation"]
    assert booked.status == ReferralStatus.BOOKED.value
    assert booked.check_in_date == CHECK_IN
    assert booked.check_out_date == CHECK_OUT
    assert booked.booking_date is not None
    assert confirmation.status == ConfirmationStatus.PENDING_HOST_CONFIRMATION.value
    assert confirmation.host_id == host.id
    assert confirmation.listing_id == listing.id
    assert confirmation.guest_email == "g@x.com"


async def test_report_booking_without_listing_has_no_host(session_factory, traveler):
    referral = await _create(session_factory, traveler)

    async with session_factory() as session:
        result = await ReferralService(session).report_booking(
            referral.referral_code, "g@x.com", CHECK_IN, CHECK_OUT, "referrer"
        )

    assert result["confirmation"].host_id is None
    assert result["confirmation"].reported_by == "referrer"


@pytest.mark.parametrize("check_in,check_out", [
    (date(2024, 6, 20), date(2024, 6, 15)),
    (date(2024, 6, 15), date(2024, 6, 15)),
])
async def test_report_booking_rejects_bad_dates(session_factory, traveler, check_in, check_out):
    referral = await _create(session_factory, traveler)

    async with session_factory() as session:
        with pytest.raises(ValidationException):
            await ReferralService(session).report_booking(
                referral.referral_code, "g@x.com", check_in, check_out, "guest"
            )


async def test_report_booking_rejects_unknown_reporter(session_factory, traveler):
    referral = await _create(session_factory, traveler)

    async with session_factory() as session:
        with pytest.raises(ValidationException):
            await ReferralService(session).report_booking(
                referral.referral_code, "g@x.com", CHECK_IN, CHECK_OUT, "host"
            )


async def test_second_report_on_booked_referral_fails(session_factory, traveler, listing):
    referral = await _create(session_factory, traveler, listing)

    async with session_factory() as session:
        await ReferralService(session).report_booking(
            referral.referral_code, "g@x.com", CHECK_IN, CHECK_OUT, "guest"
        )

    async with session_factory() as session:
        with pytest.raises(InvalidStateException) as exc_info:
            await ReferralService(session).report_booking(
                referral.referral_code, "h@x.com", CHECK_IN, CHECK_OUT, "guest"
            )

    assert exc_info.value.status_code == 400


async def test_user_referrals_carry_latest_confirmation_status(session_factory, traveler, listing):
    booked = await _create(session_factory, traveler, listing)
    await _create(session_factory, traveler, listing)

    async with session_factory() as session:
        await ReferralService(session).report_booking(
            booked.referral_code, "g@x.com", CHECK_IN, CHECK_OUT, "guest"
        )

    async with session_factory() as session:
        service = ReferralService(session)
        rows = await service.get_user_referrals(traveler.id)
        pending_only = await service.get_user_referrals(
            traveler.id, confirmation_status=ConfirmationStatus.PENDING_HOST_CONFIRMATION.value
        )
        active_only = await service.get_user_referrals(traveler.id, status=ReferralStatus.ACTIVE.value)

    statuses = {row["referral"].id: row["confirmation_status"] for row in rows}
    assert len(statuses) == 2
    assert statuses[booked.id] == ConfirmationStatus.PENDING_HOST_CONFIRMATION.value
    assert [row["referral"].id for row in pending_only] == [booked.id]
    assert len(active_only) == 1
    assert active_only[0]["confirmation_status"] is None


async def test_referral_stats(session_factory, traveler, listing):
    first = await _create(session_factory, traveler, listing)
    await _create(session_factory, traveler)

    async with session_factory() as session:
        service = ReferralService(session)
        await service.track_click(first.referral_code)
        await service.track_click(first.referral_code)
        await service.track_view(first.referral_code)
        await service.report_booking(first.referral_code, "g@x.com", CHECK_IN, CHECK_OUT, "guest")

    async with session_factory() as session:
        stats = await ReferralService(session).get_referral_stats(traveler.id)

    assert stats == {
        "total_referrals": 2,
        "active_referrals": 1,
        "booked_referrals": 1,
        "completed_referrals": 0,
        "total_clicks": 2,
        "total_views": 1,
    }
