"""Celery reward tasks, run eagerly in a worker thread against the test database"""

import asyncio
import uuid
from datetime import date
from unittest.mock import patch, AsyncMock

import pytest

from app.core.config import settings
from app.crud import rewards as reward_store
from app.services.host_service import HostService, confirmation_reward_key
from app.services.referral_service import ReferralService
from app.tasks.reward_tasks import retry_reward_issuance, reissue_missing_rewards


@pytest.fixture
def worker_database(engine, monkeypatch):
    # Tasks open their own engine from settings
    monkeypatch.setattr(settings, "DATABASE_URL", engine.url.render_as_string(hide_password=False))


async def _confirmed_without_reward(session_factory, referrer, host, listing):
    async with session_factory() as session:
        service = ReferralService(session)
        referral = await service.create_referral(referrer.id, listing_id=listing.id)
        report = await service.report_booking(
            referral.referral_code, "g@x.com", date(2024, 6, 15), date(2024, 6, 20), "guest"
        )

    with patch(
        "app.services.host_service.RewardService.issue_reward",
        new=AsyncMock(side_effect=RuntimeError("ledger unavailable")),
    ), patch.object(retry_reward_issuance, "delay"):
        async with session_factory() as session:
            await HostService(session).confirm_referral(host.id, report["confirmation"].id)

    return report["confirmation"]


async def _rewards(session_factory, user):
    async with session_factory() as session:
        return await reward_store.get_user_rewards(session, user.id)


async def test_retry_issues_missing_reward(worker_database, session_factory, traveler, host, listing):
    confirmation = await _confirmed_without_reward(session_factory, traveler, host, listing)

    result = await asyncio.to_thread(retry_reward_issuance.apply, args=[str(confirmation.id)])

    rewards = await _rewards(session_factory, traveler)
    assert len(rewards) == 1
    assert result.get() == str(rewards[0].id)
    assert rewards[0].idempotency_key == confirmation_reward_key(confirmation.id)


async def test_retry_gives_up_on_unknown_confirmation(worker_database):
    result = await asyncio.to_thread(retry_reward_issuance.apply, args=[str(uuid.uuid4())])
    assert result.get() is None


async def test_sweep_fills_gaps_only(worker_database, session_factory, traveler, host, listing):
    first = await _confirmed_without_reward(session_factory, traveler, host, listing)
    await _confirmed_without_reward(session_factory, traveler, host, listing)

    async with session_factory() as session:
        await HostService(session).issue_confirmation_reward(first.id)

    result = await asyncio.to_thread(reissue_missing_rewards.apply, kwargs={"batch_size": 1})

    assert len(result.get()) == 1
    assert len(await _rewards(session_factory, traveler)) == 2

    # Nothing left to do
    again = await asyncio.to_thread(reissue_missing_rewards.apply)
    assert again.get() == []
