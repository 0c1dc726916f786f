"""Reward ledger background tasks"""

import asyncio
import logging
from typing import List

from app.core.celery_app import celery_app
from app.core.database import worker_session
from app.core.exceptions import NotFoundException, InvalidStateException

logger = logging.getLogger(__name__)

async def _issue_for_confirmation(confirmation_id: str) -> str:
    from app.services.host_service import HostService

    async with worker_session() as db:
        reward = await HostService(db).issue_confirmation_reward(confirmation_id)
        return str(reward.id)

async def _reissue_missing(batch_size: int) -> List[str]:
    from app.crud import confirmations as confirmation_store
    from app.crud import rewards as reward_store
    from app.services.host_service import HostService, confirmation_reward_key

    issued = []
    async with worker_session() as db:
        service = HostService(db)
        skip = 0

        while True:
            confirmation_ids = await confirmation_store.get_confirmed_ids(db, skip=skip, limit=batch_size)
            if not confirmation_ids:
                break

            keys = {confirmation_reward_key(cid): cid for cid in confirmation_ids}
            existing = await reward_store.get_existing_idempotency_keys(db, keys.keys())

            for key, confirmation_id in keys.items():
                if key in existing:
                    continue
                try:
                    reward = await service.issue_confirmation_reward(confirmation_id)
                    issued.append(str(reward.id))
                except Exception:
                    await db.rollback()
                    logger.exception(f"Sweep could not issue reward for confirmation {confirmation_id}")

            skip += batch_size

    return issued

@celery_app.task(
    name="app.tasks.reward_tasks.retry_reward_issuance",
    bind=True,
    max_retries=5,
    default_retry_delay=60
)
def retry_reward_issuance(self, confirmation_id: str):
    """Issue the reward of a confirmed booking whose inline issuance failed"""
    try:
        reward_id = asyncio.run(_issue_for_confirmation(confirmation_id))
        logger.info(f"Reward {reward_id} issued for confirmation {confirmation_id} on retry")
        return reward_id
    except (NotFoundException, InvalidStateException) as exc:
        # Nothing to retry: the booking is gone or was never confirmed
        logger.error(f"Reward retry for confirmation {confirmation_id} abandoned: {exc.detail}")
        return None
    except Exception as exc:
        logger.error(f"Reward retry failed for confirmation {confirmation_id}: {exc}")
        raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))

@celery_app.task(name="app.tasks.reward_tasks.reissue_missing_rewards")
def reissue_missing_rewards(batch_size: int = 500):
    """Periodic sweep for confirmed bookings that never got their reward"""
    issued = asyncio.run(_reissue_missing(batch_size))
    if issued:
        logger.warning(f"Sweep issued {len(issued)} missing confirmation rewards")
    return issued
