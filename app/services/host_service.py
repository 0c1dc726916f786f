"""Host side of the referral lifecycle: dashboard and booking decisions"""

from typing import Dict, Any, Optional, List, Union
from decimal import Decimal
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    ForbiddenException,
    NotFoundException,
    AccessDeniedException,
    InvalidStateException,
)
from app.core.monitoring import host_decisions, reward_issue_failures
from app.crud import confirmations as confirmation_store
from app.crud import referrals as referral_store
from app.crud import listings as listing_store
from app.crud import users as user_store
from app.middleware.security import sanitize_text
from app.models import (
    PendingConfirmation,
    ConfirmationStatus,
    ReferralStatus,
    RewardType,
    Reward,
    UserRole,
)
from app.services.reward_service import RewardService, round_amount
from app.services.state_machine import confirmation_state_machine
from app.utils.pagination import clamp_limit
from app.utils.validators import parse_uuid

logger = logging.getLogger(__name__)

def confirmation_reward_key(confirmation_id: uuid.UUID) -> str:
    """Idempotency key of the reward a confirmed booking earns"""
    return f"confirmation:{confirmation_id}"

class HostService:
    """Service for hosts reviewing bookings reported against their listings"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.reward_service = RewardService(db)

    async def require_host(self, user_id: Union[str, uuid.UUID]) -> uuid.UUID:
        """
        Host authorization guard

        Reads only the role column. Unknown users are treated like non-hosts.

        Returns:
            The user id as UUID
        """
        user_id = parse_uuid(user_id, "user_id")
        role = await user_store.get_user_role(self.db, user_id)
        if role != UserRole.HOST:
            raise ForbiddenException("User is not a host")
        return user_id

    async def get_dashboard_stats(self, host_id: Union[str, uuid.UUID]) -> Dict[str, Any]:
        """Listing, booking and revenue totals for a host"""
        host_id = await self.require_host(host_id)

        listing_counts = await listing_store.count_host_listings(self.db, host_id)
        confirmation_counts = await confirmation_store.count_host_confirmations(self.db, host_id)
        listing_ids = await listing_store.get_host_listing_ids(self.db, host_id)
        revenue = await referral_store.sum_completed_booking_value(self.db, listing_ids)

        return {
            "total_listings": listing_counts["total"],
            "active_listings": listing_counts["active"],
            "pending_confirmations": confirmation_counts.get(
                ConfirmationStatus.PENDING_HOST_CONFIRMATION.value, 0
            ),
            "confirmed_bookings": confirmation_counts.get(ConfirmationStatus.HOST_CONFIRMED.value, 0),
            "rejected_bookings": confirmation_counts.get(ConfirmationStatus.HOST_REJECTED.value, 0),
            "total_revenue": round_amount(revenue),
            "total_commissions_paid": round_amount(
                revenue * Decimal(str(settings.DEFAULT_COMMISSION_RATE))
            ),
        }

    async def get_listings_with_stats(self, host_id: Union[str, uuid.UUID]) -> List[Dict[str, Any]]:
        """Newest listings of a host with per-listing referral figures and one thumbnail"""
        host_id = await self.require_host(host_id)

        listings = await listing_store.get_host_listings_with_thumbnail(
            self.db, host_id, limit=settings.HOST_DASHBOARD_LISTINGS_LIMIT
        )
        if not listings:
            return []

        listing_ids = [listing["id"] for listing in listings]
        referral_counts = await referral_store.get_listing_referral_counts(self.db, listing_ids)
        confirmation_counts = await confirmation_store.get_listing_confirmation_counts(self.db, listing_ids)

        results = []
        for listing in listings:
            thumbnail = listing.pop("thumbnail", None)
            referrals = referral_counts.get(listing["id"], {})
            confirmations = confirmation_counts.get(listing["id"], {})

            results.append({
                "listing": {**listing, "images": [thumbnail] if thumbnail else []},
                "stats": {
                    "total_referrals": sum(referrals.values()),
                    "active_referrals": referrals.get(ReferralStatus.ACTIVE.value, 0),
                    "completed_referrals": referrals.get(ReferralStatus.COMPLETED.value, 0),
                    "pending_confirmations": confirmations.get(
                        ConfirmationStatus.PENDING_HOST_CONFIRMATION.value, 0
                    ),
                    "confirmed_bookings": confirmations.get(ConfirmationStatus.HOST_CONFIRMED.value, 0),
                },
            })

        return results

    async def list_pending_confirmations(
        self,
        host_id: Union[str, uuid.UUID],
        limit: Optional[int] = None,
        skip: int = 0
    ) -> List[Dict[str, Any]]:
        """Bookings waiting on this host, newest first, page size capped at MAX_PAGE_SIZE"""
        return await self.get_host_confirmations(
            host_id,
            status=ConfirmationStatus.PENDING_HOST_CONFIRMATION.value,
            limit=limit,
            skip=skip,
        )

    async def get_host_confirmations(
        self,
        host_id: Union[str, uuid.UUID],
        status: Optional[str] = None,
        limit: Optional[int] = None,
        skip: int = 0
    ) -> List[Dict[str, Any]]:
        """All of a host's confirmations, optionally filtered by status"""
        host_id = await self.require_host(host_id)

        rows = await confirmation_store.get_host_confirmations(
            self.db,
            host_id,
            status=status,
            skip=max(skip, 0),
            limit=clamp_limit(limit),
        )

        return [
            {
                "confirmation": confirmation,
                "listing": {"title": title, "city": city, "country": country}
                if confirmation.listing_id else None,
            }
            for confirmation, title, city, country in rows
        ]

    async def confirm_referral(
        self,
        host_id: Union[str, uuid.UUID],
        confirmation_id: Union[str, uuid.UUID]
    ) -> Dict[str, Any]:
        """
        Accept a reported booking

        The confirmation and referral changes are committed before the reward
        is written. A failed reward write leaves them in place and is queued
        for retry under the confirmation's idempotency key.

        Raises:
            ForbiddenException: caller is not a host
            NotFoundException: no such confirmation
            AccessDeniedException: confirmation belongs to another host
            InvalidStateException: confirmation already decided
        """
        host_id = await self.require_host(host_id)
        confirmation = await self._get_pending_for_host(host_id, confirmation_id)

        changed = await confirmation_store.resolve_pending(
            self.db, confirmation.id, ConfirmationStatus.HOST_CONFIRMED
        )
        if changed != 1:
            # Lost the race against another decision on the same booking
            await self.db.rollback()
            raise InvalidStateException("Confirmation is no longer pending")

        moved = await referral_store.transition_status(
            self.db, confirmation.referral_id, ReferralStatus.BOOKED, ReferralStatus.COMPLETED
        )
        if moved != 1:
            await self.db.rollback()
            raise InvalidStateException("Referral is not awaiting a booking decision")

        # A rollback below expires loaded instances, so keep plain ids
        confirmation_id, referral_id = confirmation.id, confirmation.referral_id
        referral_code = confirmation.referral_code

        await self.db.commit()
        host_decisions.labels(decision="confirmed").inc()
        logger.info(f"Host {host_id} confirmed booking {confirmation_id} on referral {referral_code}")

        reward = None
        try:
            reward = await self.issue_confirmation_reward(confirmation_id)
        except Exception:
            await self.db.rollback()
            reward_issue_failures.inc()
            logger.exception(f"Reward issuance failed for confirmation {confirmation_id}, queueing retry")
            self._queue_reward_retry(confirmation_id)

        return {
            "confirmation": await confirmation_store.get_confirmation_by_id(self.db, confirmation_id),
            "referral": await referral_store.get_referral_by_id(self.db, referral_id),
            "reward": reward,
        }

    async def reject_referral(
        self,
        host_id: Union[str, uuid.UUID],
        confirmation_id: Union[str, uuid.UUID],
        reason: Optional[str] = None
    ) -> Dict[str, Any]:
        """Decline a reported booking and reopen the referral"""
        host_id = await self.require_host(host_id)
        confirmation = await self._get_pending_for_host(host_id, confirmation_id)

        changed = await confirmation_store.resolve_pending(
            self.db,
            confirmation.id,
            ConfirmationStatus.HOST_REJECTED,
            rejected_reason=sanitize_text(reason),
        )
        if changed != 1:
            await self.db.rollback()
            raise InvalidStateException("Confirmation is no longer pending")

        moved = await referral_store.transition_status(
            self.db, confirmation.referral_id, ReferralStatus.BOOKED, ReferralStatus.ACTIVE
        )
        if moved != 1:
            await self.db.rollback()
            raise InvalidStateException("Referral is not awaiting a booking decision")

        await self.db.commit()
        host_decisions.labels(decision="rejected").inc()
        logger.info(f"Host {host_id} rejected booking {confirmation.id} on referral {confirmation.referral_code}")

        return {
            "confirmation": await confirmation_store.get_confirmation_by_id(self.db, confirmation.id),
            "referral": await referral_store.get_referral_by_id(self.db, confirmation.referral_id),
        }

    async def issue_confirmation_reward(self, confirmation_id: Union[str, uuid.UUID]) -> Reward:
        """
        Credit the referrer for a confirmed booking

        Safe to call any number of times for the same confirmation.
        """
        confirmation = await confirmation_store.get_confirmation_by_id(
            self.db, parse_uuid(confirmation_id, "confirmation_id")
        )
        if not confirmation:
            raise NotFoundException("Confirmation not found")

        if confirmation.status != ConfirmationStatus.HOST_CONFIRMED.value:
            raise InvalidStateException(
                "Only confirmed bookings earn rewards",
                current_status=confirmation.status
            )

        referral = await referral_store.get_referral_by_id(self.db, confirmation.referral_id)
        if not referral:
            raise NotFoundException("Referral not found")

        points = settings.CONFIRMED_BOOKING_REWARD_POINTS
        return await self.reward_service.issue_reward(
            user_id=referral.user_id,
            referral_id=referral.id,
            type=RewardType.BONUS,
            amount=points,
            currency=settings.CONFIRMED_BOOKING_REWARD_CURRENCY,
            notes=f"{points} points for confirmed booking via referral {referral.referral_code}",
            idempotency_key=confirmation_reward_key(confirmation.id),
        )

    async def _get_pending_for_host(
        self,
        host_id: uuid.UUID,
        confirmation_id: Union[str, uuid.UUID]
    ) -> PendingConfirmation:
        confirmation = await confirmation_store.get_confirmation_by_id(
            self.db, parse_uuid(confirmation_id, "confirmation_id")
        )
        if not confirmation:
            raise NotFoundException("Confirmation not found")

        if confirmation.host_id != host_id:
            raise AccessDeniedException("This booking is not for one of your listings")

        current = ConfirmationStatus(confirmation.status)
        if confirmation_state_machine.is_terminal(current):
            raise InvalidStateException(
                f"Confirmation is not pending (current status: {current.value})",
                current_status=current.value
            )

        return confirmation

    def _queue_reward_retry(self, confirmation_id: uuid.UUID) -> None:
        from app.tasks.reward_tasks import retry_reward_issuance

        try:
            retry_reward_issuance.delay(str(confirmation_id))
        except Exception:
            # The periodic sweep still finds confirmed bookings without a reward
            logger.exception(f"Could not queue reward retry for confirmation {confirmation_id}")
