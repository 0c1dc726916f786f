"""Referral link lifecycle: creation, tracking and booking reports"""

from typing import Dict, Any, Optional, List, Union
from datetime import date
from decimal import Decimal
import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    NotFoundException,
    AccessDeniedException,
    InvalidStateException,
    CodeExhaustedException,
    InvalidReferralCodeException,
    ValidationException,
)
from app.core.monitoring import referrals_created, referral_clicks, referral_views, bookings_reported
from app.crud import referrals as referral_store
from app.crud import confirmations as confirmation_store
from app.crud import listings as listing_store
from app.models import Referral, ReferralStatus, ReportedBy
from app.services.referral_codes import (
    generate_referral_code,
    is_valid_referral_code,
    normalize_referral_code,
    build_referral_link,
)
from app.services.state_machine import referral_state_machine
from app.utils.validators import validate_email_address, validate_booking_dates, parse_uuid

logger = logging.getLogger(__name__)

class ReferralService:
    """Service for referral links and the bookings reported through them"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_referral(
        self,
        user_id: Union[str, uuid.UUID],
        listing_id: Optional[Union[str, uuid.UUID]] = None,
        base_url: Optional[str] = None
    ) -> Referral:
        """
        Generate a unique code and persist a new active referral

        Args:
            user_id: Owner of the link
            listing_id: Listing the link points at, if any
            base_url: Link base, REFERRAL_BASE_URL when omitted

        Returns:
            The created referral

        Raises:
            NotFoundException: listing_id does not exist
            CodeExhaustedException: no free code within the attempt budget
        """
        user_id = parse_uuid(user_id, "user_id")
        listing_id = parse_uuid(listing_id, "listing_id") if listing_id else None

        if listing_id and await listing_store.get_listing_host_id(self.db, listing_id) is None:
            raise NotFoundException("Listing not found")

        base = base_url or settings.REFERRAL_BASE_URL
        max_attempts = settings.REFERRAL_CODE_MAX_ATTEMPTS

        for attempt in range(1, max_attempts + 1):
            code = generate_referral_code()

            if await referral_store.referral_code_exists(self.db, code):
                logger.debug(f"Referral code collision on attempt {attempt}")
                continue

            try:
                referral = await referral_store.create_referral(
                    self.db,
                    user_id=user_id,
                    referral_code=code,
                    referral_link=build_referral_link(code, base),
                    listing_id=listing_id,
                )
                await self.db.commit()
            except IntegrityError:
                # Another writer took the code between the check and the insert
                await self.db.rollback()
                logger.warning(f"Referral code {code} taken concurrently, retrying")
                continue

            referrals_created.inc()
            logger.info(f"Referral {referral.id} created for user {user_id} with code {code}")
            return referral

        logger.error(f"Referral code generation exhausted after {max_attempts} attempts")
        raise CodeExhaustedException(max_attempts)

    async def get_referral_by_code(self, code: str) -> Referral:
        """Get referral by code, NotFound for malformed or unknown codes"""
        code = normalize_referral_code(code)
        if not is_valid_referral_code(code):
            raise InvalidReferralCodeException()

        referral = await referral_store.get_referral_by_code(self.db, code)
        if not referral:
            raise InvalidReferralCodeException()

        return referral

    async def get_referral_for_owner(
        self,
        referral_id: Union[str, uuid.UUID],
        user_id: Union[str, uuid.UUID]
    ) -> Referral:
        """Get a referral, only for its owner"""
        referral = await referral_store.get_referral_by_id(self.db, parse_uuid(referral_id, "referral_id"))
        if not referral:
            raise NotFoundException("Referral not found")

        if referral.user_id != parse_uuid(user_id, "user_id"):
            raise AccessDeniedException("You do not have access to this referral")

        return referral

    async def get_user_referrals(
        self,
        user_id: Union[str, uuid.UUID],
        status: Optional[str] = None,
        confirmation_status: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[Dict[str, Any]]:
        """List a user's referrals with the status of their latest booking report"""
        referrals = await referral_store.get_user_referrals(
            self.db,
            parse_uuid(user_id, "user_id"),
            status=status,
            confirmation_status=confirmation_status,
            skip=skip,
            limit=limit,
        )

        statuses = await confirmation_store.get_referral_confirmation_statuses(
            self.db, [referral.id for referral in referrals]
        )

        return [
            {"referral": referral, "confirmation_status": statuses.get(referral.id)}
            for referral in referrals
        ]

    async def track_click(self, code: str, email: Optional[str] = None) -> Referral:
        """Count a click and remember the email of whoever clicked"""
        referral = await self.get_referral_by_code(code)
        email = validate_email_address(email) if email else None

        await referral_store.increment_click_count(self.db, referral.referral_code)

        if email:
            await referral_store.record_referral_email(self.db, email, referral.referral_code)

        await self.db.commit()
        referral_clicks.inc()

        return await referral_store.get_referral_by_id(self.db, referral.id)

    async def track_view(self, code: str) -> Referral:
        """Count a view"""
        referral = await self.get_referral_by_code(code)

        await referral_store.increment_view_count(self.db, referral.referral_code)
        await self.db.commit()
        referral_views.inc()

        return await referral_store.get_referral_by_id(self.db, referral.id)

    async def get_landing(self, code: str) -> Dict[str, Any]:
        """
        Public landing data for a referral link

        Every call counts as a view of the link.
        """
        referral = await self.track_view(code)

        listing = None
        if referral.listing_id:
            listing = await listing_store.get_listing_summary(self.db, referral.listing_id)

        return {"referral": referral, "listing": listing}

    async def report_booking(
        self,
        code: str,
        guest_email: str,
        check_in: date,
        check_out: date,
        reported_by: Union[str, ReportedBy],
        booking_confirmation: Optional[str] = None,
        booking_value: Optional[Decimal] = None
    ) -> Dict[str, Any]:
        """
        Record a booking made through a referral link

        The referral moves active -> booked and a confirmation is opened for
        the host who owns the referral's listing.

        Raises:
            NotFoundException: unknown code
            ValidationException: bad dates, email or reporter
            InvalidStateException: referral is not active
        """
        referral = await self.get_referral_by_code(code)

        validate_booking_dates(check_in, check_out)
        guest_email = validate_email_address(guest_email, "guest_email")
        try:
            reported_by = ReportedBy(reported_by)
        except ValueError:
            raise ValidationException(
                "Invalid reporter",
                errors=[{"field": "reported_by", "message": "must be one of: guest, referrer"}]
            )

        current_status = ReferralStatus(referral.status)
        if not referral_state_machine.can_transition(current_status, ReferralStatus.BOOKED):
            raise InvalidStateException(
                f"Referral is {current_status.value} and cannot take a booking",
                current_status=current_status.value
            )

        changed = await referral_store.mark_booked(
            self.db, referral.id, check_in, check_out, booking_value
        )
        if changed != 1:
            # Someone booked it between our read and write
            await self.db.rollback()
            raise InvalidStateException("Referral is no longer active")

        host_id = None
        if referral.listing_id:
            host_id = await listing_store.get_listing_host_id(self.db, referral.listing_id)

        confirmation = await confirmation_store.create_confirmation(
            self.db,
            referral_id=referral.id,
            referral_code=referral.referral_code,
            listing_id=referral.listing_id,
            host_id=host_id,
            guest_email=guest_email,
            check_in=check_in,
            check_out=check_out,
            reported_by=reported_by.value,
            booking_confirmation=booking_confirmation,
        )
        await self.db.commit()
        bookings_reported.labels(reported_by=reported_by.value).inc()

        logger.info(
            f"Booking reported on referral {referral.referral_code} by {reported_by.value}, "
            f"confirmation {confirmation.id} for host {host_id}"
        )

        return {
            "referral": await referral_store.get_referral_by_id(self.db, referral.id),
            "confirmation": confirmation,
        }

    async def get_referral_stats(self, user_id: Union[str, uuid.UUID]) -> Dict[str, int]:
        """Aggregate referral counts for a user's dashboard"""
        return await referral_store.get_user_referral_stats(self.db, parse_uuid(user_id, "user_id"))
