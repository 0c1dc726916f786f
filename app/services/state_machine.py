"""
State machines for referral and confirmation status transitions
"""

from typing import Dict, List, Set

from app.models import ReferralStatus, ConfirmationStatus, RewardStatus

class StatusStateMachine:
    """
    Holds the allowed moves between statuses of one entity
    """

    def __init__(self, transitions: Dict):
        self.transitions = transitions

    def can_transition(self, current_status, new_status) -> bool:
        """
        Check if transition is valid

        Args:
            current_status: Current status
            new_status: Desired new status

        Returns:
            True if transition is allowed
        """
        return new_status in self.transitions.get(current_status, set())

    def get_valid_transitions(self, current_status) -> List:
        """Get list of valid transitions from current status"""
        return list(self.transitions.get(current_status, set()))

    def is_terminal(self, status) -> bool:
        return not self.transitions.get(status)

referral_transitions: Dict[ReferralStatus, Set[ReferralStatus]] = {
    ReferralStatus.ACTIVE: {
        ReferralStatus.BOOKED,
        ReferralStatus.EXPIRED
    },
    ReferralStatus.BOOKED: {
        ReferralStatus.COMPLETED,
        ReferralStatus.ACTIVE,  # Host rejected the reported booking
        ReferralStatus.EXPIRED
    },
    ReferralStatus.COMPLETED: set(),
    ReferralStatus.EXPIRED: set()
}

confirmation_transitions: Dict[ConfirmationStatus, Set[ConfirmationStatus]] = {
    ConfirmationStatus.PENDING_HOST_CONFIRMATION: {
        ConfirmationStatus.HOST_CONFIRMED,
        ConfirmationStatus.HOST_REJECTED
    },
    ConfirmationStatus.HOST_CONFIRMED: set(),
    ConfirmationStatus.HOST_REJECTED: set()
}

reward_transitions: Dict[RewardStatus, Set[RewardStatus]] = {
    RewardStatus.PENDING: {
        RewardStatus.VALIDATED,
        RewardStatus.PAID,
        RewardStatus.CANCELLED
    },
    RewardStatus.VALIDATED: {
        RewardStatus.PAID,
        RewardStatus.CANCELLED
    },
    RewardStatus.PAID: set(),
    RewardStatus.CANCELLED: set()
}

referral_state_machine = StatusStateMachine(referral_transitions)
confirmation_state_machine = StatusStateMachine(confirmation_transitions)
reward_state_machine = StatusStateMachine(reward_transitions)
