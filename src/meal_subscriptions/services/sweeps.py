"""Batch sweeps that apply time-driven status transitions."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

from meal_subscriptions.domain.subscriptions import (
    SubscriptionRecord,
    SubscriptionStatus,
)
from meal_subscriptions.services.state_machine import (
    NEW_JOINER_REQUIRED_CYCLES,
    SYSTEM_ACTOR,
    SubscriptionRepository,
    SubscriptionStateService,
)

_logger = logging.getLogger(__name__)

ACTIVATION_REASON = "Automatic activation after 2 cycles"
EXIT_REASON = "Subscription period ended"


def business_clock(timezone_name: str) -> Callable[[], date]:
    """Return a callable giving today's date in ``timezone_name``."""
    tz = ZoneInfo(timezone_name)

    def today() -> date:
        return datetime.now(tz=tz).date()

    return today


@dataclass(frozen=True)
class SweepReport:
    """Outcome of one sweep run."""

    selected: int
    succeeded: int
    failed: int


@dataclass
class SubscriptionSweepService:
    """Promotes and retires subscriptions in bulk.

    Every row goes through the state machine in its own unit of work, so a
    failing row never rolls back or aborts the others.
    """

    state_service: SubscriptionStateService
    repository: SubscriptionRepository
    today: Callable[[], date]

    def check_and_activate_new_joiners(self) -> int:
        """Activate New_Joiner subscriptions with enough paid cycles."""
        return self.run_activation().succeeded

    def check_and_cancel_exiting_subscriptions(self, today: date | None = None) -> int:
        """Cancel Exiting subscriptions whose paid period is over."""
        return self.run_exit_cancellation(today).succeeded

    def run_activation(self) -> SweepReport:
        """Run the New_Joiner activation sweep and report counts."""
        candidates = self.repository.list_new_joiners_ready(NEW_JOINER_REQUIRED_CYCLES)
        return self._sweep(
            "activate-new-joiners",
            candidates,
            SubscriptionStatus.ACTIVE,
            ACTIVATION_REASON,
        )

    def run_exit_cancellation(self, today: date | None = None) -> SweepReport:
        """Run the Exiting cancellation sweep and report counts."""
        cutoff = today or self.today()
        candidates = self.repository.list_exiting_ended(cutoff)
        return self._sweep(
            "cancel-exiting",
            candidates,
            SubscriptionStatus.CANCELLED,
            EXIT_REASON,
        )

    def _sweep(
        self,
        name: str,
        candidates: list[SubscriptionRecord],
        target: SubscriptionStatus,
        reason: str,
    ) -> SweepReport:
        succeeded = 0
        failed = 0
        for subscription in candidates:
            try:
                result = self.state_service.execute_transition(
                    subscription.id, target, reason, SYSTEM_ACTOR
                )
            except Exception:
                _logger.exception(
                    "Sweep %s crashed on subscription %s", name, subscription.id
                )
                failed += 1
                continue
            if result.success:
                succeeded += 1
            else:
                failed += 1
                _logger.warning(
                    "Sweep %s skipped subscription %s: %s",
                    name,
                    subscription.id,
                    result.error.message if result.error else "unknown error",
                )
        _logger.info(
            "Sweep %s: selected=%s succeeded=%s failed=%s",
            name,
            len(candidates),
            succeeded,
            failed,
        )
        return SweepReport(
            selected=len(candidates), succeeded=succeeded, failed=failed
        )
