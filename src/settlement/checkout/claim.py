"""Settlement claims: one writer per payment session.

A claim is keyed by the settlement key (the gateway session id) and exists
from the moment the session is opened. Confirming a payment first moves the
claim from Open to Claimed inside its own unit of work. Protean checks the
aggregate version on save, so when several confirmations race only one save
lands; everyone else gets ``ExpectedVersionError`` or sees the claim already
taken, and must wait for the winner's order instead of creating another.

A claim whose holder died before producing an order becomes claimable again
once its lease runs out.
"""

import threading
from datetime import UTC, datetime, timedelta
from enum import Enum

import structlog
from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from settlement.config import SettlementSettings, get_settings
from settlement.domain import settlement

logger = structlog.get_logger(__name__)

# Serializes the fallback insert of a claim that was never opened
_opening_lock = threading.Lock()


class ClaimStatus(Enum):
    OPEN = "Open"
    CLAIMED = "Claimed"
    SETTLED = "Settled"


def _aware(moment):
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


@settlement.aggregate
class SettlementClaim:
    settlement_key = String(identifier=True, max_length=255)
    status = String(choices=ClaimStatus, default=ClaimStatus.OPEN.value)
    claimed_at = DateTime()
    order_id = Identifier()

    def is_claimable(self, now, lease: timedelta) -> bool:
        if self.status == ClaimStatus.OPEN.value:
            return True
        if self.status == ClaimStatus.CLAIMED.value:
            return self.claimed_at is None or _aware(self.claimed_at) + lease <= now
        return False

    def take(self, now) -> None:
        self.status = ClaimStatus.CLAIMED.value
        self.claimed_at = now

    def give_back(self) -> None:
        self.status = ClaimStatus.OPEN.value
        self.claimed_at = None

    def settle(self, order_id) -> None:
        self.status = ClaimStatus.SETTLED.value
        self.order_id = order_id


class SettlementClaims:
    def __init__(self, settings: SettlementSettings | None = None, clock=None):
        self.settings = settings or get_settings()
        self.clock = clock or (lambda: datetime.now(UTC))

    @property
    def _repository(self):
        return current_domain.repository_for(SettlementClaim)

    def open(self, settlement_key) -> None:
        """Register a claim for a freshly opened payment session."""
        self._repository.add(SettlementClaim(settlement_key=settlement_key))

    def _ensure(self, settlement_key) -> None:
        with _opening_lock:
            try:
                self._repository.get(settlement_key)
            except ObjectNotFoundError:
                logger.warning("settlement_claim_missing", settlement_key=settlement_key)
                self.open(settlement_key)

    def acquire(self, settlement_key) -> bool:
        """Take the claim. ``False`` means another request holds or settled it."""
        self._ensure(settlement_key)
        lease = timedelta(seconds=self.settings.settlement_claim_lease_seconds)

        try:
            with UnitOfWork():
                claim = self._repository.get(settlement_key)
                if not claim.is_claimable(self.clock(), lease):
                    logger.info("settlement_claim_held", settlement_key=settlement_key, status=claim.status)
                    return False
                claim.take(self.clock())
                self._repository.add(claim)
        except ExpectedVersionError:
            logger.info("settlement_claim_lost", settlement_key=settlement_key)
            return False

        logger.info("settlement_claim_acquired", settlement_key=settlement_key)
        return True

    def release(self, settlement_key) -> None:
        """Give the claim back after a failed order placement."""
        with UnitOfWork():
            claim = self._repository.get(settlement_key)
            claim.give_back()
            self._repository.add(claim)
        logger.info("settlement_claim_released", settlement_key=settlement_key)

    def settle(self, settlement_key, order_id) -> None:
        with UnitOfWork():
            claim = self._repository.get(settlement_key)
            claim.settle(order_id)
            self._repository.add(claim)
