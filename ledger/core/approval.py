import enum
import logging

from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from ledger.core.exceptions import EarningNotFound, InvalidStateTransition
from ledger.core.transaction import run_with_retry, write_transaction
from ledger.crud import crud_earning
from ledger.models.earning import Earning, EarningStatus

logger = logging.getLogger(__name__)

class Decision(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"

_RESULTING_STATUS = {
    Decision.APPROVE: EarningStatus.APPROVED,
    Decision.REJECT: EarningStatus.REJECTED,
}

def decide(db: Session, *, earning_id: int, decision: Decision, actor: str) -> Earning:
    """
    Move a pending earning to approved or rejected.

    Only pending earnings can be decided, and only once. Amounts are never
    touched here. The earning row is locked for the length of the
    transaction; a lost race surfaces as InvalidStateTransition on retry.
    """
    decision = Decision(decision)
    if not actor:
        raise ValueError("An actor is required to decide an earning")

    def _apply() -> Earning:
        with write_transaction(db, f"{decision.value} earning {earning_id}"):
            earning = crud_earning.get_earning_for_update(db, earning_id)
            if earning is None:
                raise EarningNotFound(earning_id)
            if earning.status != EarningStatus.PENDING.value:
                raise InvalidStateTransition(earning_id, earning.status, decision.value)

            earning.status = _RESULTING_STATUS[decision].value
            earning.decided_at = func.now()
            earning.decided_by = actor
        db.refresh(earning)
        return earning

    earning = run_with_retry(db, f"{decision.value} earning {earning_id}", _apply)
    logger.info(f"Earning ID: {earning.id} {earning.status} by {actor}")
    return earning

def approve_earning(db: Session, *, earning_id: int, actor: str) -> Earning:
    return decide(db, earning_id=earning_id, decision=Decision.APPROVE, actor=actor)

def reject_earning(db: Session, *, earning_id: int, actor: str) -> Earning:
    return decide(db, earning_id=earning_id, decision=Decision.REJECT, actor=actor)
