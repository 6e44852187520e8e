import logging
from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger.core.exceptions import BeneficiaryNotFound, DuplicateSourceSale, InvalidEarningInput
from ledger.core.transaction import read_guard, write_transaction
from ledger.crud import crud_beneficiary, crud_earning
from ledger.models.beneficiary import BeneficiaryRole
from ledger.models.earning import Earning, EarningStatus, EarningType

logger = logging.getLogger(__name__)

RATE_PRECISION = Decimal("0.01")

def normalize_rate(rate: Union[Decimal, int, float, str]) -> Decimal:
    try:
        # str() first so floats such as 12.5 don't drag binary noise along
        value = Decimal(str(rate))
    except (InvalidOperation, ValueError) as e:
        raise InvalidEarningInput(f"Rate {rate!r} is not a number") from e
    if not value.is_finite() or value < 0 or value > 100:
        raise InvalidEarningInput(f"Rate {rate} must be between 0 and 100")
    if value != value.quantize(RATE_PRECISION):
        raise InvalidEarningInput(f"Rate {rate} has more than two decimal places")
    return value

def compute_commission(gross_amount: int, rate: Decimal) -> int:
    """gross_amount * rate / 100, always rounded down to the minor unit."""
    amount = (Decimal(gross_amount) * rate / Decimal(100)).to_integral_value(rounding=ROUND_FLOOR)
    return int(amount)

def record_earning(
    db: Session,
    *,
    beneficiary_id: int,
    source_sale_id: str,
    gross_amount: int,
    rate: Union[Decimal, int, float, str],
    earning_type: EarningType = EarningType.AFFILIATE,
    course_id: Optional[str] = None,
) -> Earning:
    """
    Create the single pending earning for one sale and one beneficiary.

    The rate is stored as given and never re-read from the beneficiary
    profile. Recording the same sale for the same beneficiary twice raises
    DuplicateSourceSale and leaves the ledger untouched.
    """
    if isinstance(gross_amount, bool) or not isinstance(gross_amount, int) or gross_amount < 0:
        raise InvalidEarningInput(f"Gross amount {gross_amount!r} must be a non-negative integer")
    if not source_sale_id:
        raise InvalidEarningInput("source_sale_id is required")
    rate_value = normalize_rate(rate)
    computed_amount = compute_commission(gross_amount, rate_value)
    if computed_amount <= 0:
        raise InvalidEarningInput(
            f"Sale {source_sale_id} yields no commission (gross {gross_amount}, rate {rate_value})"
        )

    with read_guard(db, f"record earning for sale {source_sale_id}"):
        beneficiary = crud_beneficiary.get_beneficiary(db, beneficiary_id)
        existing = crud_earning.get_earning_by_source_sale(db, source_sale_id=source_sale_id, beneficiary_id=beneficiary_id)
    if beneficiary is None:
        raise BeneficiaryNotFound(beneficiary_id)

    if existing:
        logger.info(f"Earning for sale {source_sale_id} and beneficiary ID: {beneficiary_id} already exists (earning ID: {existing.id})")
        raise DuplicateSourceSale(source_sale_id, beneficiary_id, existing.id)

    earning = Earning(
        beneficiary_id=beneficiary_id,
        source_sale_id=source_sale_id,
        earning_type=EarningType(earning_type).value,
        course_id=course_id,
        gross_amount=gross_amount,
        rate=rate_value,
        computed_amount=computed_amount,
        amount_withdrawn=0,
        status=EarningStatus.PENDING.value,
    )
    with write_transaction(db, f"record earning for sale {source_sale_id}"):
        try:
            crud_earning.add_earning(db, db_obj=earning)
        except IntegrityError as e:
            # Another request recorded the same sale between our check and insert.
            raise DuplicateSourceSale(source_sale_id, beneficiary_id) from e
    db.refresh(earning)

    logger.info(
        f"Recorded {earning.earning_type} earning ID: {earning.id} for beneficiary ID: {beneficiary_id}, "
        f"sale {source_sale_id}, amount: {computed_amount} ({rate_value}% of {gross_amount})"
    )
    return earning

def record_sale_commission(
    db: Session,
    *,
    beneficiary_id: int,
    source_sale_id: str,
    gross_amount: int,
    earning_type: EarningType = EarningType.AFFILIATE,
    course_id: Optional[str] = None,
) -> Optional[Earning]:
    """
    Record the commission a completed sale earns a beneficiary, using the
    commission rate on their profile right now.

    Returns None, without writing anything, when the profile is inactive,
    has no commission rate, or the sale carries no amount. Mentor course
    commissions are only recorded for mentors.
    """
    logger.info(f"Starting commission recording for sale {source_sale_id}, beneficiary ID: {beneficiary_id}")

    with read_guard(db, f"commission for sale {source_sale_id}"):
        beneficiary = crud_beneficiary.get_beneficiary(db, beneficiary_id)
    if beneficiary is None:
        raise BeneficiaryNotFound(beneficiary_id)

    if not beneficiary.is_active:
        logger.info(f"Beneficiary ID: {beneficiary.id} is inactive. No commission recorded for sale {source_sale_id}.")
        return None

    rate = Decimal(beneficiary.commission_rate or 0)
    if rate <= 0:
        logger.info(f"Beneficiary ID: {beneficiary.id} has no commission rate. No commission recorded for sale {source_sale_id}.")
        return None

    if gross_amount <= 0:
        logger.info(f"Sale {source_sale_id} has no commissionable amount. No commission recorded.")
        return None

    if EarningType(earning_type) is EarningType.MENTOR_COURSE and beneficiary.role != BeneficiaryRole.MENTOR:
        logger.info(f"Beneficiary ID: {beneficiary.id} is not a mentor. No course commission recorded for sale {source_sale_id}.")
        return None

    if compute_commission(gross_amount, rate) <= 0:
        logger.info(f"Commission for sale {source_sale_id} rounds down to zero. No commission recorded.")
        return None

    return record_earning(
        db,
        beneficiary_id=beneficiary.id,
        source_sale_id=source_sale_id,
        gross_amount=gross_amount,
        rate=rate,
        earning_type=earning_type,
        course_id=course_id,
    )
