# Import all models so that Base.metadata knows every table before create_all.
from ledger.db.base_class import Base  # noqa: F401
from ledger.models.beneficiary import BeneficiaryProfile  # noqa: F401
from ledger.models.earning import Earning  # noqa: F401
from ledger.models.withdrawal import Withdrawal, WithdrawalAllocation  # noqa: F401
