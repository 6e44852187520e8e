from .beneficiary import (
    BeneficiaryBase,
    BeneficiaryCreate,
    BeneficiaryUpdate,
    Beneficiary,
)
from .earning import (
    EarningCreate,
    Earning,
)
from .withdrawal import (
    WithdrawalCreate,
    WithdrawalAllocation,
    Withdrawal,
    Balance,
    BeneficiarySummary,
    LedgerStatistics,
)
