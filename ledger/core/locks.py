import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from ledger.core.exceptions import ConcurrencyConflict

logger = logging.getLogger(__name__)

class BeneficiaryLockRegistry:
    """
    One exclusive lock per beneficiary id.

    Withdrawals for the same beneficiary serialize on the same lock, while
    withdrawals for different beneficiaries never wait on each other.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.Lock] = {}

    def _lock_for(self, beneficiary_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(beneficiary_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[beneficiary_id] = lock
            return lock

    @contextmanager
    def hold(self, beneficiary_id: int, timeout: float) -> Iterator[None]:
        lock = self._lock_for(beneficiary_id)
        if not lock.acquire(timeout=timeout):
            logger.warning(f"Timed out after {timeout}s waiting for the ledger lock of beneficiary ID: {beneficiary_id}")
            raise ConcurrencyConflict(f"Could not lock beneficiary {beneficiary_id} within {timeout}s")
        try:
            yield
        finally:
            lock.release()

    def is_locked(self, beneficiary_id: int) -> bool:
        return self._lock_for(beneficiary_id).locked()

beneficiary_locks = BeneficiaryLockRegistry()
