"""
normalz/core/idempotency.py
In-memory idempotency receipts for vote submissions.

The SQL question store keeps the same receipts in the vote_receipts table,
written in the same transaction as the vote.
"""

import threading
from typing import Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


def scoped_key(scope: str, key: str) -> Tuple[str, str]:
    """Idempotency keys are only unique within a scope (one question). Never joined into a single string."""
    return (scope, key)


class ReceiptRegistry(Generic[T]):
    """
    Maps scoped idempotency keys to the result of their first application.

    Callers that need check-then-apply atomicity must hold their own lock
    around get() and put(); the internal lock only guards the dict.
    """

    def __init__(self):
        self._receipts: Dict[Tuple[str, str], T] = {}
        self._lock = threading.Lock()

    def get(self, scope: str, key: str) -> Optional[T]:
        with self._lock:
            return self._receipts.get(scoped_key(scope, key))

    def put(self, scope: str, key: str, receipt: T) -> bool:
        """
        Store the receipt for key.

        Returns:
            True if stored, False if the key was already present (existing receipt kept)
        """
        full_key = scoped_key(scope, key)
        with self._lock:
            if full_key in self._receipts:
                return False
            self._receipts[full_key] = receipt
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._receipts)

    def clear(self) -> None:
        """Clear all receipts (testing only)."""
        with self._lock:
            self._receipts.clear()
