"""
Referral Rewards Service

This module provides:
- Signup and login with hashed, expiring bearer sessions
- Referral codes and a one-time referral bonus for the referrer
- Task completion rewards, rejected on repeat
- Balance-debiting withdrawal requests
- An append-only ledger entry for every balance change
- A single ledger document guarded by one lock per store
"""

from .errors import (
    ConflictError,
    ForbiddenError,
    InsufficientFundsError,
    InternalError,
    NotFoundError,
    RewardsError,
    UnauthenticatedError,
    ValidationError,
)
from .models import (
    EntrySource,
    EntryType,
    LedgerDocument,
    LedgerEntry,
    ReferralStatus,
    Task,
    User,
    Withdrawal,
    WithdrawalStatus,
)
from .service import RewardsService
from .storage import InMemoryStorage, JsonFileStorage, LedgerStore

__all__ = [
    "ConflictError",
    "ForbiddenError",
    "InsufficientFundsError",
    "InternalError",
    "NotFoundError",
    "RewardsError",
    "UnauthenticatedError",
    "ValidationError",
    "EntrySource",
    "EntryType",
    "LedgerDocument",
    "LedgerEntry",
    "ReferralStatus",
    "Task",
    "User",
    "Withdrawal",
    "WithdrawalStatus",
    "RewardsService",
    "InMemoryStorage",
    "JsonFileStorage",
    "LedgerStore",
]
