"""Read-only views over the ledger document. Nothing here writes to the store."""

import hmac
from typing import Optional
from uuid import UUID

from .errors import ForbiddenError, NotFoundError
from .models import (
    AdminOverview,
    AdminUser,
    Dashboard,
    DashboardStats,
    DashboardUser,
    LedgerDocument,
    LedgerHistoryResponse,
    ReferralStatus,
    UnresolvedReferrals,
    User,
)
from .settings import Settings, settings as default_settings
from .storage import LedgerStore


def count_referrals(document: LedgerDocument, user: User) -> int:
    return sum(1 for u in document.users if u.referred_by == user.referral_code)


class DashboardAggregator:
    def __init__(self, store: LedgerStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or default_settings

    def get_dashboard(self, user_id: UUID) -> Dashboard:
        document = self.store.snapshot()
        user = self._require_user(document, user_id)
        return Dashboard(
            user=DashboardUser.model_validate(user),
            stats=DashboardStats(referrals=count_referrals(document, user)),
        )

    def get_ledger_history(self, user_id: UUID, limit: int = 50, offset: int = 0) -> LedgerHistoryResponse:
        document = self.store.snapshot()
        user = self._require_user(document, user_id)

        # Entries are appended in order, so reversing gives newest first
        entries = [e for e in reversed(document.entries) if e.user_id == user_id]
        limit = max(limit, 0)
        offset = max(offset, 0)

        return LedgerHistoryResponse(
            user_id=user_id,
            entries=entries[offset:offset + limit],
            total_count=len(entries),
            current_balance=user.balance,
            currency=self.settings.currency,
        )

    def authorize_admin(self, admin_key: Optional[str]) -> None:
        configured = self.settings.admin_api_key
        if configured is None or not configured.get_secret_value():
            raise ForbiddenError("Admin access is not configured")
        if not admin_key or not hmac.compare_digest(admin_key.encode("utf-8"), configured.get_secret_value().encode("utf-8")):
            raise ForbiddenError("Admin key required")

    def admin_overview(self) -> AdminOverview:
        document = self.store.snapshot()
        return AdminOverview(
            users=[AdminUser.model_validate(u) for u in document.users],
            withdrawals=document.withdrawals,
        )

    def unresolved_referrals(self) -> UnresolvedReferrals:
        document = self.store.snapshot()
        return UnresolvedReferrals(users=[
            AdminUser.model_validate(u)
            for u in document.users
            if u.referral_status == ReferralStatus.UNRESOLVED
        ])

    def _require_user(self, document: LedgerDocument, user_id: UUID) -> User:
        user = document.find_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user
