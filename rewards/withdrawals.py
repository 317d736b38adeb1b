from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID, uuid4

from .errors import InsufficientFundsError, NotFoundError, ValidationError
from .ledger import debit, utcnow
from .logging_config import get_logger
from .models import EntrySource, Withdrawal, WithdrawalStatus, to_money
from .settings import Settings, settings as default_settings
from .storage import LedgerStore

logger = get_logger(__name__)


def _to_decimal(value) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        return None


class WithdrawalService:
    def __init__(self, store: LedgerStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or default_settings

    def request_withdrawal(self, user_id: UUID, amount: Optional[Decimal], method: Optional[str] = None) -> Withdrawal:
        amount = _to_decimal(amount)
        if amount is None or not amount.is_finite() or amount <= 0:
            raise ValidationError("Invalid amount")
        try:
            amount = to_money(amount)
        except ValueError:
            raise ValidationError("Invalid amount") from None
        method = (method or "").strip() or self.settings.default_withdrawal_method

        with self.store.transaction() as document:
            user = document.find_user(user_id)
            if not user:
                raise NotFoundError("User not found")
            if amount > user.balance:
                raise InsufficientFundsError("Insufficient balance")

            withdrawal = Withdrawal(
                id=uuid4(),
                user_id=user.id,
                amount=amount,
                method=method,
                status=WithdrawalStatus.PENDING,
                requested_at=utcnow(),
            )
            document.withdrawals.append(withdrawal)
            debit(
                document,
                user,
                EntrySource.WITHDRAWAL,
                amount,
                idempotency_key=f"withdrawal:{withdrawal.id}",
                description=f"Withdrawal via {method}",
                metadata={"withdrawal_id": str(withdrawal.id), "method": method},
                currency=self.settings.currency,
            )

        logger.info(
            "withdrawal_requested",
            user_id=str(user_id),
            withdrawal_id=str(withdrawal.id),
            amount=str(amount),
            method=method,
        )
        return withdrawal

    def list_withdrawals(self, user_id: UUID) -> list[Withdrawal]:
        return [w for w in reversed(self.store.snapshot().withdrawals) if w.user_id == user_id]
