"""
Unit Tests for the Withdrawal Service

Tests cover:
1. Successful withdrawal and debit
2. Amount validation and two-decimal precision
3. Insufficient balance
4. Default method
5. Serialized concurrent withdrawals
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from rewards.errors import InsufficientFundsError, ValidationError
from rewards.models import EntrySource, EntryType, WithdrawalStatus


def funded_user(service, email="b@x.com"):
    """Sign up a user and complete every task, leaving a balance of 23."""
    user = service.identity.signup("Bob", email).user
    for task in service.tasks.list_tasks():
        service.tasks.complete_task(user.id, task.id)
    return user


class TestRequestWithdrawal:
    """Tests for requesting a withdrawal."""

    def test_withdrawal_debits_balance(self, service):
        """Test that 0 < a <= b leaves b - a and one pending record of a."""
        user = funded_user(service)

        withdrawal = service.withdrawals.request_withdrawal(user.id, Decimal("3"), "PayPal")

        assert withdrawal.amount == Decimal("3")
        assert withdrawal.status == WithdrawalStatus.PENDING
        assert withdrawal.method == "PayPal"
        assert withdrawal.user_id == user.id

        document = service.store.snapshot()
        assert document.find_user(user.id).balance == Decimal("20")
        assert len(document.withdrawals) == 1
        assert document.withdrawals[0].id == withdrawal.id

    def test_withdraw_entire_balance(self, service):
        """Test that the full balance can be withdrawn, reaching exactly zero."""
        user = funded_user(service)

        service.withdrawals.request_withdrawal(user.id, Decimal("23"))

        assert service.store.snapshot().find_user(user.id).balance == Decimal("0")

    def test_withdrawal_recorded_as_debit(self, service):
        """Test that the debit appears in the ledger with a negative amount."""
        user = funded_user(service)

        withdrawal = service.withdrawals.request_withdrawal(user.id, Decimal("4"))

        entry = service.store.snapshot().entries[-1]
        assert entry.entry_type == EntryType.DEBIT
        assert entry.source == EntrySource.WITHDRAWAL
        assert entry.amount == Decimal("-4")
        assert entry.balance_after == Decimal("19")
        assert entry.idempotency_key == f"withdrawal:{withdrawal.id}"

    def test_default_method(self, service):
        """Test that an omitted method falls back to the configured default."""
        user = funded_user(service)

        withdrawal = service.withdrawals.request_withdrawal(user.id, Decimal("1"))
        blank = service.withdrawals.request_withdrawal(user.id, Decimal("1"), "  ")

        assert withdrawal.method == "UPI"
        assert blank.method == "UPI"

    @pytest.mark.parametrize("amount", [None, 0, Decimal("0"), Decimal("-5"), -1, "abc", Decimal("NaN")])
    def test_invalid_amount(self, service, amount):
        """Test that absent, zero, negative and non-numeric amounts are rejected."""
        user = funded_user(service)
        before = service.store.snapshot().model_dump()

        with pytest.raises(ValidationError, match="Invalid amount"):
            service.withdrawals.request_withdrawal(user.id, amount)

        assert service.store.snapshot().model_dump() == before

    @pytest.mark.parametrize("amount", [Decimal("0.00000000000000001"), Decimal("1.005"), "0.001"])
    def test_amount_finer_than_cents_rejected(self, service, amount):
        """Test that an amount with more than two decimal places is refused, not rounded."""
        user = funded_user(service)
        before = service.store.snapshot().model_dump()

        with pytest.raises(ValidationError, match="Invalid amount"):
            service.withdrawals.request_withdrawal(user.id, amount)

        assert service.store.snapshot().model_dump() == before

    def test_cent_amount_accepted(self, service):
        """Test that the smallest unit of the currency can be withdrawn."""
        user = funded_user(service)

        withdrawal = service.withdrawals.request_withdrawal(user.id, Decimal("0.01"))

        assert withdrawal.amount == Decimal("0.01")
        assert service.store.snapshot().find_user(user.id).balance == Decimal("22.99")

    def test_debit_carries_configured_currency(self, make_service):
        """Test that the withdrawal debit is stamped with the settings currency."""
        service = make_service(currency="GBP")
        user = funded_user(service)

        service.withdrawals.request_withdrawal(user.id, Decimal("4"))

        assert service.store.snapshot().entries[-1].currency == "GBP"
        assert service.dashboard.get_ledger_history(user.id).currency == "GBP"

    def test_insufficient_balance(self, service):
        """Test that a > b fails and leaves balance and withdrawals untouched."""
        user = funded_user(service)

        with pytest.raises(InsufficientFundsError):
            service.withdrawals.request_withdrawal(user.id, Decimal("23.01"))

        document = service.store.snapshot()
        assert document.find_user(user.id).balance == Decimal("23")
        assert document.withdrawals == []

    def test_no_cap_on_count(self, service):
        """Test that repeated small withdrawals are all accepted."""
        user = funded_user(service)

        for _ in range(5):
            service.withdrawals.request_withdrawal(user.id, Decimal("2"))

        assert len(service.withdrawals.list_withdrawals(user.id)) == 5
        assert service.store.snapshot().find_user(user.id).balance == Decimal("13")

    def test_list_withdrawals_only_own(self, service):
        """Test that listing returns only the caller's withdrawals."""
        bob = funded_user(service)
        carol = funded_user(service, email="c@x.com")

        service.withdrawals.request_withdrawal(bob.id, Decimal("1"))
        service.withdrawals.request_withdrawal(carol.id, Decimal("2"))

        withdrawals = service.withdrawals.list_withdrawals(bob.id)
        assert [w.amount for w in withdrawals] == [Decimal("1")]


class TestConcurrentWithdrawals:
    """Tests that concurrent mutations are serialized by the store."""

    def test_concurrent_withdrawals_never_overdraw(self, service):
        """Test that racing withdrawals neither lose updates nor overdraw."""
        user = funded_user(service)

        def attempt(_):
            try:
                service.withdrawals.request_withdrawal(user.id, Decimal("1"))
                return True
            except InsufficientFundsError:
                return False

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(attempt, range(30)))

        document = service.store.snapshot()
        assert results.count(True) == 23
        assert len(document.withdrawals) == 23
        assert document.find_user(user.id).balance == Decimal("0")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
