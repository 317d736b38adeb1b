from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from .models import EntrySource, EntryType, LedgerDocument, LedgerEntry, User


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def post_entry(
    document: LedgerDocument,
    user: User,
    entry_type: EntryType,
    source: EntrySource,
    amount: Decimal,
    idempotency_key: str,
    description: str,
    metadata: Optional[dict] = None,
    currency: str = "INR",
) -> LedgerEntry:
    """Apply ``amount`` to the user's balance and append the matching entry.

    ``amount`` is always positive; debits are stored negated. The caller has
    already checked that a debit is covered by the balance.
    """
    signed = amount if entry_type == EntryType.CREDIT else -amount
    user.balance = user.balance + signed

    entry = LedgerEntry(
        id=uuid4(),
        user_id=user.id,
        entry_type=entry_type,
        source=source,
        amount=signed,
        balance_after=user.balance,
        currency=currency,
        idempotency_key=idempotency_key,
        description=description,
        created_at=utcnow(),
        metadata=metadata or {},
    )
    document.entries.append(entry)
    return entry


def credit(document: LedgerDocument, user: User, source: EntrySource, amount: Decimal,
           idempotency_key: str, description: str, metadata: Optional[dict] = None,
           currency: str = "INR") -> LedgerEntry:
    return post_entry(document, user, EntryType.CREDIT, source, amount, idempotency_key, description, metadata, currency)


def debit(document: LedgerDocument, user: User, source: EntrySource, amount: Decimal,
          idempotency_key: str, description: str, metadata: Optional[dict] = None,
          currency: str = "INR") -> LedgerEntry:
    return post_entry(document, user, EntryType.DEBIT, source, amount, idempotency_key, description, metadata, currency)
