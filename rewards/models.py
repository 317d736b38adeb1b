from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel


CENT = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    """Return ``value`` with exactly two decimal places.

    Raises ``ValueError`` when that would change the value, so an amount
    finer than the currency allows is refused instead of rounded.
    """
    try:
        quantized = value.quantize(CENT)
    except InvalidOperation:
        raise ValueError("amount is out of range") from None
    if quantized != value:
        raise ValueError("amount has more than two decimal places")
    return quantized


def _json_amount(value: Decimal) -> Union[int, float]:
    return int(value) if value == value.to_integral_value() else float(value)


# Money is Decimal in Python and a plain JSON number on the wire and on disk.
# Inputs are held to two places, which a JSON float carries exactly.
Money = Annotated[Decimal, PlainSerializer(_json_amount, when_used="json")]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class EntryType(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class EntrySource(str, Enum):
    REFERRAL_BONUS = "REFERRAL_BONUS"
    TASK_REWARD = "TASK_REWARD"
    WITHDRAWAL = "WITHDRAWAL"


class ReferralStatus(str, Enum):
    NONE = "none"
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"


class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Persisted records

class User(CamelModel):
    id: UUID
    name: str
    email: str
    referral_code: str
    referred_by: Optional[str] = None
    referrer_id: Optional[UUID] = None
    referral_status: ReferralStatus = ReferralStatus.NONE
    balance: Money = Decimal("0")
    tasks_completed: list[str] = Field(default_factory=list)
    created_at: datetime

    def has_completed(self, task_id: str) -> bool:
        return task_id in self.tasks_completed


class Task(CamelModel):
    id: str
    title: str
    desc: str = ""
    reward: Money = Field(default=Decimal("0"), ge=0)

    @field_validator("reward")
    @classmethod
    def reward_in_cents(cls, value: Decimal) -> Decimal:
        return to_money(value)


class Withdrawal(CamelModel):
    id: UUID
    user_id: UUID
    amount: Money
    method: str
    status: WithdrawalStatus = WithdrawalStatus.PENDING
    requested_at: datetime


class LedgerEntry(CamelModel):
    id: UUID
    user_id: UUID
    entry_type: EntryType
    source: EntrySource
    amount: Money
    balance_after: Money
    currency: str = "INR"
    idempotency_key: str
    description: str
    created_at: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class Session(CamelModel):
    token_hash: str
    user_id: UUID
    created_at: datetime
    expires_at: datetime


class LedgerDocument(CamelModel):
    users: list[User] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    withdrawals: list[Withdrawal] = Field(default_factory=list)
    entries: list[LedgerEntry] = Field(default_factory=list)
    sessions: list[Session] = Field(default_factory=list)

    def find_user(self, user_id: UUID) -> Optional[User]:
        return next((u for u in self.users if u.id == user_id), None)

    def find_user_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self.users if u.email == email), None)

    def find_user_by_referral_code(self, code: str) -> Optional[User]:
        return next((u for u in self.users if u.referral_code == code), None)

    def find_task(self, task_id: str) -> Optional[Task]:
        return next((t for t in self.tasks if t.id == task_id), None)

    def find_session(self, token_hash: str) -> Optional[Session]:
        return next((s for s in self.sessions if s.token_hash == token_hash), None)


# Requests

class SignupRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    ref: Optional[str] = None

    model_config = ConfigDict(json_schema_extra={
        "example": {"name": "Alice", "email": "alice@example.com", "ref": "K7PQ2M"}
    })


class LoginRequest(CamelModel):
    email: Optional[str] = None


class CompleteTaskRequest(CamelModel):
    task_id: Optional[str] = None

    model_config = ConfigDict(json_schema_extra={"example": {"taskId": "t1"}})


class WithdrawalRequest(CamelModel):
    amount: Optional[Decimal] = None
    method: Optional[str] = None

    model_config = ConfigDict(json_schema_extra={"example": {"amount": 50, "method": "UPI"}})


# Responses

class PublicUser(CamelModel):
    id: UUID
    name: str
    email: str
    referral_code: str
    balance: Money


class AdminUser(PublicUser):
    referred_by: Optional[str] = None
    referrer_id: Optional[UUID] = None
    referral_status: ReferralStatus
    tasks_completed: list[str]
    created_at: datetime


class AuthResult(CamelModel):
    token: str
    user: PublicUser


class TaskList(CamelModel):
    tasks: list[Task]


class TaskCompletion(CamelModel):
    ok: bool = True
    balance: Money


class WithdrawalResult(CamelModel):
    ok: bool = True
    withdrawal: Withdrawal


class WithdrawalList(CamelModel):
    withdrawals: list[Withdrawal]


class DashboardUser(PublicUser):
    tasks_completed: list[str]
    referral_status: ReferralStatus


class DashboardStats(CamelModel):
    referrals: int


class Dashboard(CamelModel):
    user: DashboardUser
    stats: DashboardStats


class LedgerHistoryResponse(CamelModel):
    user_id: UUID
    entries: list[LedgerEntry]
    total_count: int
    current_balance: Money
    currency: str = "INR"


class AdminOverview(CamelModel):
    users: list[AdminUser]
    withdrawals: list[Withdrawal]


class UnresolvedReferrals(CamelModel):
    users: list[AdminUser]


class OkResponse(CamelModel):
    ok: bool = True
