from typing import Optional

from .dashboard import DashboardAggregator
from .identity import IdentityService
from .settings import Settings, settings as default_settings
from .storage import InMemoryStorage, JsonFileStorage, LedgerStore
from .tasks import TaskEngine
from .withdrawals import WithdrawalService


def build_store(settings: Settings) -> LedgerStore:
    if settings.storage_backend == "memory":
        return LedgerStore(InMemoryStorage())
    return LedgerStore(JsonFileStorage(settings.data_path))


class RewardsService:
    """All components wired over one shared ``LedgerStore``."""

    def __init__(self, store: Optional[LedgerStore] = None, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.store = store if store is not None else LedgerStore()
        self.identity = IdentityService(self.store, self.settings)
        self.tasks = TaskEngine(self.store, self.settings)
        self.withdrawals = WithdrawalService(self.store, self.settings)
        self.dashboard = DashboardAggregator(self.store, self.settings)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RewardsService":
        settings = settings or default_settings
        return cls(build_store(settings), settings)
