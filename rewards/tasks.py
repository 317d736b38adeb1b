from typing import Optional
from uuid import UUID

from .errors import ConflictError, NotFoundError, ValidationError
from .ledger import credit
from .logging_config import get_logger
from .models import EntrySource, Task, TaskCompletion
from .settings import Settings, settings as default_settings
from .storage import LedgerStore

logger = get_logger(__name__)


class TaskEngine:
    def __init__(self, store: LedgerStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or default_settings

    def list_tasks(self) -> list[Task]:
        return self.store.snapshot().tasks

    def complete_task(self, user_id: UUID, task_id: Optional[str]) -> TaskCompletion:
        """Credit a task's reward to the user, once.

        A repeat completion is rejected with ``ConflictError`` rather than
        treated as a no-op, and leaves the balance untouched.
        """
        if not task_id or not task_id.strip():
            raise ValidationError("taskId required")

        with self.store.transaction() as document:
            task = document.find_task(task_id)
            if not task:
                raise NotFoundError("Task not found")

            user = document.find_user(user_id)
            if not user:
                raise NotFoundError("User not found")

            if user.has_completed(task_id):
                raise ConflictError("Task already completed")

            user.tasks_completed.append(task_id)
            credit(
                document,
                user,
                EntrySource.TASK_REWARD,
                task.reward,
                idempotency_key=f"task:{user.id}:{task.id}",
                description=f"Reward for task: {task.title}",
                metadata={"task_id": task.id},
                currency=self.settings.currency,
            )

        logger.info("task_completed", user_id=str(user_id), task_id=task_id, reward=str(task.reward))
        return TaskCompletion(ok=True, balance=user.balance)
