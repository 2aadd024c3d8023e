from typing import Optional

from storage.task_store import TaskStore

# Global instances initialized at startup
task_store: Optional[TaskStore] = None
