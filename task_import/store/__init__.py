from .base import Parent, StoreError, TaskStore
from .memory import InMemoryTaskStore

__all__ = ["Parent", "StoreError", "TaskStore", "InMemoryTaskStore"]
