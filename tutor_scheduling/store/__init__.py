from tutor_scheduling.store.base import DuplicateSessionError, SchedulingStore, StoreError
from tutor_scheduling.store.memory import InMemoryStore

__all__ = ["SchedulingStore", "InMemoryStore", "StoreError", "DuplicateSessionError"]
