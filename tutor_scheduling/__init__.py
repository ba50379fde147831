from tutor_scheduling.messaging import ConversationGateway, InMemoryConversationDirectory
from tutor_scheduling.service import SchedulingService
from tutor_scheduling.store import InMemoryStore, SchedulingStore

__all__ = [
    "SchedulingService",
    "SchedulingStore",
    "InMemoryStore",
    "ConversationGateway",
    "InMemoryConversationDirectory",
]
