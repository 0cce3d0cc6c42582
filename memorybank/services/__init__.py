from memorybank.services.cache import CacheLayer
from memorybank.services.component_store import ComponentStore
from memorybank.services.history_policy import HistoryPolicy
from memorybank.services.notifications import DeliveryReport, NotificationBus, Subscription

__all__ = [
    "CacheLayer",
    "ComponentStore",
    "DeliveryReport",
    "HistoryPolicy",
    "NotificationBus",
    "Subscription",
]
