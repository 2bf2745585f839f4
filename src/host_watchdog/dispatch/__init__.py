"""Alert dispatch to notification channels."""

from host_watchdog.dispatch.dispatcher import AlertDispatcher
from host_watchdog.dispatch.results import DeliveryResult, DispatchResult

__all__ = [
    "AlertDispatcher",
    "DeliveryResult",
    "DispatchResult",
]
