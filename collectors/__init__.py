from collectors.cache import CacheBuffer, Mode
from collectors.cursor import Cycle, CursorStore
from collectors.detik import DetikCollector, Reports, create_source
from collectors.poller import Poller

__all__ = [
    "CacheBuffer",
    "Mode",
    "Cycle",
    "CursorStore",
    "DetikCollector",
    "Reports",
    "create_source",
    "Poller",
]
