from .scroll_sync_coordinator import ScrollSyncCoordinator, ScrollSyncResult

__all__ = ["ScrollSyncCoordinator", "ScrollSyncResult"]
