from .connection import get_connection, init_database
from .store import ScheduleStore, StoreClosedError

__all__ = ["get_connection", "init_database", "ScheduleStore", "StoreClosedError"]
