from .history import HistoryState, HistoryStore

__all__ = ["HistoryState", "HistoryStore"]
