from .editor import DocEditor
from .selection import Selection

__all__ = ["DocEditor", "Selection"]
