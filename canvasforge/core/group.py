from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
from .annotation import new_id


@dataclass(frozen=True)
class Group:
    """
    A named container of images and other groups. Groups have no z slot of
    their own; their stacking position follows from their members.
    """

    id: str = field(default_factory=lambda: new_id("group"))
    name: str = ""
    label: str = ""
    show_label: bool = False
    image_ids: Tuple[str, ...] = ()
    group_ids: Tuple[str, ...] = ()
    parent_id: Optional[str] = None
    is_expanded: bool = True
    visible: bool = True
    locked: bool = False

    def is_empty(self) -> bool:
        return not self.image_ids and not self.group_ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "label": self.label,
            "showLabel": self.show_label,
            "imageIds": list(self.image_ids),
            "groupIds": list(self.group_ids),
            "parentId": self.parent_id,
            "isExpanded": self.is_expanded,
            "visible": self.visible,
            "locked": self.locked,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Group:
        name = str(data.get("name", ""))
        return cls(
            id=str(data["id"]),
            name=name,
            label=str(data.get("label") or name),
            show_label=bool(data.get("showLabel", False)),
            image_ids=tuple(str(i) for i in data.get("imageIds") or ()),
            group_ids=tuple(str(i) for i in data.get("groupIds") or ()),
            parent_id=data.get("parentId") or None,
            is_expanded=data.get("isExpanded") is not False,
            visible=data.get("visible") is not False,
            locked=bool(data.get("locked", False)),
        )
