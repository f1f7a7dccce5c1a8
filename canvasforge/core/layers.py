"""
Layer order and the group hierarchy.

The stacking order of images is the order of `Document.images`, index 0
at the bottom. Groups have no z slot of their own: a group sits where its
topmost descendant image sits. Reordering always happens among siblings,
i.e. the direct children of one group or the top-level items, and is
written back into `Document.images` by permuting only the positions that
the reordered scope occupies.
"""

from __future__ import annotations
import dataclasses
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple
from .doc import Document
from .group import Group
from .image import CanvasImage


logger = logging.getLogger(__name__)

MOVES = ("up", "down", "top", "bottom", "index")


class CycleError(ValueError):
    """
    Raised when a change to group parentage would make a group its own
    ancestor. The groups are left unchanged.
    """

    pass


@dataclass(frozen=True)
class LayerItem:
    """One row of the flattened layers list."""

    id: str
    kind: str  # "image" or "group"
    depth: int
    parent_id: Optional[str] = None


def _group_map(groups: Iterable[Group]) -> Dict[str, Group]:
    return {g.id: g for g in groups}


def ancestors(group_id: str, groups: Iterable[Group]) -> List[str]:
    """
    Ids of `group_id` and all of its ancestors, nearest first. Stops at a
    repeated id so that corrupted data cannot loop forever.
    """
    by_id = _group_map(groups)
    chain: List[str] = []
    current: Optional[str] = group_id
    while current is not None and current not in chain:
        chain.append(current)
        group = by_id.get(current)
        current = group.parent_id if group else None
    return chain


def descendant_image_ids(
    group_id: str, groups: Iterable[Group]
) -> List[str]:
    by_id = _group_map(groups)
    result: List[str] = []
    seen: Set[str] = set()
    stack = [group_id]
    while stack:
        gid = stack.pop()
        if gid in seen or gid not in by_id:
            continue
        seen.add(gid)
        group = by_id[gid]
        result.extend(group.image_ids)
        stack.extend(group.group_ids)
    return result


def validate_groups(groups: Sequence[Group]):
    """
    Checks the hierarchy invariants: every group and image has at most one
    direct parent, `parent_id` agrees with the parent's child list, and
    there are no cycles. Raises CycleError or ValueError.
    """
    by_id = _group_map(groups)
    image_parent: Dict[str, str] = {}
    group_parent: Dict[str, str] = {}
    for group in groups:
        for image_id in group.image_ids:
            if image_id in image_parent:
                raise ValueError(f"Image {image_id} is in two groups")
            image_parent[image_id] = group.id
        for child_id in group.group_ids:
            if child_id in group_parent:
                raise ValueError(f"Group {child_id} has two parents")
            group_parent[child_id] = group.id

    for group in groups:
        if group_parent.get(group.id) != group.parent_id:
            raise ValueError(
                f"Group {group.id} has parent_id {group.parent_id} but is "
                f"listed by {group_parent.get(group.id)}"
            )
        seen: Set[str] = set()
        current: Optional[str] = group.id
        while current is not None:
            if current in seen:
                raise CycleError(f"Group {group.id} is its own ancestor")
            seen.add(current)
            parent = by_id.get(current)
            current = parent.parent_id if parent else None


def sanitize_groups(
    groups: Iterable[Group], image_ids: Iterable[str]
) -> Tuple[Group, ...]:
    """
    Repairs a group list against the set of existing images: drops
    references to missing images and groups, keeps only the first parent
    of anything listed twice, cuts links that would close a cycle, derives
    `parent_id` from the child lists and finally removes groups that are
    left empty (repeatedly, since removing one can empty its parent).
    """
    existing_images = set(image_ids)
    groups = list(groups)

    while True:
        known = {g.id for g in groups}
        claimed_images: Set[str] = set()
        claimed_groups: Set[str] = set()
        parent_of: Dict[str, str] = {}
        cleaned: List[Group] = []
        for group in groups:
            img_ids = []
            for image_id in group.image_ids:
                if image_id in existing_images and (
                    image_id not in claimed_images
                ):
                    claimed_images.add(image_id)
                    img_ids.append(image_id)
            cleaned.append(
                dataclasses.replace(group, image_ids=tuple(img_ids))
            )

        # Child links are accepted one at a time, rejecting any that would
        # close a cycle with the links accepted so far.
        child_lists: Dict[str, List[str]] = {g.id: [] for g in cleaned}
        for group in cleaned:
            for child_id in group.group_ids:
                if child_id not in known or child_id in claimed_groups:
                    continue
                chain, cur = set(), group.id
                while cur is not None and cur not in chain:
                    chain.add(cur)
                    cur = parent_of.get(cur)
                if child_id in chain:
                    logger.warning(
                        f"Dropping group link {group.id} -> {child_id}: "
                        f"it would create a cycle."
                    )
                    continue
                claimed_groups.add(child_id)
                parent_of[child_id] = group.id
                child_lists[group.id].append(child_id)

        result = [
            dataclasses.replace(
                g,
                group_ids=tuple(child_lists[g.id]),
                parent_id=parent_of.get(g.id),
            )
            for g in cleaned
        ]
        non_empty = [g for g in result if not g.is_empty()]
        if len(non_empty) == len(result):
            return tuple(result)
        dropped = len(result) - len(non_empty)
        logger.debug(f"Dropping {dropped} empty group(s)")
        groups = non_empty


def _z_index(images: Sequence[CanvasImage]) -> Dict[str, int]:
    return {img.id: i for i, img in enumerate(images)}


def _scope(
    doc: Document, parent_id: Optional[str]
) -> List[Tuple[str, str]]:
    """
    The siblings under `parent_id` (None for top level) as (kind, id)
    pairs, ordered bottom to top by effective z.
    """
    z = _z_index(doc.images)
    if parent_id is None:
        grouped_images = {i for g in doc.groups for i in g.image_ids}
        child_groups = {c for g in doc.groups for c in g.group_ids}
        items = [
            ("image", img.id)
            for img in doc.images
            if img.id not in grouped_images
        ]
        items += [
            ("group", g.id) for g in doc.groups if g.id not in child_groups
        ]
    else:
        parent = doc.get_group(parent_id)
        if parent is None:
            raise KeyError(f"No group with id {parent_id}")
        items = [("image", i) for i in parent.image_ids if i in z]
        items += [("group", g) for g in parent.group_ids]

    def effective_z(item: Tuple[str, str]) -> int:
        kind, item_id = item
        if kind == "image":
            return z[item_id]
        members = [
            z[i] for i in descendant_image_ids(item_id, doc.groups) if i in z
        ]
        return max(members, default=-1)

    return sorted(items, key=effective_z)


def top_level_ids(doc: Document) -> List[str]:
    """Ids of images and groups that have no parent, bottom to top."""
    return [item_id for _, item_id in _scope(doc, None)]


def flatten(doc: Document) -> List[LayerItem]:
    """
    The layers list, topmost item first. Children of expanded groups
    follow their group, one level deeper; collapsed groups hide them.
    """
    result: List[LayerItem] = []
    visited: Set[str] = set()

    def walk(parent_id: Optional[str], depth: int):
        for kind, item_id in reversed(_scope(doc, parent_id)):
            result.append(LayerItem(item_id, kind, depth, parent_id))
            if kind != "group" or item_id in visited:
                continue
            visited.add(item_id)
            group = doc.get_group(item_id)
            if group is not None and group.is_expanded:
                walk(item_id, depth + 1)

    walk(None, 0)
    return result


def render_order(doc: Document) -> List[CanvasImage]:
    """Visible images in paint order, bottom first."""
    hidden: Set[str] = set()
    for group in doc.groups:
        if not group.visible:
            hidden.update(descendant_image_ids(group.id, doc.groups))
    return [
        img for img in doc.images if img.visible and img.id not in hidden
    ]


def _item_images(
    doc: Document, kind: str, item_id: str
) -> List[str]:
    if kind == "image":
        return [item_id]
    return descendant_image_ids(item_id, doc.groups)


def reorder(
    doc: Document,
    item_id: str,
    move: str,
    to_index: Optional[int] = None,
) -> Document:
    """
    Moves an image or group among its siblings.

    `move` is one of "up" (one step toward the top), "down", "top",
    "bottom" or "index", in which case `to_index` is the target position
    in the sibling list counted from the bottom. Items outside the sibling
    scope keep their relative order. Returns `doc` unchanged if the item
    is already in place.
    """
    if move not in MOVES:
        raise ValueError(f"Unknown layer move: {move!r}")
    parent = doc.parent_group_of(item_id)
    parent_id = parent.id if parent else None
    siblings = _scope(doc, parent_id)
    position = next(
        (i for i, (_, sid) in enumerate(siblings) if sid == item_id), None
    )
    if position is None:
        raise KeyError(f"No image or group with id {item_id}")

    last = len(siblings) - 1
    if move == "up":
        target = min(position + 1, last)
    elif move == "down":
        target = max(position - 1, 0)
    elif move == "top":
        target = last
    elif move == "bottom":
        target = 0
    else:
        if to_index is None:
            raise ValueError("A move to an index needs to_index")
        target = max(0, min(to_index, last))
    if target == position:
        return doc

    moved = siblings.pop(position)
    siblings.insert(target, moved)
    logger.debug(
        f"Moved {item_id} from {position} to {target} in scope "
        f"{parent_id or 'top level'}"
    )

    # Rewrite the master image order: the slots owned by this scope are
    # refilled in the new sibling order, every other slot is untouched.
    z = _z_index(doc.images)
    new_sequence: List[str] = []
    for kind, sid in siblings:
        members = [i for i in _item_images(doc, kind, sid) if i in z]
        new_sequence.extend(sorted(members, key=z.__getitem__))
    slots = sorted(z[i] for i in new_sequence)
    images = list(doc.images)
    by_id = {img.id: img for img in doc.images}
    for slot, image_id in zip(slots, new_sequence):
        images[slot] = by_id[image_id]

    new_doc = doc.replace(images=images)
    if parent is not None:
        new_doc = new_doc.replace_groups(
            [
                dataclasses.replace(
                    parent,
                    image_ids=tuple(s for k, s in siblings if k == "image"),
                    group_ids=tuple(s for k, s in siblings if k == "group"),
                )
            ]
        )
    return new_doc


def reparent_group(
    groups: Sequence[Group], child_id: str, new_parent_id: Optional[str]
) -> Tuple[Group, ...]:
    """
    Moves group `child_id` under `new_parent_id` (None for top level).

    A former parent left without children is removed.

    Raises CycleError if `child_id` is `new_parent_id` or one of its
    ancestors, and KeyError for unknown ids. On error nothing changes.
    """
    by_id = _group_map(groups)
    child = by_id.get(child_id)
    if child is None:
        raise KeyError(f"No group with id {child_id}")
    if new_parent_id is not None:
        if new_parent_id not in by_id:
            raise KeyError(f"No group with id {new_parent_id}")
        if child_id in ancestors(new_parent_id, groups):
            raise CycleError(
                f"Cannot move group {child_id} into {new_parent_id}: "
                f"it is an ancestor of the target."
            )
    if child.parent_id == new_parent_id:
        return tuple(groups)

    result = []
    for group in groups:
        if group.id == child_id:
            group = dataclasses.replace(group, parent_id=new_parent_id)
        if child_id in group.group_ids:
            group = dataclasses.replace(
                group,
                group_ids=tuple(g for g in group.group_ids if g != child_id),
            )
        if group.id == new_parent_id:
            group = dataclasses.replace(
                group, group_ids=group.group_ids + (child_id,)
            )
        result.append(group)
    members = {i for g in result for i in g.image_ids}
    return sanitize_groups(result, members)


def _unique_group_name(groups: Iterable[Group]) -> str:
    names = {g.name for g in groups}
    number = 1
    while f"New Group {number}" in names:
        number += 1
    return f"New Group {number}"


def create_group(
    doc: Document,
    image_ids: Sequence[str],
    name: Optional[str] = None,
) -> Tuple[Document, Group]:
    """
    Creates a top-level group holding `image_ids`, taking them out of any
    group they were in. Groups that end up empty are removed.
    """
    existing = set(doc.image_ids)
    members = [i for i in image_ids if i in existing]
    if not members:
        raise ValueError("A group needs at least one existing image")
    name = name or _unique_group_name(doc.groups)
    group = Group(name=name, label=name, image_ids=tuple(members))
    taken = set(members)
    others = [
        dataclasses.replace(
            g, image_ids=tuple(i for i in g.image_ids if i not in taken)
        )
        for g in doc.groups
    ]
    groups = sanitize_groups(others + [group], existing)
    logger.info(f"Created group '{name}' with {len(members)} image(s)")
    return doc.replace(groups=groups), group


def delete_group(doc: Document, group_id: str) -> Document:
    """
    Removes a group. Its children move up to the group's own parent, or to
    the top level.
    """
    group = doc.get_group(group_id)
    if group is None:
        raise KeyError(f"No group with id {group_id}")
    result = []
    for g in doc.groups:
        if g.id == group_id:
            continue
        if g.id == group.parent_id:
            if group_id in g.group_ids:
                index = g.group_ids.index(group_id)
            else:
                index = len(g.group_ids)
            g = dataclasses.replace(
                g,
                image_ids=g.image_ids + group.image_ids,
                group_ids=(
                    g.group_ids[:index]
                    + group.group_ids
                    + g.group_ids[index + 1:]
                ),
            )
        elif g.parent_id == group_id:
            g = dataclasses.replace(g, parent_id=group.parent_id)
        result.append(g)
    return doc.replace(groups=sanitize_groups(result, doc.image_ids))


def add_image_to_group(
    doc: Document, image_id: str, group_id: Optional[str]
) -> Document:
    """
    Makes `image_id` a direct child of `group_id`, or a top-level item if
    `group_id` is None.
    """
    if doc.get_image(image_id) is None:
        raise KeyError(f"No image with id {image_id}")
    if group_id is not None and doc.get_group(group_id) is None:
        raise KeyError(f"No group with id {group_id}")
    groups = []
    for g in doc.groups:
        ids = tuple(i for i in g.image_ids if i != image_id)
        if g.id == group_id:
            ids += (image_id,)
        groups.append(dataclasses.replace(g, image_ids=ids))
    return doc.replace(groups=sanitize_groups(groups, doc.image_ids))


def remove_image(doc: Document, image_id: str) -> Document:
    """
    Deletes an image and every group reference to it. Groups left empty
    are removed.
    """
    if doc.get_image(image_id) is None:
        raise KeyError(f"No image with id {image_id}")
    images = [img for img in doc.images if img.id != image_id]
    groups = sanitize_groups(doc.groups, (img.id for img in images))
    return doc.replace(images=images, groups=groups)
