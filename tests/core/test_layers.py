import pytest
from canvasforge.core.doc import Document
from canvasforge.core.group import Group
from canvasforge.core.image import CanvasImage
from canvasforge.core.layers import (
    CycleError,
    LayerItem,
    add_image_to_group,
    create_group,
    delete_group,
    flatten,
    remove_image,
    render_order,
    reorder,
    reparent_group,
    sanitize_groups,
    top_level_ids,
    validate_groups,
)


def make_image(image_id, **kwargs):
    return CanvasImage(id=image_id, width=10, height=10, **kwargs)


@pytest.fixture
def doc():
    # Bottom to top: a, b, c, d, e. Group G holds b and d, so c sits
    # between two of its members.
    images = tuple(make_image(i) for i in "abcde")
    group = Group(id="G", image_ids=("b", "d"))
    return Document(images=images, groups=(group,))


def ids(doc):
    return [img.id for img in doc.images]


def test_top_level_ids_orders_groups_by_their_topmost_member(doc):
    assert top_level_ids(doc) == ["a", "c", "G", "e"]


def test_reorder_inside_group_stays_inside_group(doc):
    new_doc = reorder(doc, "b", "top")
    # b swaps with d only; a, c and e keep their slots.
    assert ids(new_doc) == ["a", "d", "c", "b", "e"]
    assert new_doc.get_group("G").image_ids == ("d", "b")
    assert ids(doc) == ["a", "b", "c", "d", "e"]


def test_reorder_group_moves_its_members_as_a_block(doc):
    new_doc = reorder(doc, "G", "bottom")
    assert ids(new_doc) == ["b", "d", "a", "c", "e"]


def test_reorder_to_index(doc):
    new_doc = reorder(doc, "a", "index", to_index=2)
    assert top_level_ids(new_doc) == ["c", "G", "a", "e"]
    assert ids(new_doc) == ["c", "b", "d", "a", "e"]


def test_reorder_up_and_down_single_steps(doc):
    assert ids(reorder(doc, "a", "up")) == ["c", "a", "b", "d", "e"]
    assert ids(reorder(doc, "e", "down")) == ["a", "c", "e", "b", "d"]


def test_reorder_already_in_place_returns_same_document(doc):
    assert reorder(doc, "e", "up") is doc
    assert reorder(doc, "a", "bottom") is doc


def test_reorder_rejects_unknown_move_and_item(doc):
    with pytest.raises(ValueError):
        reorder(doc, "a", "sideways")
    with pytest.raises(ValueError):
        reorder(doc, "a", "index")
    with pytest.raises(KeyError):
        reorder(doc, "zz", "up")


def test_flatten_lists_topmost_first_with_depth(doc):
    assert flatten(doc) == [
        LayerItem("e", "image", 0),
        LayerItem("G", "group", 0),
        LayerItem("d", "image", 1, "G"),
        LayerItem("b", "image", 1, "G"),
        LayerItem("c", "image", 0),
        LayerItem("a", "image", 0),
    ]


def test_flatten_hides_children_of_collapsed_groups(doc):
    collapsed = doc.replace(
        groups=[Group(id="G", image_ids=("b", "d"), is_expanded=False)]
    )
    assert [item.id for item in flatten(collapsed)] == ["e", "G", "c", "a"]


def test_flatten_nested_groups():
    images = tuple(make_image(i) for i in "abc")
    outer = Group(id="outer", image_ids=("a",), group_ids=("inner",))
    inner = Group(id="inner", image_ids=("b", "c"), parent_id="outer")
    doc = Document(images=images, groups=(outer, inner))
    depths = {item.id: item.depth for item in flatten(doc)}
    assert depths == {"outer": 0, "inner": 1, "a": 1, "b": 2, "c": 2}


def test_render_order_skips_hidden_images_and_groups(doc):
    doc = doc.replace(
        images=[
            make_image("a", visible=False),
            make_image("b"),
            make_image("c"),
            make_image("d"),
            make_image("e"),
        ],
        groups=[Group(id="G", image_ids=("b", "d"), visible=False)],
    )
    assert [img.id for img in render_order(doc)] == ["c", "e"]


@pytest.fixture
def nested():
    outer = Group(id="outer", image_ids=("a",), group_ids=("inner",))
    inner = Group(id="inner", image_ids=("b",), parent_id="outer")
    return (outer, inner)


def test_reparent_group_into_descendant_raises(nested):
    with pytest.raises(CycleError):
        reparent_group(nested, "outer", "inner")
    with pytest.raises(CycleError):
        reparent_group(nested, "inner", "inner")


def test_reparent_group_to_top_level(nested):
    outer, inner = reparent_group(nested, "inner", None)
    assert outer.group_ids == ()
    assert inner.parent_id is None
    validate_groups((outer, inner))


def test_reparent_group_removes_emptied_parent():
    outer = Group(id="outer", group_ids=("inner",))
    inner = Group(id="inner", image_ids=("b",), parent_id="outer")
    groups = reparent_group((outer, inner), "inner", None)
    assert [g.id for g in groups] == ["inner"]
    assert groups[0].parent_id is None
    validate_groups(groups)


def test_reparent_group_unknown_ids(nested):
    with pytest.raises(KeyError):
        reparent_group(nested, "nope", None)
    with pytest.raises(KeyError):
        reparent_group(nested, "inner", "nope")


def test_validate_groups(nested):
    validate_groups(nested)
    with pytest.raises(ValueError):
        validate_groups(
            (
                Group(id="g1", image_ids=("a",)),
                Group(id="g2", image_ids=("a",)),
            )
        )
    with pytest.raises(ValueError):
        validate_groups((Group(id="g1", image_ids=("a",), parent_id="g2"),))
    looped = (
        Group(id="g1", group_ids=("g2",), parent_id="g2"),
        Group(id="g2", group_ids=("g1",), parent_id="g1"),
    )
    with pytest.raises(CycleError):
        validate_groups(looped)


def test_sanitize_drops_dangling_refs_and_empty_groups():
    groups = [
        Group(id="g1", image_ids=("a", "ghost"), group_ids=("missing",)),
        Group(id="g2", image_ids=("a",)),
        Group(id="g3", group_ids=("g4",)),
        Group(id="g4"),
    ]
    result = sanitize_groups(groups, ["a"])
    assert result == (Group(id="g1", image_ids=("a",)),)


def test_sanitize_cuts_cycles_and_derives_parent_ids(caplog):
    groups = [
        Group(id="g1", image_ids=("a",), group_ids=("g2",)),
        Group(id="g2", image_ids=("b",), group_ids=("g1",)),
    ]
    g1, g2 = sanitize_groups(groups, ["a", "b"])
    assert g1.parent_id is None
    assert g2.parent_id == "g1"
    assert g2.group_ids == ()
    assert "cycle" in caplog.text
    validate_groups((g1, g2))


def test_create_group_names_and_takes_members_from_old_groups(doc):
    new_doc, group = create_group(doc, ["b", "d"])
    assert group.name == "New Group 1"
    # G lost all its images, so it is gone.
    assert [g.id for g in new_doc.groups] == [group.id]
    assert new_doc.get_group(group.id).image_ids == ("b", "d")

    _, second = create_group(new_doc, ["a"])
    assert second.name == "New Group 2"


def test_create_group_needs_an_existing_image(doc):
    with pytest.raises(ValueError):
        create_group(doc, ["nope"])


def test_delete_group_lifts_children_to_its_parent(nested):
    doc = Document(
        images=(make_image("a"), make_image("b")), groups=nested
    )
    without_outer = delete_group(doc, "outer")
    assert without_outer.groups == (Group(id="inner", image_ids=("b",)),)

    without_inner = delete_group(doc, "inner")
    assert without_inner.groups == (Group(id="outer", image_ids=("a", "b")),)

    with pytest.raises(KeyError):
        delete_group(doc, "nope")


def test_add_image_to_group_and_back_to_top_level(doc):
    added = add_image_to_group(doc, "a", "G")
    assert added.get_group("G").image_ids == ("b", "d", "a")
    removed = add_image_to_group(doc, "b", None)
    assert removed.get_group("G").image_ids == ("d",)
    with pytest.raises(KeyError):
        add_image_to_group(doc, "a", "nope")


def test_remove_image_drops_emptied_groups(doc):
    step = remove_image(doc, "b")
    assert step.get_group("G").image_ids == ("d",)
    step = remove_image(step, "d")
    assert step.groups == ()
    assert ids(step) == ["a", "c", "e"]
