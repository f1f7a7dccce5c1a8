from canvasforge.core.group import Group


def test_dict_round_trip():
    group = Group(
        id="g",
        name="Pair",
        label="Pair",
        show_label=True,
        image_ids=("a", "b"),
        group_ids=("child",),
        parent_id="root",
        is_expanded=False,
        visible=False,
        locked=True,
    )
    data = group.to_dict()
    assert data["imageIds"] == ["a", "b"]
    assert data["isExpanded"] is False
    assert Group.from_dict(data) == group


def test_from_dict_defaults():
    group = Group.from_dict({"id": "g", "name": "Stuff"})
    assert group.label == "Stuff"
    assert group.image_ids == ()
    assert group.parent_id is None
    assert group.is_expanded is True
    assert group.visible is True
    assert group.is_empty()
