import dataclasses
import pytest
from canvasforge.core.annotation import (
    CircleAnnotation,
    FreehandAnnotation,
    LineAnnotation,
    RectAnnotation,
    TextAnnotation,
)
from canvasforge.core.doc import AnnotationSelection, Document
from canvasforge.core.geometry import GeometryError
from canvasforge.core.image import CanvasImage
from canvasforge.core.reparent import (
    move_annotations,
    reparent_annotation,
    reparent_annotations,
)


@pytest.fixture
def image_a():
    return CanvasImage(id="a", x=0, y=0, width=100, height=100)


@pytest.fixture
def image_b():
    return CanvasImage(
        id="b", x=250, y=-40, width=300, height=200, scale=2.5, rotation=37
    )


def assert_points_close(a, b):
    assert len(a.get_points()) == len(b.get_points())
    for p, q in zip(a.get_points(), b.get_points()):
        assert p == pytest.approx(q, abs=1e-9)


def test_image_to_canvas_without_rotation(image_a):
    anno = RectAnnotation(id="r", x=10, y=10, width=5, height=5)
    doc = Document(images=(image_a.with_annotations([anno]),))
    doc = reparent_annotations(doc, [AnnotationSelection("a", "r")], None)
    assert doc.get_image("a").annotations == ()
    moved = doc.get_canvas_annotation("r")
    assert (moved.x, moved.y) == pytest.approx((10, 10))


def test_image_to_canvas_with_rotation(image_a):
    rotated = dataclasses.replace(image_a, rotation=90)
    anno = RectAnnotation(id="r", x=10, y=10, width=5, height=5)
    doc = Document(images=(rotated.with_annotations([anno]),))
    doc = reparent_annotations(doc, [AnnotationSelection("a", "r")], None)
    moved = doc.get_canvas_annotation("r")
    assert (moved.x, moved.y) == pytest.approx((90, 10))
    assert moved.rotation == pytest.approx(90)


@pytest.mark.parametrize(
    "anno",
    [
        RectAnnotation(id="r", x=10, y=-4, width=20, height=8, rotation=5),
        CircleAnnotation(id="c", x=3, y=7, radius=11, scale=1.5),
        TextAnnotation(id="t", x=-20, y=40, font_size=13),
        FreehandAnnotation(id="f", points=((0, 0), (3, 9), (-7, 2.5))),
        LineAnnotation(id="l", start=(1, 1), end=(90, -12), rotation=-30),
    ],
)
def test_canvas_image_canvas_round_trip(image_b, anno):
    there = reparent_annotation(anno, None, image_b)
    back = reparent_annotation(there, image_b, None)
    assert_points_close(back, anno)
    assert back.scale == pytest.approx(anno.scale)
    assert back.rotation == pytest.approx(anno.rotation)
    if isinstance(anno, CircleAnnotation):
        assert back.radius == pytest.approx(anno.radius)
        assert there.radius == pytest.approx(anno.radius / 2.5)
    if isinstance(anno, TextAnnotation):
        assert back.font_size == pytest.approx(anno.font_size)


def test_image_to_image_preserves_global_position(image_a, image_b):
    src = dataclasses.replace(image_a, scale=0.5, rotation=-20)
    anno = LineAnnotation(id="l", start=(10, 20), end=(60, 80))
    moved = reparent_annotation(anno, src, image_b)
    back_to_canvas_direct = reparent_annotation(anno, src, None)
    via_target = reparent_annotation(moved, image_b, None)
    assert_points_close(via_target, back_to_canvas_direct)
    assert moved.rotation == pytest.approx(-20 - 37)
    assert moved.scale == pytest.approx(0.5 / 2.5)


def test_zero_target_scale_raises(image_a):
    target = dataclasses.replace(image_a)
    object.__setattr__(target, "scale", 0.0)
    with pytest.raises(GeometryError):
        reparent_annotation(RectAnnotation(id="r"), None, target)


def test_canvas_to_image_in_document(image_b):
    anno = CircleAnnotation(id="c", x=300, y=50, radius=10)
    doc = Document(images=(image_b,), canvas_annotations=(anno,))
    new_doc = reparent_annotations(doc, [AnnotationSelection(None, "c")], "b")
    assert new_doc.canvas_annotations == ()
    moved = new_doc.get_image("b").get_annotation("c")
    assert moved is not None
    assert moved.radius == pytest.approx(4)
    # The original document is untouched
    assert doc.canvas_annotations == (anno,)


def test_unknown_target_raises(image_a):
    doc = Document(images=(image_a,))
    with pytest.raises(KeyError):
        reparent_annotations(doc, [], "nope")


def test_missing_selection_is_skipped_with_warning(image_a, caplog):
    doc = Document(images=(image_a,))
    sel = [AnnotationSelection("a", "ghost"), AnnotationSelection("zz", "x")]
    assert reparent_annotations(doc, sel, None) is doc
    assert "ghost" in caplog.text
    assert "zz" in caplog.text


def test_selection_already_in_target_is_left_alone(image_a):
    anno = RectAnnotation(id="r", x=1, y=1)
    doc = Document(images=(image_a.with_annotations([anno]),))
    assert reparent_annotations(
        doc, [AnnotationSelection("a", "r")], "a"
    ) is doc


def test_move_annotations_converts_delta_per_image(image_a):
    rotated = dataclasses.replace(image_a, scale=2, rotation=90)
    on_image = RectAnnotation(id="r", x=10, y=10)
    on_canvas = RectAnnotation(id="c", x=0, y=0)
    doc = Document(
        images=(rotated.with_annotations([on_image]),),
        canvas_annotations=(on_canvas,),
    )
    selections = [
        AnnotationSelection("a", "r"),
        AnnotationSelection(None, "c"),
    ]
    moved = move_annotations(doc, selections, (10, 0))
    canvas_anno = moved.get_canvas_annotation("c")
    assert (canvas_anno.x, canvas_anno.y) == (10, 0)
    image_anno = moved.get_image("a").get_annotation("r")
    assert (image_anno.x, image_anno.y) == pytest.approx((10, 5))
