import pytest
from canvasforge.core.annotation import RectAnnotation
from canvasforge.core.doc import AnnotationSelection, Document
from canvasforge.core.image import CanvasImage
from canvasforge.doceditor.editor import DocEditor


@pytest.fixture
def editor():
    """
    Provides a DocEditor with image a (10x10 at the origin) below image b
    (20x10 at 30, 20), both selected.
    """
    doc = Document(
        images=(
            CanvasImage(id="a", width=10, height=10),
            CanvasImage(
                id="b",
                x=30,
                y=20,
                width=20,
                height=10,
                annotations=(RectAnnotation(id="r"),),
            ),
        ),
        canvas_annotations=(RectAnnotation(id="c", x=5, y=5),),
    )
    editor = DocEditor(document=doc)
    editor.selection.set_images(["a", "b"])
    return editor


def position(editor, image_id):
    image = editor.doc.get_image(image_id)
    return image.x, image.y


def test_move_selected_images(editor):
    assert editor.transform.move_images((5, -5))
    assert position(editor, "a") == (5, -5)
    assert position(editor, "b") == (35, 15)
    editor.undo()
    assert position(editor, "a") == (0, 0)


def test_move_skips_locked_images(editor):
    editor.edit.toggle_lock("a")
    editor.transform.move_images((1, 1))
    assert position(editor, "a") == (0, 0)
    assert position(editor, "b") == (31, 21)


def test_zero_move_is_not_recorded(editor):
    assert editor.transform.move_images((0.0, 0.0)) is False
    assert not editor.history_manager.can_undo()


def test_drag_becomes_one_undo_step(editor):
    for _ in range(10):
        editor.transform.drag_images((1, 2))
    assert position(editor, "a") == (10, 20)
    assert len(editor.history_manager.entries) == 1

    assert editor.transform.end_drag()
    assert len(editor.history_manager.entries) == 2
    editor.undo()
    assert position(editor, "a") == (0, 0)


def test_cancel_drag_restores_pre_drag_state(editor):
    editor.transform.drag_images((7, 7))
    editor.transform.cancel_drag()
    assert position(editor, "a") == (0, 0)
    assert editor.transform.end_drag() is False


def test_drag_annotations(editor):
    selections = [AnnotationSelection(None, "c")]
    editor.transform.drag_annotations((1, 0), selections)
    editor.transform.drag_annotations((1, 0), selections)
    editor.transform.end_drag()
    assert editor.doc.get_canvas_annotation("c").x == 7
    assert len(editor.history_manager.entries) == 2


def test_move_selected_annotations(editor):
    editor.selection.set_annotations(
        [AnnotationSelection("b", "r"), AnnotationSelection(None, "c")]
    )
    editor.transform.move_annotations((2, 3))
    assert editor.doc.get_canvas_annotation("c").get_points() == ((7, 8),)
    moved = editor.doc.get_image("b").get_annotation("r")
    assert moved.get_points()[0] == pytest.approx((2, 3))


@pytest.mark.parametrize(
    "alignment, expected_a, expected_b",
    [
        ("left", (0, 0), (0, 20)),
        ("right", (40, 0), (30, 20)),
        ("h-center", (20, 0), (15, 20)),
        ("top", (0, 0), (30, 0)),
        ("bottom", (0, 20), (30, 20)),
        ("v-center", (0, 10), (30, 10)),
    ],
)
def test_align(editor, alignment, expected_a, expected_b):
    assert editor.transform.align(alignment)
    assert position(editor, "a") == pytest.approx(expected_a)
    assert position(editor, "b") == pytest.approx(expected_b)


def test_align_needs_two_images(editor):
    assert editor.transform.align("left", ["a"]) is False


def test_align_rejects_unknown_alignment(editor):
    with pytest.raises(ValueError):
        editor.transform.align("diagonal")


def test_arrange_puts_topmost_first_with_padding(editor):
    assert editor.transform.arrange("horizontal")
    assert position(editor, "b") == pytest.approx((0, 0))
    assert position(editor, "a") == pytest.approx((30, 0))


def test_stack_reverse_vertical(editor):
    assert editor.transform.stack("vertical", "reverse")
    assert position(editor, "a") == pytest.approx((0, 0))
    assert position(editor, "b") == pytest.approx((0, 10))


def test_match_sizes_changes_only_scale(editor):
    assert editor.transform.match_sizes("width", ["a", "b"])
    b = editor.doc.get_image("b")
    assert b.scale == pytest.approx(0.5)
    assert (b.width, b.height) == (20, 10)
    assert b.scaled_size == pytest.approx((10, 5))
    with pytest.raises(ValueError):
        editor.transform.match_sizes("depth")


def test_set_rotation_wraps_angle(editor):
    assert editor.transform.set_rotation(450, ["b"])
    assert editor.doc.get_image("b").rotation == 90
    assert editor.doc.get_image("a").rotation == 0
