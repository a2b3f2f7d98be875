"""Unit tests for actions and the action registry."""

import unittest

from PySide6.QtCore import QPointF, QRectF

from snapmark.core.errors import ActionFailure
from snapmark.core.geometry import PhysicalRect
from snapmark.core.image_buffer import ScreenCaptureBuffer
from snapmark.editor.annotations import Annotations, Color, FillMode, ShapeType, StrokeSettings
from snapmark.editor.registry import DISPLAY_ORDER, create_default_registry
from snapmark.editor.tools import (
    ActionContext,
    ActionResult,
    DrawingContext,
    EllipseTool,
    RectangleTool,
    ResultKind,
    ToolBase,
    ToolCategory,
)

RED = (255, 0, 0, 255)


class FailingAction(ToolBase):
    id = "failing"
    name = "Failing"

    def on_click(self, ctx):
        raise ActionFailure("disk full")


class CrashingAction(ToolBase):
    id = "crashing"
    name = "Crashing"

    def on_click(self, ctx):
        raise RuntimeError("boom")


def empty_context():
    return ActionContext(None, None, None, None)


class TestActionResult(unittest.TestCase):
    """Tests for ActionResult factories."""

    def test_failure_carries_message(self):
        result = ActionResult.failure("nope")
        self.assertEqual(result.kind, ResultKind.FAILURE)
        self.assertEqual(result.message, "nope")
        self.assertTrue(result.is_failure)

    def test_kinds(self):
        self.assertEqual(ActionResult.continue_().kind, ResultKind.CONTINUE)
        self.assertEqual(ActionResult.exit().kind, ResultKind.EXIT)
        self.assertEqual(ActionResult.success().kind, ResultKind.SUCCESS)
        self.assertEqual(ActionResult.undo().kind, ResultKind.UNDO)
        self.assertEqual(ActionResult.redo().kind, ResultKind.REDO)


class TestActionContext(unittest.TestCase):
    """Region extraction from ActionContext."""

    def setUp(self):
        self.screenshot = ScreenCaptureBuffer.filled(100, 100, RED)

    def context(self, annotations=None, physical=PhysicalRect(10, 10, 50, 50)):
        return ActionContext(
            selection_physical=physical,
            selection_logical=QRectF(10, 10, 40, 40),
            screenshot=self.screenshot,
            annotations=annotations,
        )

    def test_selected_region(self):
        region = self.context().selected_region()
        self.assertEqual((region.width, region.height), (40, 40))

    def test_no_selection(self):
        self.assertIsNone(empty_context().selected_region())
        self.assertIsNone(empty_context().composited_region())

    def test_zero_area_selection(self):
        self.assertIsNone(self.context(physical=PhysicalRect(10, 10, 10, 40)).selected_region())

    def test_composited_without_annotations_is_crop(self):
        region = self.context(Annotations()).composited_region()
        self.assertEqual(region.to_bytes(), bytes(RED) * 1600)

    def test_composited_with_annotations(self):
        annotations = Annotations()
        annotations.add_marker(QPointF(30, 30), Color(0, 0, 255))
        region = self.context(annotations).composited_region()
        self.assertEqual(region.get_pixel(20, 20), (255, 255, 255, 255))


class TestDrawingContext(unittest.TestCase):
    """Bounds helpers of DrawingContext."""

    def test_clamp(self):
        ctx = DrawingContext(Annotations(), StrokeSettings(), QRectF(10, 10, 40, 40))
        clamped = ctx.clamp_to_bounds(QPointF(0, 100))
        self.assertEqual(clamped, QPointF(10, 50))
        self.assertTrue(ctx.is_in_bounds(QPointF(50, 50)))
        self.assertFalse(ctx.is_in_bounds(QPointF(51, 50)))

    def test_no_bounds(self):
        ctx = DrawingContext(Annotations(), StrokeSettings())
        self.assertEqual(ctx.clamp_to_bounds(QPointF(-5, 500)), QPointF(-5, 500))
        self.assertTrue(ctx.is_in_bounds(QPointF(-5, 500)))


class TestRegistry(unittest.TestCase):
    """Tests for ActionRegistry."""

    def setUp(self):
        self.registry = create_default_registry()

    def test_default_actions_enabled_in_order(self):
        ids = [info.id for info in self.registry.get_enabled()]
        self.assertEqual(ids, list(DISPLAY_ORDER))

    def test_enabled_subset_keeps_given_order(self):
        registry = create_default_registry(["copy", "arrow", "undo"])
        self.assertEqual([i.id for i in registry.get_enabled()], ["copy", "arrow", "undo"])
        self.assertFalse(registry.is_enabled("save"))

    def test_unknown_ids_not_enabled(self):
        registry = create_default_registry(["arrow", "mosaic"])
        self.assertEqual(registry.enabled_ids, ["arrow"])

    def test_get_all_in_display_order(self):
        self.registry.register(FailingAction())
        ids = [info.id for info in self.registry.get_all()]
        self.assertEqual(ids, list(DISPLAY_ORDER) + ["failing"])

    def test_disable(self):
        self.registry.disable("save")
        self.assertFalse(self.registry.is_enabled("save"))
        self.registry.enable("save")
        self.assertEqual(self.registry.enabled_ids[-1], "save")

    def test_categories(self):
        infos = {info.id: info for info in self.registry.get_all()}
        self.assertEqual(infos["arrow"].category, ToolCategory.DRAWING)
        self.assertEqual(infos["sequence"].category, ToolCategory.DRAWING)
        self.assertEqual(infos["undo"].category, ToolCategory.ACTION)
        self.assertEqual(infos["annotate"].name, "Annotate")

    def test_unknown_action_fails(self):
        result = self.registry.execute("mosaic", empty_context())
        self.assertEqual(result.kind, ResultKind.FAILURE)
        self.assertIn("mosaic", result.message)

    def test_drawing_tool_toggles(self):
        result = self.registry.execute("arrow", empty_context())
        self.assertEqual(result.kind, ResultKind.CONTINUE)
        self.assertTrue(self.registry.is_tool_active("arrow"))
        self.assertEqual(self.registry.get_active_tool(), "arrow")

        self.registry.execute("arrow", empty_context())
        self.assertFalse(self.registry.is_tool_active("arrow"))
        self.assertFalse(self.registry.has_active_drawing_tool())

    def test_activating_tool_deactivates_others(self):
        self.registry.execute("arrow", empty_context())
        self.registry.execute("rectangle", empty_context())
        self.assertFalse(self.registry.is_tool_active("arrow"))
        self.assertTrue(self.registry.is_tool_active("rectangle"))

    def test_plain_actions_do_not_touch_tools(self):
        self.registry.execute("arrow", empty_context())
        self.assertEqual(self.registry.execute("undo", empty_context()).kind, ResultKind.UNDO)
        self.assertEqual(self.registry.execute("redo", empty_context()).kind, ResultKind.REDO)
        self.assertEqual(
            self.registry.execute("cancel", empty_context()).kind, ResultKind.CONTINUE
        )
        self.assertTrue(self.registry.is_tool_active("arrow"))

    def test_action_failure_converted(self):
        self.registry.register(FailingAction())
        result = self.registry.execute("failing", empty_context())
        self.assertEqual(result, ActionResult.failure("disk full"))

    def test_unexpected_error_converted(self):
        self.registry.register(CrashingAction())
        result = self.registry.execute("crashing", empty_context())
        self.assertTrue(result.is_failure)
        self.assertIn("boom", result.message)

    def test_save_without_selection_fails(self):
        result = self.registry.execute("save", empty_context())
        self.assertTrue(result.is_failure)

    def test_copy_without_selection_fails(self):
        result = self.registry.execute("copy", empty_context())
        self.assertTrue(result.is_failure)

    def test_deactivate_all(self):
        self.registry.execute("highlighter", empty_context())
        self.registry.deactivate_all()
        self.assertIsNone(self.registry.get_active_tool())


class TestDrawingTools(unittest.TestCase):
    """Drawing lifecycle routed through the registry."""

    def setUp(self):
        self.registry = create_default_registry()
        self.annotations = Annotations()
        self.ctx = DrawingContext(
            self.annotations,
            StrokeSettings(color=Color(0, 0, 255)),
            QRectF(0, 0, 100, 100),
        )

    def draw(self, tool_id, start, *moves):
        self.registry.execute(tool_id, empty_context())
        self.registry.on_draw_start(start, self.ctx)
        for pos in moves:
            self.registry.on_draw_move(pos, self.ctx)
        self.registry.on_draw_end(self.ctx)

    def test_no_active_tool(self):
        self.assertFalse(self.registry.on_draw_start(QPointF(5, 5), self.ctx))
        self.assertFalse(self.registry.on_draw_move(QPointF(5, 5), self.ctx))
        self.assertFalse(self.registry.on_draw_end(self.ctx))

    def test_rectangle(self):
        self.draw("rectangle", QPointF(10, 10), QPointF(40, 30))
        self.assertEqual(len(self.annotations.shapes), 1)
        self.assertEqual(self.annotations.shapes[0].settings.color, Color(0, 0, 255))
        self.assertEqual(self.annotations.shapes[0].shape_type, ShapeType.RECTANGLE)

    def test_ellipse(self):
        self.draw("ellipse", QPointF(10, 10), QPointF(40, 30))
        self.assertEqual(len(self.annotations.shapes), 1)
        self.assertEqual(self.annotations.shapes[0].shape_type, ShapeType.ELLIPSE)

    def test_freehand(self):
        self.draw("annotate", QPointF(10, 10), QPointF(11, 12), QPointF(15, 20))
        self.assertEqual(len(self.annotations.strokes[0].points), 3)

    def test_polyline(self):
        self.draw("polyline", QPointF(10, 10), QPointF(20, 20), QPointF(30, 10))
        self.assertEqual(self.annotations.polylines[0].points, [QPointF(10, 10), QPointF(30, 10)])

    def test_arrow_clamped_to_selection(self):
        self.draw("arrow", QPointF(50, 50), QPointF(500, 50))
        self.assertEqual(self.annotations.arrows[0].end, QPointF(100, 50))

    def test_arrow_snaps_with_shift(self):
        self.ctx.snap = True
        self.draw("arrow", QPointF(10, 10), QPointF(60, 14))
        self.assertAlmostEqual(self.annotations.arrows[0].end.y(), 10.0, places=6)

    def test_highlighter_uses_context_color(self):
        self.ctx.highlighter_color = Color(0, 255, 0, 80)
        self.draw("highlighter", QPointF(10, 10), QPointF(40, 40))
        self.assertEqual(self.annotations.highlighters[0].color, Color(0, 255, 0, 80))

    def test_sequence_places_marker_per_press(self):
        self.ctx.marker_radius = 20.0
        self.draw("sequence", QPointF(10, 10), QPointF(80, 80))
        self.registry.on_draw_start(QPointF(30, 30), self.ctx)
        self.registry.on_draw_end(self.ctx)
        self.assertEqual([m.number for m in self.annotations.markers], [1, 2])
        self.assertEqual(self.annotations.markers[0].center, QPointF(10, 10))
        self.assertEqual(self.annotations.markers[0].radius, 20.0)

    def test_move_without_start_is_ignored(self):
        self.registry.execute("annotate", empty_context())
        self.registry.on_draw_move(QPointF(10, 10), self.ctx)
        self.assertIsNone(self.annotations.current)


class TestShapeTools(unittest.TestCase):
    """Rectangle and ellipse tools declare their identity on the class."""

    def test_class_identity(self):
        self.assertEqual((RectangleTool.id, RectangleTool.name), ("rectangle", "Rectangle"))
        self.assertEqual((EllipseTool.id, EllipseTool.name), ("ellipse", "Ellipse"))
        self.assertEqual(RectangleTool.shape_type, ShapeType.RECTANGLE)
        self.assertEqual(EllipseTool.shape_type, ShapeType.ELLIPSE)

    def test_filled_ellipse(self):
        annotations = Annotations()
        ctx = DrawingContext(annotations, StrokeSettings())
        tool = EllipseTool(FillMode.FILLED)
        tool.on_draw_start(QPointF(10, 10), ctx)
        tool.on_draw_move(QPointF(40, 30), ctx)
        tool.on_draw_end(ctx)

        shape = annotations.shapes[0]
        self.assertEqual(shape.shape_type, ShapeType.ELLIPSE)
        self.assertEqual(shape.fill_mode, FillMode.FILLED)
        self.assertEqual(tool.id, "ellipse")
