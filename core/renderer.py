from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, Optional, Tuple

import cv2
import numpy as np

from core.classifier import SegmentClass, SegmentClassifier
from core.config import ConfigError
from core.horizon import FrameAnalysis, HorizonEstimate
from core.line_detector import DetectionLayers
from core.segments import LineSegment

logger = logging.getLogger(__name__)


def _color(value: Any, default: Tuple[int, int, int]) -> Tuple[int, int, int]:
    if value is None:
        return default
    return tuple(int(c) for c in value)


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"renderer.{name} must be a mapping, got {type(section).__name__}")
    return section


class OverlayRenderer:
    """Draws horizon, perspective grid and wall segments over a display frame, plus optional debug layers."""

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        config = config or {}

        horizon_cfg = _section(config, "horizon")
        grid_cfg = _section(config, "grid")
        walls_cfg = _section(config, "walls")
        debug_cfg = _section(config, "debug")

        self.show_horizon = bool(horizon_cfg.get("enabled", True))
        self.show_grid = bool(grid_cfg.get("enabled", True))
        self.show_walls = bool(walls_cfg.get("enabled", True))

        # Colors are BGR for OpenCV
        self.horizon_color = _color(horizon_cfg.get("color"), (0, 255, 0))
        self.horizon_thickness = int(horizon_cfg.get("thickness", 2))
        self.dash_length = int(horizon_cfg.get("dash_length", 10))
        self.dash_gap = int(horizon_cfg.get("dash_gap", 5))
        self.flat_angle = float(horizon_cfg.get("flat_angle", 0.5))  # below this the line is drawn level
        self.segment_alpha = float(horizon_cfg.get("segment_alpha", 0.3))
        self.segment_thickness = int(horizon_cfg.get("segment_thickness", 4))
        self.label_scale = float(horizon_cfg.get("label_scale", 0.5))

        self.grid_color = _color(grid_cfg.get("color"), (255, 255, 0))
        self.grid_alpha = float(grid_cfg.get("alpha", 0.4))
        self.grid_cols = int(grid_cfg.get("columns", 12))
        self.grid_rows = int(grid_cfg.get("rows", 8))
        self.grid_row_exponent = float(grid_cfg.get("row_exponent", 1.5))
        self.grid_spread = float(grid_cfg.get("spread", 1.2))

        self.wall_color = _color(walls_cfg.get("color"), (0, 102, 255))
        self.wall_thickness = int(walls_cfg.get("thickness", 2))

        # Debug layers: every detected segment colored by its class
        self.show_debug = bool(debug_cfg.get("enabled", False))
        self.debug_colors = {
            SegmentClass.HORIZON: _color(debug_cfg.get("horizon_color"), (0, 255, 0)),
            SegmentClass.WALL: _color(debug_cfg.get("wall_color"), (0, 100, 255)),
            SegmentClass.OTHER: _color(debug_cfg.get("other_color"), (255, 100, 100)),
        }
        self.debug_thickness = int(debug_cfg.get("thickness", 2))

    def render(
        self,
        frame: np.ndarray,
        analysis: Optional[FrameAnalysis],
        process_size: Tuple[int, int],
    ) -> np.ndarray:
        """
        Draw the overlay on a copy of the frame.

        Args:
            frame: Display frame (BGR)
            analysis: Estimator output in processing coordinates, may be None
            process_size: (width, height) of the processing frame

        Returns:
            Annotated copy of the frame
        """
        img = frame.copy()
        if analysis is None:
            return img

        h, w = img.shape[:2]
        sx = w / float(process_size[0])
        sy = h / float(process_size[1])

        horizon = analysis.horizon
        if horizon is not None and self.show_grid:
            self._draw_grid(img, horizon, sx, sy, process_size[0])
        if analysis.walls and self.show_walls:
            self._draw_walls(img, analysis.walls, sx, sy)
        if horizon is not None and self.show_horizon:
            self._draw_horizon(img, horizon, sx, sy)
        return img

    def render_segments(
        self,
        frame: np.ndarray,
        segments: Iterable[LineSegment],
        classifier: SegmentClassifier,
        process_size: Tuple[int, int],
    ) -> np.ndarray:
        """
        Draw every raw segment on a copy of the frame, colored by class
        (horizon candidate, wall or other). Malformed segments are skipped.
        """
        img = frame.copy()
        h, w = img.shape[:2]
        sx = w / float(process_size[0])
        sy = h / float(process_size[1])
        for seg in segments:
            color = self.debug_colors.get(classifier.label(seg))
            if color is None:
                continue
            p1, p2 = seg.scaled(sx, sy).as_int_points()
            cv2.line(img, p1, p2, color, self.debug_thickness, lineType=cv2.LINE_AA)
        return img

    def render_debug_panel(self, layers: DetectionLayers, classifier: SegmentClassifier) -> np.ndarray:
        """Grayscale, Canny edges and classified segments side by side, at processing resolution."""
        gray = cv2.cvtColor(layers.gray, cv2.COLOR_GRAY2BGR)
        edges = cv2.cvtColor(layers.edges, cv2.COLOR_GRAY2BGR)
        h, w = layers.edges.shape[:2]
        lines = self.render_segments(np.zeros((h, w, 3), dtype=np.uint8), layers.segments, classifier, (w, h))
        for view, name in ((gray, "gray"), (edges, "edges"), (lines, "segments")):
            cv2.putText(view, name, (10, 20), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1, cv2.LINE_AA)
        return np.hstack([gray, edges, lines])

    def _horizon_endpoints(self, horizon: HorizonEstimate, sy: float, width: int) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        y = horizon.y * sy
        dy = 0.0
        if abs(horizon.angle) > self.flat_angle:
            dy = math.tan(math.radians(horizon.angle)) * (width / 2.0)
        return (0, int(round(y - dy))), (width, int(round(y + dy)))

    def _draw_horizon(self, img: np.ndarray, horizon: HorizonEstimate, sx: float, sy: float) -> None:
        w = img.shape[1]

        # Supporting segments, faint
        if len(horizon.segments) > 1:
            overlay = img.copy()
            for seg in horizon.segments:
                p1, p2 = seg.scaled(sx, sy).as_int_points()
                cv2.line(overlay, p1, p2, self.horizon_color, self.segment_thickness, lineType=cv2.LINE_AA)
            cv2.addWeighted(overlay, self.segment_alpha, img, 1 - self.segment_alpha, 0, img)

        # Dashed horizon, more opaque with higher confidence
        alpha = 0.5 + 0.5 * horizon.confidence
        overlay = img.copy()
        start, end = self._horizon_endpoints(horizon, sy, w)
        self._dashed_line(overlay, start, end, self.horizon_color, self.horizon_thickness)
        cv2.addWeighted(overlay, alpha, img, 1 - alpha, 0, img)

        label = f"Horizon {int(round(horizon.confidence * 100))}% ({horizon.segment_count})"
        if abs(horizon.angle) > self.flat_angle:
            label += f" tilt {horizon.angle:.1f} deg"
        cv2.putText(
            img,
            label,
            (10, max(12, int(round(horizon.y * sy)) - 5)),
            cv2.FONT_HERSHEY_SIMPLEX,
            self.label_scale,
            self.horizon_color,
            1,
            cv2.LINE_AA,
        )

    def _dashed_line(
        self,
        img: np.ndarray,
        start: Tuple[int, int],
        end: Tuple[int, int],
        color: Tuple[int, int, int],
        thickness: int,
    ) -> None:
        x0, y0 = start
        x1, y1 = end
        length = math.hypot(x1 - x0, y1 - y0)
        if length == 0:
            return
        step = self.dash_length + self.dash_gap
        ux, uy = (x1 - x0) / length, (y1 - y0) / length
        pos = 0.0
        while pos < length:
            seg_end = min(pos + self.dash_length, length)
            p1 = (int(round(x0 + ux * pos)), int(round(y0 + uy * pos)))
            p2 = (int(round(x0 + ux * seg_end)), int(round(y0 + uy * seg_end)))
            cv2.line(img, p1, p2, color, thickness, lineType=cv2.LINE_AA)
            pos += step

    def _draw_grid(self, img: np.ndarray, horizon: HorizonEstimate, sx: float, sy: float, process_width: int) -> None:
        h, w = img.shape[:2]
        vp_x = (process_width / 2.0) * sx
        vp_y = horizon.y * sy
        bottom = float(h)
        if vp_y >= bottom:
            logger.debug("Horizon below frame bottom, grid skipped")
            return

        overlay = img.copy()
        for i in range(self.grid_cols + 1):
            t = i / self.grid_cols
            cv2.line(overlay, (int(vp_x), int(vp_y)), (int(t * w), int(bottom)), self.grid_color, 1, lineType=cv2.LINE_AA)

        tan_a = math.tan(math.radians(horizon.angle))
        for i in range(1, self.grid_rows + 1):
            t = (i / self.grid_rows) ** self.grid_row_exponent
            y = vp_y + t * (bottom - vp_y)
            persp = (y - vp_y) / (bottom - vp_y)
            half_w = (w / 2.0) * persp * self.grid_spread
            dy = tan_a * half_w
            cv2.line(
                overlay,
                (int(vp_x - half_w), int(y - dy)),
                (int(vp_x + half_w), int(y + dy)),
                self.grid_color,
                1,
                lineType=cv2.LINE_AA,
            )
        cv2.addWeighted(overlay, self.grid_alpha, img, 1 - self.grid_alpha, 0, img)

    def _draw_walls(self, img: np.ndarray, walls: Iterable[LineSegment], sx: float, sy: float) -> None:
        for wall in walls:
            p1, p2 = wall.scaled(sx, sy).as_int_points()
            cv2.line(img, p1, p2, self.wall_color, self.wall_thickness, lineType=cv2.LINE_AA)
