"""
Visualization of data-association results (top-down 2D view).

  - map landmarks: blue
  - observations, placed in the map frame with the estimated pose: red
  - found correspondences: white lines between each pair
  - optional ground-truth sensor pose: green marker with heading

Everything is drawn into a BGR canvas; showing / saving is optional.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import cv2
import numpy as np

from ..ransac.pose import Pose2D
from ..ransac.types import Points2D

_BACKGROUND = (204, 204, 204)   # light grey
_MAP_COLOR = (255, 0, 0)        # blue
_OBS_COLOR = (0, 0, 255)        # red
_PAIR_COLOR = (255, 255, 255)   # white
_GT_COLOR = (0, 160, 0)         # green


@dataclass(frozen=True)
class CanvasParams:
    """
    px_per_unit:
      - Pixels per map unit.
    margin_px:
      - Empty border around the drawn extent.
    """
    px_per_unit: float = 12.0
    margin_px: int = 40


class _CanvasFrame:
    """
    Map-frame -> pixel transform (y axis pointing up on screen).
    """

    def __init__(self, pts: Points2D, params: CanvasParams) -> None:
        lo = pts.min(axis=0)
        hi = pts.max(axis=0)
        self.lo = lo
        self.scale = float(params.px_per_unit)
        self.margin = int(params.margin_px)
        self.width = int(math.ceil((hi[0] - lo[0]) * self.scale)) + 2 * self.margin + 1
        self.height = int(math.ceil((hi[1] - lo[1]) * self.scale)) + 2 * self.margin + 1

    def to_px(self, x: float, y: float) -> tuple[int, int]:
        u = self.margin + (x - self.lo[0]) * self.scale
        v = self.height - 1 - (self.margin + (y - self.lo[1]) * self.scale)
        return int(round(u)), int(round(v))


def render_association(
        map_points: Points2D,
        observations: Points2D,
        pose: Optional[Pose2D],
        pairs: Sequence[tuple[int, int]],
        *,
        gt_pose: Optional[Pose2D] = None,
        params: CanvasParams = CanvasParams(),
) -> np.ndarray:
    """
    Draw map, observations (under `pose`) and the (map_index, obs_index) pairings.

    pose=None draws the observations in their own frame (no solution available).
    Returns an (H,W,3) uint8 BGR image.
    """
    map_points = np.asarray(map_points, dtype=np.float64).reshape(-1, 2)
    observations = np.asarray(observations, dtype=np.float64).reshape(-1, 2)

    obs_in_map = pose.transform_points(observations) if pose is not None else observations

    extent = [map_points, obs_in_map]
    if gt_pose is not None:
        extent.append(np.array([[gt_pose.x, gt_pose.y]], dtype=np.float64))
    frame = _CanvasFrame(np.vstack(extent), params)

    canvas = np.full((frame.height, frame.width, 3), _BACKGROUND, dtype=np.uint8)

    for map_idx, obs_idx in pairs:
        mx, my = map_points[map_idx]
        ox, oy = obs_in_map[obs_idx]
        cv2.line(canvas, frame.to_px(mx, my), frame.to_px(ox, oy), _PAIR_COLOR, 1, cv2.LINE_AA)

    for x, y in map_points:
        cv2.circle(canvas, frame.to_px(x, y), 3, _MAP_COLOR, -1, cv2.LINE_AA)

    for x, y in obs_in_map:
        cv2.circle(canvas, frame.to_px(x, y), 4, _OBS_COLOR, 1, cv2.LINE_AA)

    if gt_pose is not None:
        p0 = frame.to_px(gt_pose.x, gt_pose.y)
        p1 = frame.to_px(gt_pose.x + 2.0 * math.cos(gt_pose.theta),
                         gt_pose.y + 2.0 * math.sin(gt_pose.theta))
        cv2.circle(canvas, p0, 5, _GT_COLOR, 2, cv2.LINE_AA)
        cv2.arrowedLine(canvas, p0, p1, _GT_COLOR, 2, tipLength=0.3)

    return canvas


def draw_status_text(img_bgr: np.ndarray, lines: list[str]) -> np.ndarray:
    """
    Draw a small multi-line text block at the top-left of an image.
    """
    if img_bgr is None or img_bgr.size == 0:
        return img_bgr

    out = img_bgr.copy()
    x0, y0 = 5, 15
    dy = 16

    for i, text in enumerate(lines):
        cv2.putText(out, text, (x0, y0 + i * dy),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.4,
                    (0, 0, 0), 1, cv2.LINE_AA)
    return out


def show_and_save_association(
        img_bgr: np.ndarray,
        *,
        output_path: Optional[Path] = None,
        title: str = "RANSAC data association",
        show: bool = True,
) -> np.ndarray:
    """
    Optionally display (waits for a keypress) and/or save a rendered result.
    """
    if show:
        cv2.imshow(title, img_bgr)
        cv2.waitKey(0)
        cv2.destroyWindow(title)

    if output_path is not None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        cv2.imwrite(str(output_path), img_bgr)

    return img_bgr
