"""
Artifact saving utilities for omr-curves.

Handles writing the JSON report, debug images and per-stage metrics.
"""

import json
import os

import cv2
import numpy as np

from omrcurves.skeleton.arc import ArcShape
from omrcurves.tracer import get_tracer

# RGB colors of arcs per shape in debug overlays
SHAPE_COLORS = {
    ArcShape.SHORT: (160, 160, 160),
    ArcShape.STAFF_ARC: (0, 160, 255),
    ArcShape.LINE: (0, 200, 0),
    ArcShape.SLUR: (255, 0, 255),
    ArcShape.IRRELEVANT: (255, 160, 0),
}


def ensure_dir(path):
    """Create directory if it does not exist."""
    os.makedirs(path, exist_ok=True)


def get_debug_dir(out_dir, page_id, stage_name):
    """
    Get the debug directory path for a stage.

    Creates the directory if it does not exist.
    """
    debug_dir = os.path.join(out_dir, "debug", page_id, stage_name)
    ensure_dir(debug_dir)
    return debug_dir


def save_image(img, path, max_edge=None):
    """
    Save an image to disk.

    Optionally downscales to max_edge while preserving aspect ratio.
    RGB images are converted to BGR for OpenCV.
    """
    tracer = get_tracer()

    if max_edge and max(img.shape[:2]) > max_edge:
        scale = max_edge / max(img.shape[:2])
        new_size = (int(img.shape[1] * scale), int(img.shape[0] * scale))
        img = cv2.resize(img, new_size, interpolation=cv2.INTER_NEAREST)

    if len(img.shape) == 3 and img.shape[2] == 3:
        img_bgr = cv2.cvtColor(img, cv2.COLOR_RGB2BGR)
    else:
        img_bgr = img

    ensure_dir(os.path.dirname(path))
    cv2.imwrite(path, img_bgr)
    tracer.event(f"Saved image: {path}", level="DEBUG")


def save_json(data, path, indent=2):
    """
    Save a dictionary, a Pydantic model or a list of models to JSON.
    """
    tracer = get_tracer()

    ensure_dir(os.path.dirname(path))

    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")
    elif isinstance(data, list):
        data = [item.model_dump(mode="json") if hasattr(item, "model_dump") else item for item in data]

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, default=str)

    tracer.event(f"Saved JSON: {path}", level="DEBUG")


def draw_overlay(base_img, polylines=None, points=None, bboxes=None,
                 polyline_color=(0, 255, 0), point_color=(255, 0, 0), bbox_color=(0, 0, 255)):
    """
    Draw debug overlay on an image.

    All inputs are optional. Creates an RGB copy of the base image.

    polylines: list of [[x,y], [x,y], ...] polylines
    points: list of ([x,y], radius) tuples
    bboxes: list of [min_x, min_y, max_x, max_y] bounding boxes
    """
    if len(base_img.shape) == 2:
        overlay = cv2.cvtColor(base_img, cv2.COLOR_GRAY2RGB)
    else:
        overlay = base_img.copy()

    if polylines:
        for polyline in polylines:
            if len(polyline) < 2:
                continue
            pts = np.array(polyline, dtype=np.int32)
            cv2.polylines(overlay, [pts], isClosed=False, color=polyline_color, thickness=1)

    if points:
        for pt, radius in points:
            cv2.circle(overlay, (int(pt[0]), int(pt[1])), radius, point_color, -1)

    if bboxes:
        for bbox in bboxes:
            cv2.rectangle(overlay, (int(bbox[0]), int(bbox[1])), (int(bbox[2]), int(bbox[3])), bbox_color, 1)

    return overlay


def draw_arcs(base_img, arcs, max_arcs=None):
    """
    Paint arc pixels colored by shape, with their junctions in red.
    """
    if len(base_img.shape) == 2:
        overlay = cv2.cvtColor(base_img, cv2.COLOR_GRAY2RGB)
    else:
        overlay = base_img.copy()

    for arc in arcs[:max_arcs]:
        if arc.is_link:
            continue
        color = SHAPE_COLORS.get(arc.shape, (0, 0, 0))
        xs = [p[0] for p in arc.points]
        ys = [p[1] for p in arc.points]
        overlay[ys, xs] = color
        for junction in (arc.start_junction, arc.stop_junction):
            if junction is not None:
                overlay[junction[1], junction[0]] = (255, 0, 0)

    return overlay


def draw_wedges(base_img, segments, wedges):
    """
    Draw segment lookup areas in blue and wedge edges in red.
    """
    bboxes = []
    for segment in segments:
        for area in segment.attachments.values():
            bboxes.append([area.x, area.y, area.max_x - 1, area.max_y - 1])

    overlay = draw_overlay(base_img, bboxes=bboxes)
    edges = [line for wedge in wedges for line in (wedge.line1, wedge.line2)]
    return draw_overlay(overlay, polylines=edges, polyline_color=(255, 0, 0))


class DebugArtifactWriter:
    """
    Helper class to manage debug artifact writing for a single page.

    Handles creation of debug directories and provides convenience methods
    for saving the artifact types.
    """

    def __init__(self, out_dir, page_id, enabled=True, max_edge=1600):
        self.out_dir = out_dir
        self.page_id = page_id
        self.enabled = enabled
        self.max_edge = max_edge

    def get_stage_dir(self, stage_name):
        """Get the debug directory for a stage."""
        return get_debug_dir(self.out_dir, self.page_id, stage_name)

    def save_image(self, img, stage_name, filename):
        """Save an image artifact."""
        if not self.enabled:
            return
        path = os.path.join(self.get_stage_dir(stage_name), filename)
        save_image(img, path, max_edge=self.max_edge)

    def save_json(self, data, stage_name, filename):
        """Save a JSON artifact."""
        if not self.enabled:
            return
        path = os.path.join(self.get_stage_dir(stage_name), filename)
        save_json(data, path)

    def save_overlay(self, base_img, stage_name, filename, **kwargs):
        """Draw and save an overlay image."""
        if not self.enabled:
            return
        overlay = draw_overlay(base_img, **kwargs)
        self.save_image(overlay, stage_name, filename)
