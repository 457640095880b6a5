"""
Arc retrieval over a pixel skeleton.

Retrieves all arcs of the skeleton and keeps the interesting ones. Each arc
has its two end pixels tagged with the arc shape, so that a later approach
through a junction can read the shape instead of walking the arc again.

    scan_image()              scan the whole image for arc starts
      scan_junction()         scan arcs leaving a junction point
        scan_arc()
      scan_arc()              scan one arc
        walk_along()          walk till arc end (forward or backward)
          move()              move just one pixel
        determine_shape()     global arc shape
        store_shape()         arc shape stored in its end pixels
"""

import math
from collections import Counter
from dataclasses import dataclass
from enum import Enum

import numpy as np

from omrcurves.geometry.fitting import fit_line
from omrcurves.models import CircleModel
from omrcurves.sheet.scale import Skew
from omrcurves.skeleton.arc import Arc, ArcShape
from omrcurves.skeleton.skeleton import (
    ALL_DIRS,
    DXS,
    DYS,
    SCANS,
    Status,
    get_dir,
    is_junction,
    is_junction_processed,
)
from omrcurves.tracer import get_tracer, trace


class WalkStatus(Enum):
    """Outcome of one move along an arc."""
    CONTINUE = "continue"  # one more point on arc
    SWITCH = "switch"  # arrived at a junction
    END = "end"  # dead end, or back onto a processed pixel


@dataclass(frozen=True)
class RetrieverParameters:
    """Scale-dependent thresholds of the retrieval, in pixels."""
    arc_min_quorum: int
    min_staff_arc_length: int
    max_staff_arc_length: int
    min_staff_line_distance: float
    max_sin_sq: float
    max_line_distance: float
    min_slope: float

    @classmethod
    def from_config(cls, retriever_config, scale):
        max_sin = math.sin(math.radians(retriever_config.max_alpha))
        return cls(
            arc_min_quorum=scale.to_pixels(retriever_config.arc_min_quorum),
            min_staff_arc_length=scale.to_pixels(retriever_config.min_staff_arc_length),
            max_staff_arc_length=scale.to_pixels(retriever_config.max_staff_arc_length),
            min_staff_line_distance=scale.to_pixels_double(retriever_config.min_staff_line_distance),
            max_sin_sq=max_sin * max_sin,
            max_line_distance=scale.to_pixels_double(retriever_config.max_line_distance),
            min_slope=retriever_config.min_slope,
        )


class ArcRetriever:
    """
    Walks a skeleton once, discovering every arc and junction.

    The skeleton buffer is mutated in place and must not be shared with
    another retrieval while a scan is running.
    """

    def __init__(self, skeleton, params, skew=None, staff_manager=None, model_fitter=None):
        self.skeleton = skeleton
        self.buf = skeleton.buf
        self.params = params
        self.skew = skew or Skew()
        self.staff_manager = staff_manager
        self.model_fitter = model_fitter
        self.tracer = get_tracer()

    @trace(label="scan_image")
    def scan_image(self):
        """
        Scan the whole image in row-major order.

        Returns the kept arcs (junction links excluded).
        """
        self.skeleton.check()
        buf = self.buf

        interior = buf[1:-1, 1:-1]
        starts = (interior == Status.ARC) | (interior == Status.JUNCTION)
        for y, x in np.argwhere(starts) + 1:
            x = int(x)
            y = int(y)
            pix = int(buf[y, x])

            if pix == Status.ARC:
                # Basic arc pixel, not yet processed, scan full arc
                self.scan_arc(x, y, None, 0)
            elif is_junction(pix) and not is_junction_processed(pix):
                self.scan_junction(x, y)

        self.skeleton.sort_ends()

        arcs = [arc for arc in self.skeleton.arcs if not arc.is_link]
        counts = Counter(arc.shape.name for arc in arcs)
        self.tracer.event(
            f"Kept arcs: {len(arcs)}, links: {len(self.skeleton.arcs) - len(arcs)}",
            shapes=dict(counts),
        )
        return arcs

    def scan_junction(self, x, y):
        """Scan all arcs departing from the junction at (x, y)."""
        buf = self.buf
        start_junction = (x, y)
        buf[y, x] = Status.JUNCTION_PROCESSED

        for direction in ALL_DIRS:
            nx = x + DXS[direction]
            ny = y + DYS[direction]
            pix = int(buf[ny, nx])

            if pix == Status.ARC:
                self.scan_arc(nx, ny, start_junction, direction)
            elif is_junction(pix) and not is_junction_processed(pix):
                # Touching junction: a link without points
                link = Arc(start_junction, (nx, ny))
                self.skeleton.register_link(link)

    def scan_arc(self, x, y, start_junction, last_dir):
        """
        Scan an arc both ways, from a point not necessarily at an end.

        Returns the arc if kept, None if hidden.
        """
        arc = Arc(start_junction)
        self._add_point(arc, x, y, False)

        # Normal side, toward stop junction
        self.walk_along(arc, x, y, False, last_dir)

        # Reverse side, unless we started from a junction
        if start_junction is None:
            if arc.length > 1:
                last_dir = get_dir(arc.points[1], arc.points[0])
            elif arc.stop_junction is not None:
                last_dir = get_dir(arc.stop_junction, arc.points[0])

            self.walk_along(arc, x, y, True, last_dir)

        shape = self.determine_shape(arc)
        self.store_shape(arc, shape)

        if shape.is_relevant:
            self.skeleton.register_arc(arc)
            return arc

        self.hide(arc)
        return None

    def walk_along(self, arc, x, y, reverse, last_dir):
        """Walk from (x, y) in the desired orientation until no move is possible."""
        while True:
            status, x, y, last_dir = self.move(arc, x, y, last_dir, reverse)
            if status is not WalkStatus.CONTINUE:
                return
            self._add_point(arc, x, y, reverse)

    def move(self, arc, x, y, last_dir, reverse):
        """
        Try to move to the next point of the arc.

        Returns (status, x, y, direction) for the pixel reached.
        """
        buf = self.buf
        scans = SCANS[last_dir]

        # Junctions within reach stop the walk
        for direction in scans:
            cx = x + DXS[direction]
            cy = y + DYS[direction]
            if is_junction(buf[cy, cx]):
                arc.set_junction((cx, cy), reverse)
                return WalkStatus.SWITCH, cx, cy, direction

        for direction in scans:
            cx = x + DXS[direction]
            cy = y + DYS[direction]
            if buf[cy, cx] == Status.ARC:
                return WalkStatus.CONTINUE, cx, cy, direction

        return WalkStatus.END, x, y, last_dir

    def determine_shape(self, arc):
        """Classify the arc; the first matching rule wins."""
        params = self.params
        points = arc.points
        n = len(points)

        if n < params.arc_min_quorum:
            return ArcShape.SHORT

        # Just a long portion of staff line?
        if self.is_staff_arc(arc):
            if n > params.max_staff_arc_length:
                return ArcShape.IRRELEVANT
            return ArcShape.STAFF_ARC

        # Straight line? Check mid point for colinearity
        p0 = points[0]
        p1 = points[n // 2]
        p2 = points[-1]

        if sin_sq(p1, p0, p2) <= params.max_sin_sq:
            line = fit_line(arc.point_list())

            if line.mean_distance <= params.max_line_distance:
                # Not a slur; reject stems and bar line portions
                if abs(line.inverted_slope + self.skew.slope) <= params.min_slope:
                    self.tracer.event(f"Vertical line {arc.describe()}", level="DEBUG")
                    return ArcShape.IRRELEVANT

                if abs(line.slope - self.skew.slope) <= params.min_slope:
                    self.tracer.event(f"Horizontal line {arc.describe()}", level="DEBUG")

                arc.model = line
                return ArcShape.LINE

        if self.model_fitter is not None:
            model = self.model_fitter.compute_model(arc.point_list())
            if isinstance(model, CircleModel):
                arc.model = model
                return ArcShape.SLUR

        return ArcShape.IRRELEVANT

    def is_staff_arc(self, arc):
        """Check whether the arc is simply a part of a staff line."""
        params = self.params
        points = arc.points

        if len(points) < params.min_staff_arc_length or self.staff_manager is None:
            return False

        p0 = points[0]
        staff = self.staff_manager.get_staff_at(p0)
        if staff is None:
            return False

        line = staff.closest_line(p0)
        max_dist = 0.0
        max_dy = -math.inf
        min_dy = math.inf

        for index in (0, len(points) // 2, len(points) - 1):
            px, py = points[index]
            dist = py - line.y_at(px)
            max_dist = max(max_dist, abs(dist))
            max_dy = max(max_dy, dist)
            min_dy = min(min_dy, dist)

        return (max_dist < params.min_staff_line_distance
                and (max_dy - min_dy) < params.min_staff_line_distance)

    def store_shape(self, arc, shape):
        """Store the arc shape in its two end pixels."""
        arc.shape = shape
        status = Status.PROCESSED + shape

        first = arc.first
        last = arc.last
        self.buf[first[1], first[0]] = status
        self.buf[last[1], last[0]] = status

    def hide(self, arc):
        """Tag the interior points of a discarded arc."""
        points = arc.point_list()
        for x, y in points[1:-1]:
            self.buf[y, x] = Status.HIDDEN

    def _add_point(self, arc, x, y, reverse):
        arc.add_point((x, y), reverse)
        self.buf[y, x] = Status.PROCESSED


def sin_sq(vertex, p1, p2):
    """
    Squared sine of the angle at vertex between (vertex, p1) and (vertex, p2).

    Degenerate (zero-length) vectors count as colinear.
    """
    x1 = p1[0] - vertex[0]
    y1 = p1[1] - vertex[1]
    x2 = p2[0] - vertex[0]
    y2 = p2[1] - vertex[1]

    l1_sq = x1 * x1 + y1 * y1
    l2_sq = x2 * x2 + y2 * y2
    if l1_sq == 0 or l2_sq == 0:
        return 0.0

    vect = x1 * y2 - x2 * y1
    return (vect * vect) / (l1_sq * l2_sq)
