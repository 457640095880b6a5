"""
Pixel skeleton: a thinned page buffer whose pixel values are status codes.

A pixel status doubles as the visited marker of the arc retrieval and, at
arc ends, as a cache of the arc shape. The skeleton also owns the arena of
retrieved arcs and the index of their end points.

Directions are numbered clockwise from north, 0 meaning "no heading":

    8 1 2
    7 0 3
    6 5 4
"""

from enum import IntEnum

import numpy as np
from skimage.morphology import skeletonize

from omrcurves.skeleton.arc import ArcShape
from omrcurves.tracer import get_tracer, trace


class Status(IntEnum):
    """Pixel status codes."""
    BACKGROUND = 0
    ARC = 1
    JUNCTION = 2
    JUNCTION_PROCESSED = 3
    HIDDEN = 4
    PROCESSED = 10  # + ArcShape ordinal on arc end pixels


class SkeletonError(ValueError):
    """Skeleton buffer violates a precondition of the arc retrieval."""


DXS = (0, 0, 1, 1, 1, 0, -1, -1, -1)
DYS = (0, -1, -1, 0, 1, 1, 1, 0, -1)
ALL_DIRS = (1, 2, 3, 4, 5, 6, 7, 8)

_DIR_BY_OFFSET = {(DXS[d], DYS[d]): d for d in ALL_DIRS}


def opposite(direction):
    if direction == 0:
        return 0
    return (direction + 3) % 8 + 1


def _angular_distance(d1, d2):
    if d1 == 0 or d2 == 0:
        return 0
    diff = abs(d1 - d2) % 8
    return min(diff, 8 - diff)


def _scan_order(direction):
    """
    Directions to try after arriving along direction, never doubling back.
    Orthogonal moves come first so staircase pixels are not skipped.
    """
    candidates = [d for d in ALL_DIRS if d != opposite(direction)]
    return tuple(sorted(candidates, key=lambda d: (d % 2 == 0, _angular_distance(d, direction), d)))


SCANS = tuple(_scan_order(direction) for direction in range(9))


def get_dir(p_from, p_to):
    """Direction of the unit move from p_from toward p_to (0 if same point)."""
    dx = int(np.sign(p_to[0] - p_from[0]))
    dy = int(np.sign(p_to[1] - p_from[1]))
    return _DIR_BY_OFFSET.get((dx, dy), 0)


def is_junction(status):
    return status in (Status.JUNCTION, Status.JUNCTION_PROCESSED)


def is_junction_processed(status):
    return status == Status.JUNCTION_PROCESSED


def is_processed(status):
    return status >= Status.PROCESSED


def shape_of(status):
    """Arc shape cached in an arc end pixel, None for any other pixel."""
    if not is_processed(status):
        return None
    ordinal = int(status) - Status.PROCESSED
    if ordinal < len(ArcShape):
        return ArcShape(ordinal)
    return None


class Skeleton:
    """
    Owned status buffer plus the arena of retrieved arcs.

    arcs_map maps an end coordinate to the indices (in arcs) of the arcs
    ending there; arcs_ends lists kept arc end points, sorted by abscissa
    once the retrieval is done.
    """

    def __init__(self, buf):
        self.buf = np.array(buf, dtype=np.uint8)
        if self.buf.ndim != 2:
            raise SkeletonError(f"Skeleton buffer must be 2D, got shape {self.buf.shape}")
        self.height, self.width = self.buf.shape
        self.arcs = []
        self.arcs_map = {}
        self.arcs_ends = []

    def get(self, x, y):
        return self.buf[y, x]

    def set(self, x, y, status):
        self.buf[y, x] = status

    def check(self):
        """Reject buffers the retrieval cannot walk safely."""
        if self.width < 3 or self.height < 3:
            raise SkeletonError(f"Skeleton buffer too small: {self.width}x{self.height}")

        buf = self.buf
        border = np.concatenate((buf[0, :], buf[-1, :], buf[:, 0], buf[:, -1]))
        if np.any(border != Status.BACKGROUND):
            raise SkeletonError("Skeleton buffer border must be background")

        junctions = (buf == Status.JUNCTION) | (buf == Status.JUNCTION_PROCESSED)
        if np.any(junctions):
            lonely = junctions & (neighbor_counts(buf != Status.BACKGROUND) == 0)
            if np.any(lonely):
                y, x = np.argwhere(lonely)[0]
                raise SkeletonError(f"Junction without neighbor at ({x}, {y})")

    def register_arc(self, arc):
        """Keep a traced arc, indexed under both its end pixels."""
        index = self._add(arc)
        for end in arc.ends:
            self.arcs_map.setdefault(end, []).append(index)
            self.arcs_ends.append(end)
        return index

    def register_link(self, arc):
        """Keep a junction-to-junction link, indexed under both junctions."""
        index = self._add(arc)
        for end in arc.ends:
            self.arcs_map.setdefault(end, []).append(index)
        return index

    def _add(self, arc):
        arc.index = len(self.arcs)
        self.arcs.append(arc)
        return arc.index

    def sort_ends(self):
        self.arcs_ends.sort(key=lambda point: point[0])

    def arcs_at(self, point):
        """Arcs having an end at point."""
        return [self.arcs[index] for index in self.arcs_map.get(tuple(point), [])]

    def ends_between(self, x_min, x_max):
        """Kept arc end points with x_min <= x <= x_max (arcs_ends must be sorted)."""
        xs = [point[0] for point in self.arcs_ends]
        lo = int(np.searchsorted(xs, x_min, side="left"))
        hi = int(np.searchsorted(xs, x_max, side="right"))
        return self.arcs_ends[lo:hi]

    def count(self, status):
        return int(np.sum(self.buf == status))

    def describe(self):
        return f"Skeleton({self.width}x{self.height}, arcs={len(self.arcs)})"


@trace(label="build_skeleton")
def build_skeleton(binary_img, debug_writer=None):
    """
    Thin a binary image (foreground > 0) into a status-coded Skeleton.

    Foreground skeleton pixels become ARC, those where three or more
    branches meet become JUNCTION. The 1-pixel image border is cleared.
    """
    tracer = get_tracer()

    with tracer.span("skeletonize", module="skeleton"):
        thin = skeletonize(binary_img > 0)
        thin[0, :] = False
        thin[-1, :] = False
        thin[:, 0] = False
        thin[:, -1] = False
        tracer.event(f"Skeleton pixels: {int(thin.sum())}")

    with tracer.span("classify_pixels", module="skeleton"):
        junctions = thin & (crossing_numbers(thin) >= 3)
        buf = np.full(thin.shape, Status.BACKGROUND, dtype=np.uint8)
        buf[thin] = Status.ARC
        buf[junctions] = Status.JUNCTION
        tracer.event(f"Junction pixels: {int(junctions.sum())}")

    skeleton = Skeleton(buf)

    if debug_writer:
        debug_writer.save_image(thin.astype(np.uint8) * 255, "skeleton", "01_skeleton.png")
        junction_points = [((x, y), 3) for y, x in np.argwhere(junctions)]
        debug_writer.save_overlay(
            thin.astype(np.uint8) * 255,
            "skeleton",
            "02_junctions_overlay.png",
            points=junction_points,
        )
        debug_writer.save_json(
            {
                "skeleton_pixels": int(thin.sum()),
                "junction_pixels": int(junctions.sum()),
            },
            "skeleton",
            "skeleton_metrics.json",
        )

    return skeleton


def crossing_numbers(mask):
    """
    Number of background-to-foreground transitions around each pixel's
    8-neighborhood ring (N, NE, E, SE, S, SW, W, NW).
    """
    ring = _rings(mask)
    transitions = np.zeros(mask.shape, dtype=np.uint8)
    for current, following in zip(ring, ring[1:] + ring[:1]):
        transitions += (current == 0) & (following == 1)
    return transitions


def neighbor_counts(mask):
    """Number of foreground pixels in each pixel's 8-neighborhood."""
    return sum(ring.astype(np.uint8) for ring in _rings(mask))


def _rings(mask):
    """Shifted views of mask, one per direction, aligned on the center pixel."""
    padded = np.pad(mask.astype(np.uint8), 1)
    height, width = mask.shape
    return [
        padded[1 + DYS[d]:1 + DYS[d] + height, 1 + DXS[d]:1 + DXS[d] + width]
        for d in ALL_DIRS
    ]
