"""
Arc: a traced chain of skeleton pixels between two structural ends.
"""

from collections import deque
from enum import IntEnum


class ArcShape(IntEnum):
    """Classification of a traced arc. The ordinal is stored in end pixels."""
    SHORT = 0
    STAFF_ARC = 1
    LINE = 2
    SLUR = 3
    IRRELEVANT = 4

    @property
    def is_relevant(self):
        """Worth keeping for the curve stages."""
        return self in (ArcShape.STAFF_ARC, ArcShape.LINE, ArcShape.SLUR)


class Arc:
    """
    Ordered sequence of (x, y) pixels, from one physical end to the other.

    A forward walk appends at the tail and ends on the stop junction if any;
    a reverse walk prepends at the head and ends on the start junction.
    An arc without points is a link between two touching junctions.
    """

    def __init__(self, start_junction=None, stop_junction=None):
        self.points = deque()
        self.start_junction = start_junction
        self.stop_junction = stop_junction
        self.shape = None
        self.model = None
        self.index = None

    def add_point(self, point, reverse=False):
        if reverse:
            self.points.appendleft(point)
        else:
            self.points.append(point)

    def set_junction(self, point, reverse):
        if reverse:
            self.start_junction = point
        else:
            self.stop_junction = point

    def get_junction(self, reverse):
        return self.start_junction if reverse else self.stop_junction

    @property
    def length(self):
        return len(self.points)

    @property
    def first(self):
        return self.points[0]

    @property
    def last(self):
        return self.points[-1]

    @property
    def ends(self):
        """Distinct end coordinates: pixels for a traced arc, junctions for a link."""
        if self.is_link:
            return [self.start_junction, self.stop_junction]
        if self.first == self.last:
            return [self.first]
        return [self.first, self.last]

    @property
    def is_link(self):
        return not self.points

    def point_list(self):
        return list(self.points)

    def describe(self):
        shape = self.shape.name if self.shape is not None else "?"
        if self.is_link:
            return f"Arc(link {self.start_junction}-{self.stop_junction})"
        return f"Arc({shape}, len={self.length}, {self.first}->{self.last})"

    def __repr__(self):
        return self.describe()
