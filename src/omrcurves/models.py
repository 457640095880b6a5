"""
Pydantic data models for omr-curves symbols and reports.

Fitted geometric models, grade impacts, segment and wedge symbols, and the
per-page report all flow through these validated models. Content-based ID
generation keeps outputs deterministic across runs.
"""

import hashlib
import math
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class WedgeShape(str, Enum):
    """Hairpin orientation."""
    CRESCENDO = "crescendo"
    DIMINUENDO = "diminuendo"


class LineModel(BaseModel):
    """Best-fit straight line through a point sequence."""
    centroid: List[float] = Field(..., min_length=2, max_length=2)
    direction: List[float] = Field(..., min_length=2, max_length=2)  # unit vector
    mean_distance: float = 0.0
    n_points: int = 0

    model_config = ConfigDict(extra="forbid")

    @property
    def slope(self):
        """dy/dx, infinite for a vertical line."""
        ux, uy = self.direction
        if ux == 0:
            return math.inf
        return uy / ux

    @property
    def inverted_slope(self):
        """dx/dy, infinite for a horizontal line."""
        ux, uy = self.direction
        if uy == 0:
            return math.inf
        return ux / uy


class CircleModel(BaseModel):
    """Best-fit circle through a point sequence."""
    center: List[float] = Field(..., min_length=2, max_length=2)
    radius: float
    mean_distance: float = 0.0
    n_points: int = 0

    model_config = ConfigDict(extra="forbid")


class GradeImpacts(BaseModel):
    """
    Named [0, 1] sub-scores combined into a single grade.

    The grade is the weighted geometric mean of the impacts, scaled by the
    intrinsic ratio.
    """
    names: List[str]
    values: List[float]
    weights: List[float]
    intrinsic_ratio: float = 0.8

    model_config = ConfigDict(extra="forbid")

    @property
    def grade(self):
        total_weight = sum(self.weights)
        if total_weight <= 0:
            return 0.0
        product = 1.0
        for value, weight in zip(self.values, self.weights):
            product *= max(0.0, value) ** weight
        return self.intrinsic_ratio * product ** (1.0 / total_weight)

    def get(self, name):
        """Impact value by name."""
        return self.values[self.names.index(name)]

    def as_dict(self):
        return {name: round(value, 4) for name, value in zip(self.names, self.values)}


class LookupArea(BaseModel):
    """Axis-aligned pixel rectangle with half-open containment."""
    x: int
    y: int
    width: int
    height: int

    model_config = ConfigDict(extra="forbid")

    @property
    def max_x(self):
        return self.x + self.width

    @property
    def max_y(self):
        return self.y + self.height

    def contains(self, point):
        px, py = point
        return self.x <= px < self.max_x and self.y <= py < self.max_y


class SegmentInter(BaseModel):
    """A straight arc promoted to symbol status, eligible for pairing."""
    segment_id: str
    arc_index: int
    left: List[int] = Field(..., min_length=2, max_length=2)
    right: List[int] = Field(..., min_length=2, max_length=2)
    bbox: List[int] = Field(default_factory=lambda: [0, 0, 0, 0])
    impacts: GradeImpacts
    attachments: Dict[str, LookupArea] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

    @property
    def grade(self):
        return self.impacts.grade

    def get_end(self, reverse):
        """Left end when reverse, right end otherwise."""
        end = self.left if reverse else self.right
        return (end[0], end[1])

    def add_attachment(self, key, area):
        self.attachments[key] = area


class WedgeInter(BaseModel):
    """A hairpin assembled from two converging segments."""
    wedge_id: str
    shape: WedgeShape
    line1: List[List[float]]
    line2: List[List[float]]
    bbox: List[int] = Field(default_factory=lambda: [0, 0, 0, 0])
    impacts: GradeImpacts
    segment_ids: List[str] = Field(default_factory=list)
    staff_id: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    @property
    def grade(self):
        return self.impacts.grade


class ArcSummary(BaseModel):
    """Report entry for one kept arc."""
    arc_index: int
    shape: str
    length: int
    first: List[int]
    last: List[int]
    start_junction: Optional[List[int]] = None
    stop_junction: Optional[List[int]] = None
    model: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class PageReport(BaseModel):
    """Summary of one processed page."""
    page_id: str
    source_path: str = ""
    width: int
    height: int
    interline: float
    skew_slope: float = 0.0
    staff_count: int = 0
    shape_counts: Dict[str, int] = Field(default_factory=dict)
    arcs: List[ArcSummary] = Field(default_factory=list)
    segments: List[SegmentInter] = Field(default_factory=list)
    wedges: List[WedgeInter] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


# ID generation functions for deterministic outputs

def generate_segment_id(left, right):
    """Generate deterministic segment ID from its two ends."""
    data = f"{list(left)}:{list(right)}"
    h = hashlib.sha256(data.encode()).hexdigest()[:12]
    return f"segment_{h}"


def generate_wedge_id(shape, segment_ids):
    """Generate deterministic wedge ID from its shape and sorted segment IDs."""
    data = f"{shape}:" + ":".join(sorted(segment_ids))
    h = hashlib.sha256(data.encode()).hexdigest()[:12]
    return f"wedge_{h}"


def generate_page_id(source_path, index):
    """Generate deterministic page ID from source path and index."""
    data = f"{source_path}:{index}"
    h = hashlib.sha256(data.encode()).hexdigest()[:12]
    return f"page_{h}"


def compute_bbox(points):
    """
    Compute inclusive pixel bounding box from a list of (x, y) points.

    Returns [min_x, min_y, max_x, max_y].
    """
    if not points:
        return [0, 0, 0, 0]

    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return [min(xs), min(ys), max(xs), max(ys)]


def compute_bbox_from_bboxes(bboxes):
    """
    Compute combined bounding box from multiple bboxes.

    Each bbox is [min_x, min_y, max_x, max_y].
    """
    if not bboxes:
        return [0, 0, 0, 0]

    min_x = min(b[0] for b in bboxes)
    min_y = min(b[1] for b in bboxes)
    max_x = max(b[2] for b in bboxes)
    max_y = max(b[3] for b in bboxes)
    return [min_x, min_y, max_x, max_y]
