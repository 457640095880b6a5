"""
Staff geometry for omr-curves.

Finds staff lines with a horizontal projection profile, groups them into
staves, and answers the staff queries needed by the curve stages: closest
staff line of a point, staff at a point, closest staff of a point.
"""

import numpy as np
from shapely.geometry import LineString, Point, Polygon

from omrcurves.sheet.sig import SymbolGraph
from omrcurves.tracer import get_tracer, trace


class StaffLine:
    """One staff line, modelled as y = intercept + slope * x over [x1, x2]."""

    def __init__(self, x1, x2, intercept, slope=0.0, thickness=1):
        self.x1 = int(x1)
        self.x2 = int(x2)
        self.intercept = float(intercept)
        self.slope = float(slope)
        self.thickness = int(thickness)
        self.geometry = LineString([(self.x1, self.y_at(self.x1)), (self.x2, self.y_at(self.x2))])

    def y_at(self, x):
        return self.intercept + self.slope * x

    def __repr__(self):
        return f"StaffLine(x={self.x1}..{self.x2}, y0={self.intercept:.1f}, slope={self.slope:.4f})"


class Staff:
    """A group of staff lines, ordered top to bottom."""

    def __init__(self, staff_id, lines, interline):
        self.staff_id = staff_id
        self.lines = sorted(lines, key=lambda line: line.y_at(line.x1))
        self.interline = interline
        self.system = None

        top = self.lines[0].geometry.coords
        bottom = self.lines[-1].geometry.coords
        self.area = Polygon([top[0], top[1], bottom[1], bottom[0]])

    @property
    def left(self):
        return min(line.x1 for line in self.lines)

    @property
    def right(self):
        return max(line.x2 for line in self.lines)

    def top_y(self, x):
        return self.lines[0].y_at(x)

    def bottom_y(self, x):
        return self.lines[-1].y_at(x)

    def closest_line(self, point):
        """Staff line vertically closest to the point."""
        x, y = point
        return min(self.lines, key=lambda line: abs(y - line.y_at(x)))

    def distance(self, point):
        """Euclidean distance from point to the staff area, 0 inside."""
        return self.area.distance(Point(point))

    def __repr__(self):
        return f"Staff({self.staff_id}, lines={len(self.lines)})"


class System:
    """A system of staves, owner of a symbol interpretation graph."""

    def __init__(self, system_id, staves):
        self.system_id = system_id
        self.staves = staves
        self.sig = SymbolGraph(system_id)
        for staff in staves:
            staff.system = self


class StaffManager:
    """Staff queries over all staves of a page."""

    def __init__(self, staves):
        self.staves = list(staves)

    def get_staff_at(self, point):
        """
        Staff whose vertical range, widened by one interline on each side,
        contains the point; the closest staff otherwise.
        """
        if not self.staves:
            return None

        x, y = point
        for staff in self.staves:
            if staff.top_y(x) - staff.interline <= y <= staff.bottom_y(x) + staff.interline:
                return staff

        return self.get_closest_staff(point)

    def get_closest_staff(self, point):
        if not self.staves:
            return None
        return min(self.staves, key=lambda staff: staff.distance(point))

    def __len__(self):
        return len(self.staves)


@trace(label="find_staves")
def find_staves(binary_img, config):
    """
    Find staves in a binary image (foreground 255).

    Returns (staves, interline, line_thickness); staves is empty and
    interline None when no regular group of lines is found.
    """
    tracer = get_tracer()
    staff_config = config.staves

    height, width = binary_img.shape
    ink = binary_img > 0
    projection = np.sum(ink, axis=1)
    rows = np.flatnonzero(projection >= staff_config.min_line_ratio * width)

    bands = _group_rows(rows, staff_config.line_merge_gap)
    lines = [_fit_line(ink, top, bottom) for top, bottom in bands]
    lines = [line for line in lines if line is not None]
    tracer.event(f"Staff line candidates: {len(lines)}")

    groups = _group_lines(lines, staff_config.lines_per_staff)
    if not groups:
        tracer.event("No staff found", level="WARN")
        return [], None, 0

    spacings = []
    for group in groups:
        ys = [line.y_at(width / 2) for line in group]
        spacings.extend(np.diff(ys))
    if not spacings:
        tracer.event("Single-line staves, interline unknown", level="WARN")
        return [], None, 0
    interline = float(np.median(spacings))
    thickness = int(np.median([line.thickness for group in groups for line in group]))

    staves = [
        Staff(f"staff_{index}", group, interline)
        for index, group in enumerate(groups)
    ]
    tracer.event(f"Staves: {len(staves)}, interline={interline:.1f}, thickness={thickness}")

    return staves, interline, thickness


def build_systems(staves):
    """One system per staff."""
    return [System(f"system_{index}", [staff]) for index, staff in enumerate(staves)]


def estimate_skew_slope(staves):
    """Mean slope of all staff lines, 0 when there is none."""
    slopes = [line.slope for staff in staves for line in staff.lines]
    if not slopes:
        return 0.0
    return float(np.mean(slopes))


def remove_staff_lines(binary_img, staves, thickness):
    """
    Erase staff line pixels that are not part of a crossing symbol.

    A vertical ink run through the line is erased only when it is no taller
    than the line thickness (plus one pixel of tolerance).
    """
    cleaned = binary_img.copy()
    height = cleaned.shape[0]
    max_run = max(1, thickness) + 1

    for staff in staves:
        for line in staff.lines:
            for x in range(line.x1, line.x2 + 1):
                y = int(round(line.y_at(x)))
                if not 0 <= y < height or cleaned[y, x] == 0:
                    continue
                top = y
                while top > 0 and cleaned[top - 1, x] > 0:
                    top -= 1
                bottom = y
                while bottom < height - 1 and cleaned[bottom + 1, x] > 0:
                    bottom += 1
                if bottom - top + 1 <= max_run:
                    cleaned[top:bottom + 1, x] = 0

    return cleaned


def _group_rows(rows, max_gap):
    """Group sorted row indices into (top, bottom) bands."""
    bands = []
    for row in rows:
        if bands and row - bands[-1][1] <= max_gap:
            bands[-1][1] = row
        else:
            bands.append([row, row])
    return [(top, bottom) for top, bottom in bands]


def _fit_line(ink, top, bottom):
    """Fit a staff line through the ink of a row band."""
    band = ink[top:bottom + 1]
    columns = np.flatnonzero(band.any(axis=0))
    if len(columns) < 2:
        return None

    # longest contiguous run of inked columns
    breaks = np.flatnonzero(np.diff(columns) > 1)
    starts = np.concatenate(([0], breaks + 1))
    ends = np.concatenate((breaks, [len(columns) - 1]))
    longest = int(np.argmax(ends - starts))
    x1 = int(columns[starts[longest]])
    x2 = int(columns[ends[longest]])

    xs = np.arange(x1, x2 + 1)
    weights = band[:, x1:x2 + 1].astype(np.float64)
    counts = weights.sum(axis=0)
    valid = counts > 0
    row_ids = np.arange(top, bottom + 1, dtype=np.float64)[:, None]
    centers = (weights * row_ids).sum(axis=0)[valid] / counts[valid]

    if valid.sum() >= 2:
        slope, intercept = np.polyfit(xs[valid], centers, 1)
    else:
        slope, intercept = 0.0, (top + bottom) / 2.0

    return StaffLine(x1, x2, intercept, slope, thickness=bottom - top + 1)


def _group_lines(lines, lines_per_staff):
    """Chunk lines, top to bottom, into groups of regularly spaced lines."""
    lines = sorted(lines, key=lambda line: line.y_at(line.x1))
    groups = []
    index = 0

    while index + lines_per_staff <= len(lines):
        group = lines[index:index + lines_per_staff]
        mids = [line.y_at((line.x1 + line.x2) / 2) for line in group]
        gaps = np.diff(mids)
        if len(gaps) == 0 or (gaps.min() > 0 and gaps.max() <= 1.5 * gaps.min()):
            groups.append(group)
            index += lines_per_staff
        else:
            index += 1

    return groups
