"""
Wedge building for omr-curves.

Wedges look like hair pins, composed of two converging lines of similar
length, rather horizontal. A lookup area on the left end of each segment
finds crescendo partners, one on the right end finds diminuendo partners.
"""

import math
from dataclasses import dataclass

from omrcurves.models import (
    GradeImpacts,
    LookupArea,
    WedgeInter,
    WedgeShape,
    compute_bbox_from_bboxes,
    generate_wedge_id,
)
from omrcurves.tracer import get_tracer, trace

IMPACT_NAMES = ["s1", "s2", "closedDy", "openDy", "openBias"]


@dataclass(frozen=True)
class WedgeParameters:
    """Pre-scaled wedge thresholds."""
    closed_max_dx: int
    closed_max_dy: int
    open_min_dy_low: int
    open_min_dy_high: int
    open_max_bias: float  # tangent
    min_grade: float
    intrinsic_ratio: float
    weights: tuple

    @classmethod
    def from_config(cls, wedge_config, scale):
        return cls(
            closed_max_dx=scale.to_pixels(wedge_config.closed_max_dx),
            closed_max_dy=scale.to_pixels(wedge_config.closed_max_dy),
            open_min_dy_low=scale.to_pixels(wedge_config.open_min_dy_low),
            open_min_dy_high=scale.to_pixels(wedge_config.open_min_dy_high),
            open_max_bias=math.tan(math.radians(wedge_config.open_max_bias)),
            min_grade=wedge_config.min_grade,
            intrinsic_ratio=wedge_config.intrinsic_ratio,
            weights=tuple(wedge_config.weights),
        )


class WedgesBuilder:
    """Pairs converging segments of a sheet into wedges."""

    def __init__(self, sheet, params):
        self.sheet = sheet
        self.params = params
        self.tracer = get_tracer()

    @trace(label="build_wedges")
    def build_wedges(self, segments):
        """
        Match segments pairwise into wedges.

        Matched segments are removed from the segments list in place.
        Returns the list of WedgeInter objects created.
        """
        wedges = []

        for reverse in (True, False):
            shape = WedgeShape.CRESCENDO if reverse else WedgeShape.DIMINUENDO
            with self.tracer.span(f"pass_{shape.value}", module="wedges"):
                created, survivors = self._match(segments, reverse)
                self.tracer.event(f"{shape.value}: {len(created)} wedges")
            wedges.extend(created)

            # Survivors stay in pass order, so the next sort breaks ties by this one
            segments[:] = survivors

        return wedges

    def _match(self, segments, reverse):
        """
        One directional pass over the pool, sorted on the matching end.

        Returns the wedges created and the unmatched segments in sorted order.
        """
        pool = sorted(segments, key=lambda s: s.get_end(reverse)[0])
        active = [True] * len(pool)
        created = []

        for index, s1 in enumerate(pool):
            if not active[index]:
                continue

            area = self.get_area(s1, reverse)
            x_max = area.max_x

            for other in range(index + 1, len(pool)):
                if not active[other]:
                    continue

                s2 = pool[other]
                s_end = s2.get_end(reverse)

                if area.contains(s_end):
                    impacts = self.compute_impacts(s1, s2, reverse)

                    if impacts is not None and impacts.grade >= self.params.min_grade:
                        created.append(self.create_wedge(s1, s2, reverse, impacts))
                        active[index] = False
                        active[other] = False
                        break
                elif s_end[0] > x_max:
                    break  # Since pool is sorted by abscissa

        survivors = [s for s, live in zip(pool, active) if live]
        return created, survivors

    def get_area(self, segment, reverse):
        """Lookup area around the matching end, recorded on the segment."""
        params = self.params
        end_x, end_y = segment.get_end(reverse)
        grow = (1 + params.closed_max_dy) // 2

        area = LookupArea(
            x=end_x if reverse else end_x - params.closed_max_dx + 1,
            y=end_y - grow,
            width=params.closed_max_dx,
            height=2 * grow,
        )
        segment.add_attachment("<" if reverse else ">", area)
        return area

    def compute_impacts(self, s1, s2, reverse):
        """Pairwise compatibility impacts, None when a hard bound is violated."""
        params = self.params

        # Intrinsic segments impacts
        d1 = s1.grade / s1.impacts.intrinsic_ratio
        d2 = s2.grade / s2.impacts.intrinsic_ratio

        # Max dy of closed ends
        c1 = s1.get_end(reverse)
        c2 = s2.get_end(reverse)
        closed_dy = abs(c1[1] - c2[1])

        if closed_dy > params.closed_max_dy:
            return None

        c_dy = 1 - closed_dy / params.closed_max_dy if params.closed_max_dy else 1.0

        # Min dy of open ends
        open1 = s1.get_end(not reverse)
        open2 = s2.get_end(not reverse)
        open_dy = abs(open1[1] - open2[1])

        if open_dy < params.open_min_dy_low:
            return None

        span = params.open_min_dy_high - params.open_min_dy_low
        o_dy = min(1.0, (open_dy - params.open_min_dy_low) / span) if span > 0 else 1.0

        # Open ends rather aligned vertically
        inv_slope = abs(inverted_slope(open1, open2))

        if inv_slope > params.open_max_bias:
            return None

        o_bias = 1 - inv_slope / params.open_max_bias if params.open_max_bias else 1.0

        return GradeImpacts(
            names=list(IMPACT_NAMES),
            values=[d1, d2, c_dy, o_dy, o_bias],
            weights=list(params.weights),
            intrinsic_ratio=params.intrinsic_ratio,
        )

    def create_wedge(self, s1, s2, reverse, impacts):
        """Build the wedge and insert it in the system closest to its closed end."""
        shape = WedgeShape.CRESCENDO if reverse else WedgeShape.DIMINUENDO

        l1 = (s1.get_end(True), s1.get_end(False))
        l2 = (s2.get_end(True), s2.get_end(False))

        # s1 and s2 come in no particular order
        if shape == WedgeShape.CRESCENDO:
            swap = l2[1][1] < l1[1][1]
        else:
            swap = l2[0][1] < l1[0][1]

        if swap:
            l1, l2 = l2, l1

        segment_ids = [s1.segment_id, s2.segment_id]
        wedge = WedgeInter(
            wedge_id=generate_wedge_id(shape.value, segment_ids),
            shape=shape,
            line1=[list(l1[0]), list(l1[1])],
            line2=[list(l2[0]), list(l2[1])],
            bbox=compute_bbox_from_bboxes([s1.bbox, s2.bbox]),
            impacts=impacts,
            segment_ids=segment_ids,
        )

        ref_point = l1[0] if shape == WedgeShape.CRESCENDO else l1[1]
        staff, sig = self.sheet.get_symbol_graph(ref_point)
        if staff is not None:
            wedge.staff_id = staff.staff_id
        sig.add_vertex(wedge)

        self.tracer.event(f"Wedge {shape.value} {wedge.wedge_id} grade={wedge.grade:.3f}", level="DEBUG")
        return wedge


def inverted_slope(p1, p2):
    """dx/dy between two points, infinite when horizontal."""
    dy = p2[1] - p1[1]
    if dy == 0:
        return math.inf
    return (p2[0] - p1[0]) / dy
