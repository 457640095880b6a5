"""
Segment building for omr-curves.

Promotes straight arcs (shape LINE) to segment symbols. A segment keeps its
two ends ordered left to right and an intrinsic grade derived from the
quality of its line fit, which the wedge builder later re-normalizes.
"""

import math
from dataclasses import dataclass

from omrcurves.models import GradeImpacts, SegmentInter, compute_bbox, generate_segment_id
from omrcurves.skeleton.arc import ArcShape
from omrcurves.tracer import get_tracer, trace


@dataclass(frozen=True)
class SegmentParameters:
    """Pixel thresholds of segment promotion."""
    min_length: float
    max_line_distance: float
    intrinsic_ratio: float
    min_grade: float

    @classmethod
    def from_config(cls, config, scale):
        return cls(
            min_length=scale.to_pixels_double(config.segments.min_length),
            max_line_distance=scale.to_pixels_double(config.retriever.max_line_distance),
            intrinsic_ratio=config.segments.intrinsic_ratio,
            min_grade=config.segments.min_grade,
        )


@trace(label="build_segments")
def build_segments(arcs, params, debug_writer=None):
    """
    Build segment symbols out of the LINE arcs.

    Returns list of SegmentInter objects, in arc order.
    """
    tracer = get_tracer()
    segments = []
    too_short = 0
    too_weak = 0

    for arc in arcs:
        if arc.shape != ArcShape.LINE or arc.model is None:
            continue

        left, right = sorted([arc.first, arc.last])
        if math.dist(left, right) < params.min_length:
            too_short += 1
            continue

        impacts = compute_segment_impacts(arc.model, params)
        if impacts.grade < params.min_grade:
            too_weak += 1
            continue

        segments.append(SegmentInter(
            segment_id=generate_segment_id(left, right),
            arc_index=arc.index,
            left=list(left),
            right=list(right),
            bbox=compute_bbox(arc.point_list()),
            impacts=impacts,
        ))

    tracer.event(f"Built {len(segments)} segments (too short: {too_short}, too weak: {too_weak})")

    if debug_writer:
        metrics = {
            "num_segments": len(segments),
            "rejected_short": too_short,
            "rejected_grade": too_weak,
            "avg_grade": sum(s.grade for s in segments) / len(segments) if segments else 0,
        }
        debug_writer.save_json(metrics, "segments", "segments_metrics.json")

    return segments


def compute_segment_impacts(line, params):
    """Straightness impact: 1 for a perfect fit, 0 at the max line distance."""
    if params.max_line_distance > 0:
        dist = max(0.0, 1.0 - line.mean_distance / params.max_line_distance)
    else:
        dist = 1.0 if line.mean_distance == 0 else 0.0

    return GradeImpacts(
        names=["dist"],
        values=[dist],
        weights=[1.0],
        intrinsic_ratio=params.intrinsic_ratio,
    )
