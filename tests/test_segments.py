"""Tests for promotion of straight arcs to segments."""

import pytest


def _scan(buf, interline):
    from omrcurves.config import RetrieverConfig
    from omrcurves.sheet.scale import Scale
    from omrcurves.skeleton.arc_retriever import ArcRetriever, RetrieverParameters
    from omrcurves.skeleton.skeleton import Skeleton

    params = RetrieverParameters.from_config(RetrieverConfig(), Scale(interline))
    return ArcRetriever(Skeleton(buf), params).scan_image()


def _params(interline, **overrides):
    from omrcurves.config import PipelineConfig
    from omrcurves.curves.segments import SegmentParameters
    from omrcurves.sheet.scale import Scale

    config = PipelineConfig()
    for key, value in overrides.items():
        setattr(config.segments, key, value)
    return SegmentParameters.from_config(config, Scale(interline))


class TestBuildSegments:
    """Tests for build_segments."""

    def test_line_arc_promoted(self, make_buffer):
        """Test that a LINE arc becomes a left-to-right segment."""
        from omrcurves.curves.segments import build_segments

        arcs = _scan(make_buffer(60, 11, arcs=[(x, 5) for x in range(5, 45)]), 20)
        segments = build_segments(arcs, _params(20))

        assert len(segments) == 1
        segment = segments[0]
        assert segment.left == [5, 5]
        assert segment.right == [44, 5]
        assert segment.bbox == [5, 5, 44, 5]
        assert segment.arc_index == arcs[0].index
        assert segment.grade == pytest.approx(0.8)
        assert segment.get_end(True) == (5, 5)
        assert segment.get_end(False) == (44, 5)

    def test_ends_ordered_by_abscissa(self, make_buffer):
        """Test that a rising line still has its left end first."""
        from omrcurves.curves.segments import build_segments

        points = [(5 + i, 30 - i // 3) for i in range(45)]
        arcs = _scan(make_buffer(60, 40, arcs=points), 20)
        segments = build_segments(arcs, _params(20))

        assert len(segments) == 1
        assert segments[0].left[0] < segments[0].right[0]

    def test_short_segment_dropped(self, make_buffer):
        """Test that a LINE shorter than the minimum length is dropped."""
        from omrcurves.curves.segments import build_segments

        arcs = _scan(make_buffer(60, 11, arcs=[(x, 5) for x in range(5, 45)]), 20)
        segments = build_segments(arcs, _params(20, min_length=3.0))

        assert segments == []

    def test_ids_are_deterministic(self, make_buffer):
        """Test that identical input gives identical segment ids."""
        from omrcurves.curves.segments import build_segments

        pixels = [(x, 5) for x in range(5, 45)]
        first = build_segments(_scan(make_buffer(60, 11, arcs=pixels), 20), _params(20))
        second = build_segments(_scan(make_buffer(60, 11, arcs=pixels), 20), _params(20))

        assert first[0].segment_id == second[0].segment_id
        assert first[0].segment_id.startswith("segment_")

    def test_debug_metrics(self, make_buffer, temp_dir):
        """Test that segment metrics are written when debugging."""
        import json
        import os

        from omrcurves.curves.segments import build_segments
        from omrcurves.io.save_artifacts import DebugArtifactWriter

        arcs = _scan(make_buffer(60, 11, arcs=[(x, 5) for x in range(5, 45)]), 20)
        build_segments(arcs, _params(20), DebugArtifactWriter(temp_dir, "page_test"))

        path = os.path.join(temp_dir, "debug", "page_test", "segments", "segments_metrics.json")
        with open(path, "r", encoding="utf-8") as f:
            metrics = json.load(f)
        assert metrics["num_segments"] == 1
