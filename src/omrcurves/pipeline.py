"""
Main pipeline orchestrator for omr-curves.

Runs the page stages sequentially: binarize, staves and scale, skeleton,
arc retrieval, segments, wedges. Each page is processed independently and
summarized into a PageReport.
"""

import os
from collections import Counter
from dataclasses import dataclass, field
from typing import List

from omrcurves.config import load_config
from omrcurves.curves.segments import SegmentParameters, build_segments
from omrcurves.curves.wedges import WedgeParameters, WedgesBuilder
from omrcurves.geometry.fitting import FittingParameters, ModelFitter
from omrcurves.io.load_image import load_image, validate_image_inputs
from omrcurves.io.save_artifacts import DebugArtifactWriter, draw_arcs, draw_wedges, ensure_dir, save_json
from omrcurves.models import ArcSummary, PageReport, SegmentInter, WedgeInter, generate_page_id
from omrcurves.preprocess.binarize import binarize
from omrcurves.sheet.scale import Scale, Skew
from omrcurves.sheet.sheet import Sheet
from omrcurves.sheet.staves import StaffManager, build_systems, estimate_skew_slope, find_staves, remove_staff_lines
from omrcurves.skeleton.arc import Arc
from omrcurves.skeleton.arc_retriever import ArcRetriever, RetrieverParameters
from omrcurves.skeleton.skeleton import Skeleton, build_skeleton
from omrcurves.tracer import get_tracer, trace


@dataclass
class PageResult:
    """Everything produced for one page."""
    sheet: Sheet
    skeleton: Skeleton
    arcs: List[Arc] = field(default_factory=list)
    segments: List[SegmentInter] = field(default_factory=list)
    wedges: List[WedgeInter] = field(default_factory=list)
    report: PageReport = None


@trace(label="run_pipeline")
def run_pipeline(input_paths, out_dir, config=None, config_path=None, debug=False):
    """
    Run the full pipeline on every input page.

    Args:
        input_paths: list of input image file paths
        out_dir: output directory
        config: PipelineConfig object (optional)
        config_path: path to YAML config file (optional)
        debug: enable debug artifact generation

    Returns:
        list of PageReport objects, also saved to <out_dir>/report.json
    """
    tracer = get_tracer()

    if config is None:
        config = load_config(config_path)

    config.debug.enabled = debug

    errors = validate_image_inputs(input_paths)
    if errors:
        for error in errors:
            tracer.event(error, level="ERROR")
        raise ValueError(f"Input validation failed: {errors}")

    ensure_dir(out_dir)

    reports = []
    for idx, input_path in enumerate(input_paths):
        with tracer.span(f"process_page_{idx}", module="pipeline"):
            rgb_img, metadata = load_image(input_path)
            page_id = generate_page_id(metadata["source_path"], idx)

            debug_writer = DebugArtifactWriter(
                out_dir, page_id,
                enabled=config.debug.enabled,
                max_edge=config.debug.max_edge_scale,
            ) if config.debug.enabled else None

            result = process_page(rgb_img, config, page_id, debug_writer, source_path=input_path)
            reports.append(result.report)

    save_json(reports, os.path.join(out_dir, "report.json"))

    total_wedges = sum(len(report.wedges) for report in reports)
    tracer.event(f"Pipeline complete: {len(reports)} pages, {total_wedges} wedges")

    return reports


def process_page(rgb_img, config, page_id, debug_writer=None, source_path=""):
    """
    Process a single page image through all stages.

    Returns a PageResult.
    """
    tracer = get_tracer()
    height, width = rgb_img.shape[:2]

    with tracer.span("binarize", module="pipeline"):
        binary = binarize(rgb_img, config, debug_writer)

    with tracer.span("staves", module="pipeline"):
        staves, measured_interline, thickness = find_staves(binary, config)
        sheet = _build_sheet(page_id, width, height, staves, measured_interline, config)

        if staves and config.staves.remove_lines:
            binary = remove_staff_lines(binary, staves, thickness)
            if debug_writer:
                debug_writer.save_image(binary, "staves", "01_no_staff_lines.png")

    with tracer.span("skeleton", module="pipeline"):
        skeleton = build_skeleton(binary, debug_writer)

    with tracer.span("arcs", module="pipeline"):
        retriever = ArcRetriever(
            skeleton,
            RetrieverParameters.from_config(config.retriever, sheet.scale),
            skew=sheet.skew,
            staff_manager=sheet.staff_manager,
            model_fitter=ModelFitter(FittingParameters.from_config(config.fitting, sheet.scale)),
        )
        arcs = retriever.scan_image()

        if debug_writer:
            debug_writer.save_image(draw_arcs(binary // 4, arcs, config.debug.max_arcs), "arcs", "01_arcs_overlay.png")

    with tracer.span("segments", module="pipeline"):
        segments = build_segments(arcs, SegmentParameters.from_config(config, sheet.scale), debug_writer)

    with tracer.span("wedges", module="pipeline"):
        builder = WedgesBuilder(sheet, WedgeParameters.from_config(config.wedges, sheet.scale))
        wedges = builder.build_wedges(list(segments))

        if debug_writer:
            debug_writer.save_image(draw_wedges(binary // 4, segments, wedges), "wedges", "01_wedges_overlay.png")
            debug_writer.save_json(wedges, "wedges", "wedges.json")

    report = PageReport(
        page_id=page_id,
        source_path=str(source_path),
        width=width,
        height=height,
        interline=sheet.scale.interline,
        skew_slope=sheet.skew.slope,
        staff_count=len(staves),
        shape_counts=dict(Counter(arc.shape.name for arc in arcs)),
        arcs=[summarize_arc(arc) for arc in arcs],
        segments=segments,
        wedges=wedges,
    )

    return PageResult(sheet=sheet, skeleton=skeleton, arcs=arcs, segments=segments, wedges=wedges, report=report)


def _build_sheet(page_id, width, height, staves, measured_interline, config):
    """Resolve scale and skew (configured values win) and wire staves into systems."""
    tracer = get_tracer()

    interline = config.scale.interline or measured_interline
    if interline is None:
        interline = config.scale.default_interline
        tracer.event(f"Using default interline {interline}", level="WARN")

    slope = config.skew.slope
    if slope is None:
        slope = estimate_skew_slope(staves)

    systems = build_systems(staves)
    sheet = Sheet(
        page_id=page_id,
        width=width,
        height=height,
        scale=Scale(float(interline)),
        skew=Skew(float(slope)),
        staff_manager=StaffManager(staves),
        systems=systems,
    )
    tracer.event(f"Sheet: interline={sheet.scale.interline:.1f}, slope={sheet.skew.slope:.4f}")
    return sheet


def summarize_arc(arc):
    """Report entry for a kept arc."""
    return ArcSummary(
        arc_index=arc.index,
        shape=arc.shape.name,
        length=arc.length,
        first=list(arc.first),
        last=list(arc.last),
        start_junction=list(arc.start_junction) if arc.start_junction is not None else None,
        stop_junction=list(arc.stop_junction) if arc.stop_junction is not None else None,
        model=type(arc.model).__name__ if arc.model is not None else None,
    )
