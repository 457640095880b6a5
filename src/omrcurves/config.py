"""
Configuration management for omr-curves.

Loads YAML configuration with sensible defaults for all pipeline stages.
Length thresholds of the curve stages are expressed as fractions of the
staff interline and resolved to pixels once per page.
"""

import os
from dataclasses import asdict, dataclass, field, fields
from typing import Optional

import yaml


@dataclass
class BinarizationConfig:
    """Configuration for page binarization."""
    method: str = "otsu"  # "otsu" or "adaptive"
    denoise_kernel: int = 3
    morph_kernel: int = 0
    adaptive_block_size: int = 11
    adaptive_c: int = 2


@dataclass
class StaffConfig:
    """Configuration for the projection staff finder."""
    min_line_ratio: float = 0.5  # fraction of page width covered by a staff line row
    line_merge_gap: int = 1
    lines_per_staff: int = 5
    remove_lines: bool = True


@dataclass
class ScaleConfig:
    """Page scale, measured on staves unless forced."""
    interline: Optional[float] = None
    default_interline: float = 20.0


@dataclass
class SkewConfig:
    """Page skew, measured on staff lines unless forced."""
    slope: Optional[float] = None


@dataclass
class RetrieverConfig:
    """Configuration for arc retrieval and shape classification."""
    max_alpha: float = 2.5  # degrees, 3-point colinearity
    arc_min_quorum: float = 1.5
    max_line_distance: float = 0.1
    min_staff_arc_length: float = 0.5
    max_staff_arc_length: float = 5.0
    min_staff_line_distance: float = 0.15
    min_slope: float = 0.03  # (co)tangent


@dataclass
class FittingConfig:
    """Configuration for the line / circle model fitter."""
    max_circle_distance: float = 0.15
    min_circle_radius: float = 0.5
    max_circle_radius: float = 50.0
    max_line_distance: float = 0.1
    refine: bool = True


@dataclass
class SegmentConfig:
    """Configuration for promoting straight arcs to segments."""
    min_length: float = 1.0
    intrinsic_ratio: float = 0.8
    min_grade: float = 0.1


@dataclass
class WedgeConfig:
    """Configuration for wedge (hairpin) assembly."""
    closed_max_dx: float = 0.2
    closed_max_dy: float = 0.5
    open_min_dy_low: float = 0.5
    open_min_dy_high: float = 1.5
    open_max_bias: float = 20.0  # degrees
    min_grade: float = 0.1
    intrinsic_ratio: float = 0.8
    weights: list = field(default_factory=lambda: [1.0, 1.0, 1.0, 1.0, 1.0])


@dataclass
class TracingConfig:
    """Configuration for runtime tracing."""
    enabled: bool = False
    level: str = "INFO"
    file_path: str = None
    json_output: bool = False


@dataclass
class DebugConfig:
    """Configuration for debug artifact generation."""
    enabled: bool = False
    max_arcs: int = 500
    max_edge_scale: int = 1600


@dataclass
class PipelineConfig:
    """Complete pipeline configuration."""
    binarization: BinarizationConfig = field(default_factory=BinarizationConfig)
    staves: StaffConfig = field(default_factory=StaffConfig)
    scale: ScaleConfig = field(default_factory=ScaleConfig)
    skew: SkewConfig = field(default_factory=SkewConfig)
    retriever: RetrieverConfig = field(default_factory=RetrieverConfig)
    fitting: FittingConfig = field(default_factory=FittingConfig)
    segments: SegmentConfig = field(default_factory=SegmentConfig)
    wedges: WedgeConfig = field(default_factory=WedgeConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)


SECTIONS = [f.name for f in fields(PipelineConfig)]


def load_config(config_path=None):
    """
    Load configuration from YAML file.

    Falls back to defaults for any missing values.
    """
    config = PipelineConfig()

    if config_path and os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        config = _merge_config(config, yaml_data)

    return config


def _merge_config(config, yaml_data):
    """Merge YAML data into config dataclass, ignoring unknown keys."""
    for section in SECTIONS:
        values = yaml_data.get(section)
        if not isinstance(values, dict):
            continue
        target = getattr(config, section)
        for key, value in values.items():
            if hasattr(target, key):
                setattr(target, key, value)

    return config


def save_default_config(path):
    """Save default configuration to YAML file for reference."""
    config = PipelineConfig()
    yaml_data = {section: asdict(getattr(config, section)) for section in SECTIONS}

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(yaml_data, f, default_flow_style=False, sort_keys=False)
