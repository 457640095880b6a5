"""
Sheet: the per-page context shared by the curve stages.
"""

from dataclasses import dataclass, field
from typing import List

from omrcurves.sheet.scale import Scale, Skew
from omrcurves.sheet.sig import SymbolGraph
from omrcurves.sheet.staves import StaffManager, System


@dataclass
class Sheet:
    """Page geometry and services: scale, skew, staves and systems."""
    page_id: str
    width: int
    height: int
    scale: Scale
    skew: Skew = field(default_factory=Skew)
    staff_manager: StaffManager = field(default_factory=lambda: StaffManager([]))
    systems: List[System] = field(default_factory=list)
    page_sig: SymbolGraph = field(default_factory=lambda: SymbolGraph("page"))

    def get_symbol_graph(self, point):
        """
        (staff, graph) for the system owning the staff closest to point.

        Pages without staves fall back to the page-level graph.
        """
        staff = self.staff_manager.get_closest_staff(point)
        if staff is None or staff.system is None:
            return None, self.page_sig
        return staff, staff.system.sig
