"""
TractShift - Error Hierarchy.
"""
from typing import Hashable, Iterable, List, Optional


class TractShiftError(Exception):
    """Base class for all library errors."""


class GeometryError(TractShiftError):
    """Raised for null, empty, non-polygonal or invalid zone geometries."""

    def __init__(self, message: str, zone_ids: Optional[Iterable[Hashable]] = None):
        self.zone_ids: List[Hashable] = list(zone_ids or [])
        super().__init__(message)


class ProjectionError(TractShiftError):
    """Raised when a zone set has no CRS or a geographic (lat/lon) CRS."""


class ProjectionMismatchError(ProjectionError):
    """Raised when zone sets that must be overlaid carry different CRS."""

    def __init__(self, left, right, what: str = "origin and target"):
        self.left = left
        self.right = right
        super().__init__(
            f"CRS mismatch between {what}: {left} != {right}. "
            "Reproject explicitly (e.g. gdf.to_crs(...)) before interpolating."
        )


class MissingEstimateError(TractShiftError):
    """
    Raised when zones of the later period have no interpolated estimate.

    Carries every unjoinable id in ``zone_ids`` so callers see the full set
    in one pass.
    """

    def __init__(self, zone_ids: Iterable[Hashable]):
        self.zone_ids: List[Hashable] = list(zone_ids)
        preview = ", ".join(str(z) for z in self.zone_ids[:10])
        more = "" if len(self.zone_ids) <= 10 else f" (+{len(self.zone_ids) - 10} more)"
        super().__init__(
            f"No estimate for {len(self.zone_ids)} zone(s): {preview}{more}"
        )
