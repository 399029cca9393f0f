"""
TractShift - Core Geo Exports.

Interpolators are loaded lazily: they depend on core.zones, which itself
depends on the validation helpers in .utils.
"""
import importlib
from typing import List

from .utils import (
    ensure_projected, check_same_crs, validate_geometries,
    repair_geometries, to_projected, to_local_utm,
)

_LAZY_IMPORTS = {
    "Interpolator": ".interpolation",
    "AreaWeightedInterpolator": ".interpolation",
    "PopulationWeightedInterpolator": ".interpolation",
    "interpolate_area_weighted": ".interpolation",
    "interpolate_population_weighted": ".interpolation",
    "make_interpolator": ".interpolation",
}

__all__ = [
    "ensure_projected", "check_same_crs", "validate_geometries",
    "repair_geometries", "to_projected", "to_local_utm",
    *_LAZY_IMPORTS,
]


def __getattr__(name: str):
    """Lazily import modules when their attributes are requested."""
    if name in _LAZY_IMPORTS:
        module = importlib.import_module(_LAZY_IMPORTS[name], package=__name__)
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> List[str]:
    """Expose lazy attributes to dir() for autocompletion."""
    return sorted(list(globals().keys()) + list(_LAZY_IMPORTS.keys()))
