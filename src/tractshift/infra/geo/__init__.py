"""
TractShift - Geo Infrastructure Exports.

Uses lazy loading so importing the package does not pull in the HTTP stack.
"""
import importlib
from typing import List

__all__ = [
    "fetch_boundaries",
    "resolve_state",
    "resolve_counties",
    "state_abbreviation",
]

_LAZY_IMPORTS = {
    "fetch_boundaries": ".tiger",
    "resolve_state": ".resolver",
    "resolve_counties": ".resolver",
    "state_abbreviation": ".resolver",
}


def __getattr__(name: str):
    """Lazily import modules when their attributes are requested."""
    if name in _LAZY_IMPORTS:
        module_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_name, package=__name__)
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> List[str]:
    """Expose lazy attributes to dir() for autocompletion."""
    return sorted(list(globals().keys()) + list(_LAZY_IMPORTS.keys()))
