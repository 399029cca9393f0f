"""
TractShift - Core Catalog Package.

Exposes the request models and boundary spec retriever.
"""

from .acs import AcsRequest, BoundarySpec, BOUNDARY_CATALOG, get_boundary_spec

__all__ = [
    "AcsRequest",
    "BoundarySpec",
    "BOUNDARY_CATALOG",
    "get_boundary_spec",
]
