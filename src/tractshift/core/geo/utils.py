"""
TractShift - Core Geo Utilities.

Validation and projection helpers shared by zone sets and interpolators.
Nothing here reprojects or repairs data implicitly: callers ask for it.
"""
from typing import Any, Union

import geopandas as gpd
import shapely
from shapely.geometry import MultiPolygon, Polygon
from shapely.validation import explain_validity

from tractshift.core.errors import GeometryError, ProjectionError, ProjectionMismatchError
from tractshift.settings import logger

POLYGONAL = ("Polygon", "MultiPolygon")


def ensure_projected(gdf: gpd.GeoDataFrame, what: str = "zone set") -> None:
    """Raises ProjectionError unless gdf carries a projected CRS."""
    if gdf.crs is None:
        raise ProjectionError(f"The {what} has no CRS. Set one with gdf.set_crs(...).")
    if gdf.crs.is_geographic:
        raise ProjectionError(
            f"The {what} uses a geographic CRS ({gdf.crs.to_string()}); "
            "areas in degrees are meaningless. Reproject to a projected "
            "(ideally equal-area) CRS first."
        )


def check_same_crs(left: Any, right: Any, what: str = "origin and target") -> None:
    """Raises ProjectionMismatchError when two CRS differ."""
    if left is None or right is None or not left.equals(right):
        raise ProjectionMismatchError(left, right, what=what)


def validate_geometries(gdf: gpd.GeoDataFrame) -> None:
    """
    Fails with GeometryError on null, empty, non-polygonal or invalid rows.
    Offending index labels are attached to the error.
    """
    if gdf.empty:
        return

    geoms = gdf.geometry

    # 1. Missing geometry
    missing = geoms.isna() | geoms.is_empty
    if missing.any():
        ids = list(gdf.index[missing])
        raise GeometryError(f"Null or empty geometry for zone(s): {ids[:10]}", ids)

    # 2. Wrong type (points, lines, collections)
    wrong_type = ~geoms.geom_type.isin(POLYGONAL)
    if wrong_type.any():
        ids = list(gdf.index[wrong_type])
        kinds = sorted(set(geoms[wrong_type].geom_type))
        raise GeometryError(
            f"Zones must be polygons; got {kinds} for zone(s): {ids[:10]}", ids
        )

    # 3. Invalid (self-intersections, bad rings)
    invalid = ~geoms.is_valid
    if invalid.any():
        ids = list(gdf.index[invalid])
        reason = explain_validity(geoms[invalid].iloc[0])
        raise GeometryError(
            f"Invalid geometry for zone(s) {ids[:10]}: {reason}. "
            "Use repair_geometries() to fix explicitly.",
            ids,
        )


def _polygonal_part(geom) -> Union[Polygon, MultiPolygon]:
    """Keeps only the polygonal pieces of a (possibly mixed) geometry."""
    if geom.geom_type in POLYGONAL:
        return geom
    parts = [p for p in shapely.get_parts(geom) if p.geom_type in POLYGONAL]
    polys = []
    for p in parts:
        polys.extend(p.geoms if isinstance(p, MultiPolygon) else [p])
    return MultiPolygon(polys) if polys else Polygon()


def repair_geometries(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """
    Fixes invalid geometries using shapely's make_valid.
    Only applies fix to geometries marked as invalid to save time.
    """
    if gdf.empty:
        return gdf

    gdf = gdf.copy()
    invalid_mask = ~gdf.is_valid & gdf.geometry.notna()

    if invalid_mask.any():
        logger.warning(f"    🔧 Repairing {int(invalid_mask.sum())} invalid geometries...")
        fixed = gdf.loc[invalid_mask].geometry.make_valid()
        gdf.loc[invalid_mask, gdf.geometry.name] = fixed.apply(_polygonal_part)

    return gdf


def to_projected(gdf: gpd.GeoDataFrame, crs: Any) -> gpd.GeoDataFrame:
    """
    Reprojects gdf to crs. Pass "utm" to pick the local UTM zone (NAD83).
    """
    if gdf.crs is None:
        raise ProjectionError("Cannot reproject a GeoDataFrame without a CRS.")

    if isinstance(crs, str) and crs.lower() == "utm":
        return to_local_utm(gdf)

    if gdf.crs.equals(crs):
        return gdf

    logger.info(f"    🌐 Reprojecting {gdf.crs.to_string()} -> {crs}")
    return gdf.to_crs(crs)


def to_local_utm(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Reprojects a GeoDataFrame to the appropriate local UTM zone (NAD83)."""
    if gdf.empty or gdf.geometry.isnull().all():
        return gdf

    # estimate_utm_crs finds the best EPSG code based on the geometry centroid
    utm_crs = gdf.estimate_utm_crs(datum_name="NAD83")
    logger.info(f"    🌐 Reprojecting to local UTM ({utm_crs.to_string()})")
    return gdf.to_crs(utm_crs)
