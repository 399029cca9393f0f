"""
TractShift - Infrastructure Geo Adapter (Census Boundary Files).

Downloads cartographic boundary (tracts, counties) and TIGER/Line block
shapefiles into the disk cache and reads them with GeoPandas.
"""
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional

import geopandas as gpd

from tractshift.core.catalog.acs import get_boundary_spec
from tractshift.infra.storage.cache import cached_download, cached_extract_zip, find_file
from tractshift.settings import logger


def fetch_boundaries(
    layer: str,
    year: int,
    state: str,
    counties: Optional[Iterable[str]] = None,
) -> gpd.GeoDataFrame:
    """
    Fetches boundary polygons for one state, optionally filtered to counties.

    Args:
        layer: "tract", "county" or "block".
        year: Boundary vintage (block weights exist for 2020 only).
        state: 2-digit state FIPS.
        counties: 3-digit county FIPS codes to keep.

    Returns:
        GeoDataFrame with 'GEOID', geometry (source CRS, NAD83) and any
        catalog-declared extra columns (e.g. POP20 for blocks).
    """
    spec = get_boundary_spec(layer, year)
    url = spec.url(state)

    # 1. Download & extract
    zip_name = PurePosixPath(url).name
    rel = Path("tiger") / layer / str(year) / zip_name
    zip_path = cached_download(url, relpath=rel)
    extract_dir = cached_extract_zip(zip_path, extract_dir=zip_path.with_suffix(""))

    shp = find_file(extract_dir, "*.shp")

    logger.info(f"    🗺️  Reading {layer} boundaries ({year}, state {state})...")
    gdf = gpd.read_file(shp)

    # 2. Filter
    if spec.state_col and spec.state_col in gdf.columns:
        gdf = gdf[gdf[spec.state_col].astype(str).str.zfill(2) == state]

    county_list: List[str] = [str(c).zfill(3) for c in (counties or [])]
    if county_list and spec.county_col and spec.county_col in gdf.columns:
        gdf = gdf[gdf[spec.county_col].astype(str).str.zfill(3).isin(county_list)]

    if gdf.empty:
        raise RuntimeError(
            f"No {layer} boundaries found for state {state}, counties {county_list or 'all'}."
        )

    # 3. Standardize
    missing = [c for c in [spec.id_col, *spec.keep_columns] if c not in gdf.columns]
    if missing:
        raise RuntimeError(f"Boundary file {zip_name} lacks columns: {missing}")

    gdf = gdf.rename(columns={spec.id_col: "GEOID"})
    gdf["GEOID"] = gdf["GEOID"].astype(str)
    cols = ["GEOID", *spec.keep_columns, gdf.geometry.name]

    return gdf[cols].reset_index(drop=True)
