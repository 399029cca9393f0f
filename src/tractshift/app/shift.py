"""
TractShift - Application Layer for Population Shift.

Orchestrates two ACS vintages on their own tract boundaries, re-estimates
the earlier one on the later boundaries (area- or population-weighted) and
differences them per tract.
"""
import geopandas as gpd
import pandas as pd
from typing import Any, List, Optional, Union

from tractshift.core.catalog.acs import AcsRequest, VAR_HISPANIC_POP
from tractshift.core.geo import utils as geo_utils
from tractshift.core.geo.interpolation import make_interpolator
from tractshift.core.logic.shift import compute_shift
from tractshift.core.types import (
    CountyInput, FallbackPolicy, InterpolationMethod, MissingPolicy, StateInput,
)
from tractshift.core.zones import ZoneSet
from tractshift.infra.geo import resolver, tiger
from tractshift.settings import DEFAULT_CRS, DEFAULT_MIN_FRACTION, logger


def _load_acs_tracts(
    request: AcsRequest,
    crs: Any,
    repair: bool,
    api_key: Optional[str],
) -> gpd.GeoDataFrame:
    """ACS estimates joined to same-vintage tract polygons, projected to crs."""
    from tractshift.infra.adapters import acs_api

    df = acs_api.fetch_acs(request, api_key=api_key)
    raw = tiger.fetch_boundaries("tract", request.year, request.state, request.counties)

    # Inner join: only tracts with both data and geometry
    gdf = raw.set_index("GEOID").join(df, how="inner")

    if gdf.empty:
        raise RuntimeError(
            f"Intersection of ACS {request.year} data and tract geometries is empty. "
            "Check if year/county codes align."
        )
    if len(gdf) < len(df):
        logger.warning(
            f"    ⚠️ Dropped {len(df) - len(gdf)} ACS {request.year} rows due to "
            "missing geometries."
        )

    gdf = geo_utils.to_projected(gdf, crs)
    if repair:
        gdf = geo_utils.repair_geometries(gdf)

    return gdf


def load_population_shift(
    state: StateInput,
    counties: Union[CountyInput, List[CountyInput]],
    *,
    variable: str = VAR_HISPANIC_POP,
    year_from: int = 2015,
    year_to: int = 2020,
    survey: str = "acs5",
    method: InterpolationMethod = "population",
    crs: Any = DEFAULT_CRS,
    block_year: int = 2020,
    weight_column: str = "POP20",
    fallback: FallbackPolicy = "area",
    on_missing: MissingPolicy = "raise",
    min_fraction: float = DEFAULT_MIN_FRACTION,
    repair_geometries: bool = False,
    api_key: Optional[str] = None,
) -> gpd.GeoDataFrame:
    """
    Change of an extensive ACS count between two vintages, per later-vintage tract.

    Args:
        state: State FIPS, abbreviation or name (e.g. "AL").
        counties: County FIPS or name(s) (e.g. "Shelby").
        variable: ACS variable (e.g. "B03001_003", Hispanic or Latino population).
        year_from / year_to: Earlier and later ACS vintages.
        method: 'population' (block-weighted) or 'area' (area-weighted).
        crs: Projected CRS used for every area computation.
        block_year / weight_column: Weight layer for method='population'.
        fallback: 'area' or 'zero' for origin tracts without weight.
        on_missing: 'raise' or 'null' for later tracts without an estimate.
        repair_geometries: Repair invalid polygons instead of failing.
        api_key: Census API key (optional; falls back to env).

    Returns:
        GeoDataFrame indexed by GEOID (year_to tracts) with NAME,
        estimate_<year_to>, moe_<year_to>, estimate_<year_from> and shift.
    """
    if year_from == year_to:
        raise ValueError("year_from and year_to must differ.")

    # 1. Resolve Inputs
    state_fips = resolver.resolve_state(state)
    county_list = counties if isinstance(counties, (list, tuple)) else [counties]
    county_fips = tuple(resolver.resolve_counties(state_fips, county_list))

    def _request(year: int) -> AcsRequest:
        return AcsRequest(
            variable=variable, year=year, geography="tract",
            state=state_fips, counties=county_fips, survey=survey,
        )

    # 2. Load both vintages
    logger.info(f"    📦 Loading {variable} for {year_from} and {year_to}...")
    origin_gdf = _load_acs_tracts(_request(year_from), crs, repair_geometries, api_key)
    target_gdf = _load_acs_tracts(_request(year_to), crs, repair_geometries, api_key)

    # The earlier vintage needs a value for every tract it redistributes
    no_value = origin_gdf["estimate"].isna()
    if no_value.any():
        logger.warning(
            f"    ⚠️ {int(no_value.sum())} {year_from} tracts have no estimate and "
            "are left out of the interpolation."
        )
        origin_gdf = origin_gdf[~no_value]

    origin = ZoneSet.from_frame(origin_gdf, value_col="estimate", name=f"origin ({year_from})")
    target = ZoneSet.from_frame(target_gdf, name=f"target ({year_to})")

    # 3. Weights
    weights = None
    if method == "population":
        logger.info(f"    🧱 Fetching {block_year} blocks for population weights...")
        blocks = tiger.fetch_boundaries("block", block_year, state_fips, county_fips)
        if weight_column not in blocks.columns:
            raise ValueError(f"Weight column '{weight_column}' not found in block data.")
        blocks = geo_utils.to_projected(blocks, crs)
        if repair_geometries:
            blocks = geo_utils.repair_geometries(blocks)
        weights = ZoneSet.from_frame(
            blocks, id_col="GEOID", value_col=weight_column, name="weights"
        )

    # 4. Interpolate
    interpolator = make_interpolator(
        method, weights, fallback=fallback, min_fraction=min_fraction
    )
    result = interpolator.interpolate(origin, target)

    logger.info(
        f"    ➗ Interpolated total {result.total():,.0f} "
        f"(origin total {origin.total():,.0f})."
    )

    # 5. Shift
    shift_df = compute_shift(
        result,
        target_gdf["estimate"],
        on_missing=on_missing,
        estimated_label=str(year_from),
        actual_label=str(year_to),
    )

    out = target_gdf[["NAME", "geometry"]].join(shift_df)
    out[f"moe_{year_to}"] = target_gdf["moe"]
    if result.weight_totals is not None:
        out["weight_total"] = result.weight_totals

    cols = [
        "NAME", f"estimate_{year_to}", f"moe_{year_to}",
        f"estimate_{year_from}", "shift",
    ]
    if "weight_total" in out.columns:
        cols.append("weight_total")

    logger.info(f"✅ Computed shift for {len(out)} tracts.")

    return gpd.GeoDataFrame(out[cols + ["geometry"]], geometry="geometry", crs=target_gdf.crs)
