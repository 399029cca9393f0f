"""
TractShift - Infrastructure Adapter for the Census Data API (ACS).

Handles querying ACS estimates/MOEs by geography and listing the variables
published for a given vintage.
"""
from pathlib import Path
from typing import List, Optional, Set, Tuple

import numpy as np
import pandas as pd
import requests

from tractshift.core.catalog.acs import ACS_SENTINELS, AcsRequest
from tractshift.infra.storage.cache import cached_json, get_session
from tractshift.settings import logger, resolve_api_key

# Order in which the API returns geography columns; concatenated into GEOID
GEO_COLUMNS = ("state", "county", "tract", "block group")


def _geo_params(request: AcsRequest) -> List[Tuple[str, str]]:
    """Builds the for/in clauses for the requested geography."""
    counties = ",".join(request.counties) if request.counties else "*"
    state = f"state:{request.state}"

    if request.geography == "county":
        return [("for", f"county:{counties}"), ("in", state)]
    if request.geography == "tract":
        return [("for", "tract:*"), ("in", state), ("in", f"county:{counties}")]
    if request.geography == "block group":
        return [
            ("for", "block group:*"),
            ("in", state),
            ("in", f"county:{counties}"),
            ("in", "tract:*"),
        ]
    raise NotImplementedError(f"Geography {request.geography!r} not implemented.")


def _get_rows(url: str, params: List[Tuple[str, str]], timeout: int = 60) -> List[List[str]]:
    """GETs a Census API table (header row + data rows)."""
    try:
        response = get_session().get(url, params=params, timeout=timeout)
        response.raise_for_status()
        rows = response.json()
    except requests.RequestException as e:
        raise RuntimeError(f"Census API request failed: {url} ({e})") from e

    if not isinstance(rows, list) or not rows:
        raise RuntimeError(f"Census API returned an unexpected payload from {url}.")
    return rows


def _to_numeric(series: pd.Series) -> pd.Series:
    """Coerces API strings to floats, mapping ACS annotation values to NaN."""
    values = pd.to_numeric(series, errors="coerce")
    return values.where(~values.isin(ACS_SENTINELS), np.nan)


def fetch_acs(request: AcsRequest, api_key: Optional[str] = None) -> pd.DataFrame:
    """
    Fetches one ACS variable for one geography level.

    Args:
        request: Variable, year, survey, geography and place.
        api_key: Census API key. Falls back to Settings/env; optional.

    Returns:
        pd.DataFrame indexed by 'GEOID' with NAME, variable, estimate, moe.
    """
    key = resolve_api_key(api_key)

    # 1. Construct query
    params: List[Tuple[str, str]] = [
        ("get", f"NAME,{request.estimate_col},{request.moe_col}"),
        *_geo_params(request),
    ]
    if key:
        params.append(("key", key))

    logger.info(
        f"    ☁️  Querying ACS {request.survey} {request.year} "
        f"({request.variable}, {request.geography})..."
    )

    # 2. Execute
    rows = _get_rows(request.url, params)
    df = pd.DataFrame(rows[1:], columns=rows[0])

    # 3. Post-processing
    geo_cols = [c for c in GEO_COLUMNS if c in df.columns]
    if not geo_cols:
        raise RuntimeError("Census API response has no geography columns.")

    df["GEOID"] = df[geo_cols].astype(str).agg("".join, axis=1)
    df["variable"] = request.variable
    df["estimate"] = _to_numeric(df[request.estimate_col])
    df["moe"] = _to_numeric(df[request.moe_col])

    df = df.set_index("GEOID")[["NAME", "variable", "estimate", "moe"]]

    if df.index.duplicated().any():
        raise RuntimeError("Census API returned duplicate GEOIDs.")

    n_missing = int(df["estimate"].isna().sum())
    if n_missing:
        logger.warning(f"    ⚠️ {n_missing} {request.geography}(s) have no published estimate.")

    return df


def fetch_variables(year: int, survey: str = "acs5") -> Set[str]:
    """Names of all variables published for an ACS vintage (cached on disk)."""
    url = f"https://api.census.gov/data/{year}/acs/{survey}/variables.json"
    rel = Path("acs") / "variables" / f"{year}_{survey}.json"
    payload = cached_json(url, relpath=rel)

    variables = payload.get("variables") if isinstance(payload, dict) else None
    if not isinstance(variables, dict):
        raise RuntimeError(f"Unexpected variables.json layout for {year}/{survey}.")
    return set(variables)


def fetch_county_names(
    state: str,
    year: int = 2020,
    survey: str = "acs5",
    api_key: Optional[str] = None,
) -> pd.DataFrame:
    """Lists counties of a state: columns 'county' (3-digit FIPS) and 'NAME'."""
    key = resolve_api_key(api_key)
    params = [("get", "NAME"), ("for", "county:*"), ("in", f"state:{state}")]
    if key:
        params.append(("key", key))

    rows = _get_rows(f"https://api.census.gov/data/{year}/acs/{survey}", params)
    df = pd.DataFrame(rows[1:], columns=rows[0])
    return df[["county", "NAME"]].sort_values("county").reset_index(drop=True)
