"""
TractShift - Infrastructure Geo Adapter (Place Resolver).

Resolves state and county inputs (FIPS codes or names) to the zero-padded
FIPS strings the Census API and boundary files use.
"""
from functools import lru_cache
from typing import Any, Iterable, List

import pandas as pd
from unidecode import unidecode

from tractshift.core.types import CountyInput, StateInput
from tractshift.settings import logger

# 50 states + DC + Puerto Rico
STATE_FIPS = {
    "AL": "01", "AK": "02", "AZ": "04", "AR": "05", "CA": "06", "CO": "08",
    "CT": "09", "DE": "10", "DC": "11", "FL": "12", "GA": "13", "HI": "15",
    "ID": "16", "IL": "17", "IN": "18", "IA": "19", "KS": "20", "KY": "21",
    "LA": "22", "ME": "23", "MD": "24", "MA": "25", "MI": "26", "MN": "27",
    "MS": "28", "MO": "29", "MT": "30", "NE": "31", "NV": "32", "NH": "33",
    "NJ": "34", "NM": "35", "NY": "36", "NC": "37", "ND": "38", "OH": "39",
    "OK": "40", "OR": "41", "PA": "42", "RI": "44", "SC": "45", "SD": "46",
    "TN": "47", "TX": "48", "UT": "49", "VT": "50", "VA": "51", "WA": "53",
    "WV": "54", "WI": "55", "WY": "56", "PR": "72",
}

STATE_NAMES = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "colorado": "CO", "connecticut": "CT", "delaware": "DE",
    "district of columbia": "DC", "florida": "FL", "georgia": "GA", "hawaii": "HI",
    "idaho": "ID", "illinois": "IL", "indiana": "IN", "iowa": "IA", "kansas": "KS",
    "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS",
    "missouri": "MO", "montana": "MT", "nebraska": "NE", "nevada": "NV",
    "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM", "new york": "NY",
    "north carolina": "NC", "north dakota": "ND", "ohio": "OH", "oklahoma": "OK",
    "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI",
    "south carolina": "SC", "south dakota": "SD", "tennessee": "TN", "texas": "TX",
    "utah": "UT", "vermont": "VT", "virginia": "VA", "washington": "WA",
    "west virginia": "WV", "wisconsin": "WI", "wyoming": "WY", "puerto rico": "PR",
}

_FIPS_TO_ABBR = {v: k for k, v in STATE_FIPS.items()}

# Suffixes the API appends to county names ("Shelby County, Alabama")
_COUNTY_SUFFIXES = (
    " county", " parish", " borough", " census area", " municipality",
    " city and borough", " municipio",
)


def _normalize_text(text: Any) -> str:
    """Normalizes text for comparison (remove accents, lowercase)."""
    return " ".join(unidecode(str(text)).lower().split())


def _strip_county_suffix(name: str) -> str:
    name = _normalize_text(name).split(",")[0]
    for suffix in _COUNTY_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)].strip()
    return name


def resolve_state(state: StateInput) -> str:
    """Resolves a state FIPS, abbreviation or name to a 2-digit FIPS string."""
    s = str(state).strip()

    if s.isdigit():
        fips = s.zfill(2)
        if fips in _FIPS_TO_ABBR:
            return fips
    elif s.upper() in STATE_FIPS:
        return STATE_FIPS[s.upper()]
    elif _normalize_text(s) in STATE_NAMES:
        return STATE_FIPS[STATE_NAMES[_normalize_text(s)]]

    raise ValueError(f"Could not resolve state: {state!r}")


def state_abbreviation(state_fips: str) -> str:
    """2-digit FIPS -> USPS abbreviation (used by PUMS file names)."""
    try:
        return _FIPS_TO_ABBR[state_fips]
    except KeyError:
        raise ValueError(f"Unknown state FIPS: {state_fips!r}") from None


@lru_cache(maxsize=64)
def _county_lookup(state_fips: str) -> pd.DataFrame:
    """County names for one state from the Census API (Cached)."""
    from tractshift.infra.adapters import acs_api

    logger.info(f"    🌍 Fetching county names for state {state_fips}...")
    df = acs_api.fetch_county_names(state_fips)
    df["norm_name"] = df["NAME"].apply(_strip_county_suffix)
    return df


def resolve_counties(state_fips: str, counties: Iterable[CountyInput]) -> List[str]:
    """
    Resolves county FIPS codes or names to 3-digit FIPS strings.
    Names are only looked up (one API call per state) when present.
    """
    resolved: List[str] = []
    unresolved: List[str] = []

    for c in counties:
        s = str(c).strip()
        if s.isdigit():
            resolved.append(s.zfill(3)[-3:])
            continue

        lookup = _county_lookup(state_fips)
        match = lookup.loc[lookup["norm_name"] == _strip_county_suffix(s), "county"]
        if match.empty:
            unresolved.append(s)
        else:
            resolved.append(str(match.iloc[0]).zfill(3))

    if unresolved:
        raise ValueError(f"Could not resolve counties in state {state_fips}: {unresolved}")

    # De-duplicate while preserving order
    return list(dict.fromkeys(resolved))
