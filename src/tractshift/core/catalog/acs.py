"""
TractShift - Core Catalog for ACS requests and Census boundary files.

Defines the "contract" for every survey request and boundary layer
(cartographic tracts/counties, TIGER/Line 2020 blocks with population).
"""

from typing import Dict, List, Literal, Optional, Tuple, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------
# Type Definitions
# ---------------------------------------------------------------------

AcsSurvey: TypeAlias = Literal["acs1", "acs5"]
AcsGeography: TypeAlias = Literal["county", "tract", "block group"]
BoundaryLayer: TypeAlias = Literal["county", "tract", "block"]

# ---------------------------------------------------------------------
# Constants (Variables)
# ---------------------------------------------------------------------

# Hispanic or Latino population
VAR_HISPANIC_POP = "B03001_003"
# Median household income (White alone householder)
VAR_MEDIAN_HH_INCOME_WHITE = "B19013A_001"

# ACS annotation values published in place of estimates/MOEs
# (e.g. -666666666: too few sample observations to compute a median).
ACS_SENTINELS = (
    -111111111, -222222222, -333333333, -555555555,
    -666666666, -888888888, -999999999,
)

# ---------------------------------------------------------------------
# Constants (URLs)
# ---------------------------------------------------------------------

ACS_API_ROOT = "https://api.census.gov/data/{year}/acs/{survey}"

# Cartographic boundary files (what the ACS "geometry=TRUE" joins use).
# GENZ2013 keeps its zips at the top level; /shp/ starts with GENZ2014.
CB_TEMPLATE = (
    "https://www2.census.gov/geo/tiger/GENZ{year}/shp/"
    "cb_{year}_{state}_{layer}_500k.zip"
)
CB_COUNTY_TEMPLATE = (
    "https://www2.census.gov/geo/tiger/GENZ{year}/shp/"
    "cb_{year}_us_county_500k.zip"
)
CB_2013_TEMPLATE = "https://www2.census.gov/geo/tiger/GENZ2013/cb_2013_{state}_{layer}_500k.zip"
CB_2013_COUNTY = "https://www2.census.gov/geo/tiger/GENZ2013/cb_2013_us_county_500k.zip"

# TIGER/Line 2020 tabulation blocks (carry POP20 / HOUSING20)
TIGER_BLOCK_2020 = (
    "https://www2.census.gov/geo/tiger/TIGER2020/TABBLOCK20/"
    "tl_2020_{state}_tabblock20.zip"
)

# PUMS state files (household "h" / person "p")
PUMS_TEMPLATE = (
    "https://www2.census.gov/programs-surveys/acs/data/pums/"
    "{year}/{span}-Year/csv_{kind}{state_abbr}.zip"
)

# ---------------------------------------------------------------------
# Data Models
# ---------------------------------------------------------------------


class AcsRequest(BaseModel):
    """
    One ACS variable for one geography level, year and place.
    """
    model_config = ConfigDict(frozen=True)

    variable: str
    year: int
    geography: AcsGeography = "tract"
    state: str
    counties: Tuple[str, ...] = ()
    survey: AcsSurvey = "acs5"

    @field_validator("variable")
    @classmethod
    def _strip_suffix(cls, v: str) -> str:
        # Accept "B03001_003", "B03001_003E" or "B03001_003M"
        v = v.strip().upper()
        if v.endswith(("E", "M")) and "_" in v and v[-2].isdigit():
            return v[:-1]
        return v

    @field_validator("state")
    @classmethod
    def _state_fips(cls, v: str) -> str:
        if not (len(v) == 2 and v.isdigit()):
            raise ValueError(f"state must be a 2-digit FIPS code, got {v!r}")
        return v

    @field_validator("counties")
    @classmethod
    def _county_fips(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        for c in v:
            if not (len(c) == 3 and c.isdigit()):
                raise ValueError(f"county must be a 3-digit FIPS code, got {c!r}")
        return v

    @property
    def url(self) -> str:
        return ACS_API_ROOT.format(year=self.year, survey=self.survey)

    @property
    def estimate_col(self) -> str:
        return f"{self.variable}E"

    @property
    def moe_col(self) -> str:
        return f"{self.variable}M"


class BoundarySpec(BaseModel):
    """
    Defines where a boundary layer lives and how to read it.
    """
    model_config = ConfigDict(frozen=True)

    layer: BoundaryLayer
    year: int
    url_template: str
    id_col: str = "GEOID"
    county_col: Optional[str] = "COUNTYFP"
    state_col: Optional[str] = "STATEFP"
    # Columns kept besides id and geometry (weights, names)
    keep_columns: List[str] = Field(default_factory=list)

    def url(self, state: str) -> str:
        return self.url_template.format(year=self.year, state=state)


# ---------------------------------------------------------------------
# Catalog Registry
# ---------------------------------------------------------------------

# Cartographic tract/county files exist from 2013 onwards.
_CB_YEARS = range(2013, 2024)


def _cb_templates(year: int) -> Tuple[str, str]:
    """(tract, county) URL templates for one cartographic vintage."""
    if year == 2013:
        return CB_2013_TEMPLATE.replace("{layer}", "tract"), CB_2013_COUNTY
    return CB_TEMPLATE.replace("{layer}", "tract"), CB_COUNTY_TEMPLATE


BOUNDARY_CATALOG: List[BoundarySpec] = [
    *[
        BoundarySpec(layer="tract", year=y, url_template=_cb_templates(y)[0])
        for y in _CB_YEARS
    ],
    *[
        BoundarySpec(layer="county", year=y, url_template=_cb_templates(y)[1])
        for y in _CB_YEARS
    ],
    BoundarySpec(
        layer="block", year=2020,
        url_template=TIGER_BLOCK_2020,
        id_col="GEOID20",
        county_col="COUNTYFP20",
        state_col="STATEFP20",
        keep_columns=["POP20", "HOUSING20"],
    ),
]

# ---------------------------------------------------------------------
# Lookup Logic
# ---------------------------------------------------------------------

_CATALOG_INDEX: Dict[Tuple[str, int], BoundarySpec] = {
    (spec.layer, spec.year): spec for spec in BOUNDARY_CATALOG
}


def get_boundary_spec(layer: str, year: int) -> BoundarySpec:
    """Retrieve a BoundarySpec by (layer, year)."""
    key = (layer, year)

    if key in _CATALOG_INDEX:
        return _CATALOG_INDEX[key]

    available: List[int] = sorted({y for (l, y) in _CATALOG_INDEX.keys() if l == layer})

    if available:
        raise ValueError(
            f"No boundary file registered for '{layer}' in {year}. "
            f"Available years for '{layer}': {available}"
        )

    raise ValueError(
        f"No boundary file registered for '{layer}'. "
        f"Known layers: {sorted({l for (l, _) in _CATALOG_INDEX.keys()})}"
    )
