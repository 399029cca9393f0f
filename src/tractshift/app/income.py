"""
TractShift - Application Layer for Multi-Year ACS Income Series.
"""
import pandas as pd
from typing import Iterable, List, Optional, Union

from tractshift.core.catalog.acs import AcsRequest, VAR_MEDIAN_HH_INCOME_WHITE
from tractshift.core.logic import income as income_logic
from tractshift.core.types import CountyInput, StateInput
from tractshift.infra.geo import resolver
from tractshift.settings import logger


def income_availability(
    variable: str = VAR_MEDIAN_HH_INCOME_WHITE,
    years: Iterable[int] = range(2011, 2024),
    survey: str = "acs5",
) -> pd.DataFrame:
    """
    Checks in which vintages a variable is published.
    Vintages whose variable list cannot be fetched count as unavailable.
    """
    from tractshift.infra.adapters import acs_api

    catalogs = {}
    for year in years:
        try:
            catalogs[year] = acs_api.fetch_variables(year, survey)
        except RuntimeError as e:
            logger.warning(f"    ⚠️ No variable list for {survey} {year}: {e}")
            catalogs[year] = set()

    availability = income_logic.check_variable_availability(variable, catalogs)

    if income_logic.all_years_available(availability):
        logger.info(f"    ✅ {variable} is present in every requested year.")
    else:
        absent = availability.loc[~availability["table_exists"], "year"].tolist()
        logger.warning(f"    ⚠️ {variable} is absent in: {absent}")

    return availability


def load_income_series(
    state: StateInput,
    counties: Union[CountyInput, List[CountyInput], None] = None,
    *,
    variable: str = VAR_MEDIAN_HH_INCOME_WHITE,
    years: Iterable[int] = range(2011, 2024),
    survey: str = "acs5",
    check_availability: bool = True,
    api_key: Optional[str] = None,
) -> pd.DataFrame:
    """
    Loads one county-level ACS variable for several years.

    Args:
        state: State FIPS, abbreviation or name (e.g. "TX").
        counties: County FIPS or names (e.g. ["Jones", "Taylor"]); all when None.
        variable: ACS variable, default median household income (B19013A_001).
        years: ACS vintages to request.
        check_availability: Skip vintages that do not publish the variable.

    Returns:
        DataFrame indexed by GEOID with year, county, estimate, moe.
    """
    from tractshift.infra.adapters import acs_api

    years = list(years)

    # 1. Resolve Inputs
    state_fips = resolver.resolve_state(state)
    county_fips: tuple = ()
    if counties is not None:
        county_list = counties if isinstance(counties, (list, tuple)) else [counties]
        county_fips = tuple(resolver.resolve_counties(state_fips, county_list))

    if check_availability:
        availability = income_availability(variable, years, survey)
        years = availability.loc[availability["table_exists"], "year"].tolist()

    if not years:
        raise ValueError(f"{variable} is not published for any requested year.")

    # 2. Fetch each vintage
    frames = []
    for year in years:
        request = AcsRequest(
            variable=variable, year=year, geography="county",
            state=state_fips, counties=county_fips, survey=survey,
        )
        df = acs_api.fetch_acs(request, api_key=api_key)
        frames.append(df.assign(year=year))

    series = income_logic.tidy_income_series(pd.concat(frames))

    logger.info(f"✅ Loaded {len(series)} county-years of {variable}.")

    return series
