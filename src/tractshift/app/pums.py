"""
TractShift - Application Layer for PUMS Household Distribution Tables.
"""
import pandas as pd
from pathlib import Path
from typing import NamedTuple, Optional, Union

from tractshift.core.logic import pums as pums_logic
from tractshift.core.types import StateInput
from tractshift.infra.geo import resolver
from tractshift.settings import logger

PumsInput = Union[pd.DataFrame, str, Path, None]


class HouseholdDistribution(NamedTuple):
    records: pd.DataFrame
    frequency: pd.DataFrame
    table: pd.DataFrame
    median_income: pd.DataFrame
    households_by_type: pd.DataFrame


def _load(source: PumsInput, kind: str, year: int, state: Optional[StateInput], span: int, columns) -> pd.DataFrame:
    from tractshift.infra.adapters import pums_csv

    if isinstance(source, pd.DataFrame):
        return source
    if source is not None:
        return pums_csv.read_pums_csv(source, columns)
    if state is None:
        raise ValueError("Pass PUMS data/paths or a state to download them.")

    abbr = resolver.state_abbreviation(resolver.resolve_state(state))
    return pums_csv.fetch_pums(year, abbr, kind, span=span, columns=columns)


def build_household_distribution(
    households: PumsInput = None,
    persons: PumsInput = None,
    *,
    puma: Optional[int] = None,
    county: Optional[str] = None,
    state: Optional[StateInput] = None,
    year: int = 2017,
    span: int = 5,
    income_factor: Optional[float] = None,
    relationship_col: Optional[str] = None,
    householder_code: Optional[int] = None,
) -> HouseholdDistribution:
    """
    Builds the household distribution table (income group x household size
    x workers) for one PUMA.

    Args:
        households / persons: DataFrames or CSV paths. When None, the state
            files for ``year``/``span`` are downloaded.
        puma: PUMA code to keep (e.g. 5600).
        county: Label for the records (e.g. "Victoria").
        income_factor: Constant-dollar factor; defaults to ADJINC / 1e6.
        relationship_col / householder_code: Householder coding. Detected
            from the person records (RELSHIPP == 20, or RELP == 0 before 2019)
            when omitted.

    Returns:
        HouseholdDistribution with the prepared records, long frequency
        table, wide contingency table, weighted median income by household
        type and household totals by type.
    """
    # 1. Load & merge
    extra = [relationship_col] if relationship_col else []
    columns = tuple(dict.fromkeys([*pums_logic.PUMS_COLUMNS, *extra]))
    h = _load(households, "h", year, state, span, columns)
    p = _load(persons, "p", year, state, span, columns)

    merged = pums_logic.merge_household_person(h, p)
    merged = pums_logic.select_pums_columns(merged, columns)
    logger.info(f"    🔗 Merged {len(h)} household and {len(p)} person records -> {len(merged)} rows.")

    # 2. Derive variables
    records = pums_logic.prepare_pums(
        merged,
        puma=puma,
        county=county,
        income_factor=income_factor,
        relationship_col=relationship_col,
        householder_code=householder_code,
    )
    if records.empty:
        raise RuntimeError(f"No PUMS records left for PUMA {puma}.")

    # 3. Tables
    freq = pums_logic.household_frequency(records)
    result = HouseholdDistribution(
        records=records,
        frequency=freq,
        table=pums_logic.contingency_table(freq),
        median_income=pums_logic.median_income_by_type(records),
        households_by_type=pums_logic.households_by_type(records),
    )

    logger.info(f"✅ Built household table with {len(result.table)} income rows.")

    return result
