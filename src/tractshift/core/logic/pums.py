"""
TractShift - Core Logic for PUMS Household Distribution.

Pure functions that turn ACS Public Use Microdata (household + person
records) into a household distribution table: income group x household
size x workers per household, weighted by the household weight WGTP.
"""

import numpy as np
import pandas as pd
from typing import Iterable, List, Optional, Sequence, Tuple

# --- Constants ---

JOIN_KEYS = ("SERIALNO", "DIVISION", "PUMA", "REGION", "ST", "ADJINC")

PUMS_COLUMNS = (
    "SERIALNO", "AGEP", "PWGTP", "RELSHIPP", "RELP", "SCH", "SCHG", "ST", "PUMA",
    "WAGP", "WKL", "ESR", "ADJINC", "BLD", "HHT", "HINCP", "NP", "WIF",
    "NR", "TEN", "TYPEHUGQ", "WGTP",
)

# Demonstration bands in constant dollars; lower bound inclusive.
INCOME_BREAKS = (0, 22842, 44964, 67447, 112411, np.inf)
INCOME_LABELS = (
    "$0 - $22,841",
    "$22,842 - $44,963",
    "$44,964 - $67,446",
    "$67,447 - $112,410",
    "$112,411+",
)

HHSIZE_LABELS = ("1", "2", "3", "4", "5+")
HHWORKER_LABELS = ("0", "1", "2+")

# ESR: 1 = civilian employed at work, 2 = civilian employed with a job but not at work
WORKER_ESR_CODES = (1, 2)

# Reference person: RELSHIPP 20 from 2019 on, RELP 0 in earlier files
HOUSEHOLDER_CODINGS = {"RELSHIPP": 20, "RELP": 0}

GROUP_COLS = ["county", "incgrp", "hhsize", "hhworker"]

# --- Helpers ---


def _categorize(values: pd.Series, breaks: Sequence[float], labels: Sequence[str]) -> pd.Series:
    return pd.cut(values, bins=list(breaks), labels=list(labels), right=False)


def householder_coding(
    columns: Iterable[str],
    relationship_col: Optional[str] = None,
    householder_code: Optional[int] = None,
) -> Tuple[str, int]:
    """
    Picks the relationship column and its reference-person code.

    Without an explicit column, the first of RELSHIPP (2019+) and RELP
    (earlier vintages) present in ``columns`` is used.
    """
    columns = set(columns)

    if relationship_col is None:
        found = [c for c in HOUSEHOLDER_CODINGS if c in columns]
        if not found:
            raise ValueError(
                f"PUMS person records need one of {list(HOUSEHOLDER_CODINGS)} "
                "to identify householders."
            )
        relationship_col = found[0]
    elif relationship_col not in columns:
        raise ValueError(
            f"Relationship column '{relationship_col}' not found in the PUMS records. "
            "Files before 2019 code the householder as RELP == 0."
        )

    if householder_code is None:
        if relationship_col not in HOUSEHOLDER_CODINGS:
            raise ValueError(f"Pass householder_code for relationship column '{relationship_col}'.")
        householder_code = HOUSEHOLDER_CODINGS[relationship_col]

    return relationship_col, householder_code


def select_pums_columns(df: pd.DataFrame, columns: Sequence[str] = PUMS_COLUMNS) -> pd.DataFrame:
    """Keeps the variables of interest that are present."""
    return df[[c for c in columns if c in df.columns]]


def merge_household_person(households: pd.DataFrame, persons: pd.DataFrame) -> pd.DataFrame:
    """
    Inner-joins household and person records on their shared keys.
    Each output row is one person carrying its household's attributes.
    """
    keys = [k for k in JOIN_KEYS if k in households.columns and k in persons.columns]
    if "SERIALNO" not in keys:
        raise ValueError("Both household and person records need a SERIALNO column.")

    return households.merge(persons, on=keys, how="inner", suffixes=("_h", "_p"))


# --- Derived variables ---


def prepare_pums(
    df: pd.DataFrame,
    *,
    puma: Optional[int] = None,
    county: Optional[str] = None,
    income_factor: Optional[float] = None,
    relationship_col: Optional[str] = None,
    householder_code: Optional[int] = None,
) -> pd.DataFrame:
    """
    Derives the grouping variables on merged person-level records.

    Args:
        df: Output of merge_household_person.
        puma: Keep only this PUMA (5-digit code without state, e.g. 5600).
        county: Label attached to the kept records.
        income_factor: Constant-dollar factor for HINCP. Defaults to the
            per-record ADJINC / 1e6.
        relationship_col / householder_code: How the householder is coded.
            Detected from the columns (RELSHIPP == 20 or RELP == 0) when omitted.
    """
    relationship_col, householder_code = householder_coding(
        df.columns, relationship_col, householder_code
    )

    # 1. Filter & label
    if puma is not None:
        df = df[pd.to_numeric(df["PUMA"], errors="coerce") == int(puma)]
    df = df.copy()
    df["county"] = county if county is not None else "all"
    df["SERIALNO"] = df["SERIALNO"].astype(str)
    # Flag before filling NaN: RELP codes the householder as 0
    df["hholder"] = df[relationship_col] == householder_code

    # 2. Missing values become zero; negative incomes are clipped
    numeric = df.select_dtypes(include="number").columns
    df[numeric] = df[numeric].fillna(0)
    df["HINCP"] = df["HINCP"].clip(lower=0)

    # 3. Constant dollars
    if income_factor is not None:
        factor = income_factor
    elif "ADJINC" in df.columns:
        factor = df["ADJINC"] / 1_000_000
    else:
        raise ValueError("Provide income_factor or an ADJINC column.")
    df["hinc_adj"] = df["HINCP"] * factor

    # 4. Income groups & household size
    df["incgrp"] = _categorize(df["hinc_adj"], INCOME_BREAKS, INCOME_LABELS)
    df["hhsize"] = _categorize(df["NP"], (1, 2, 3, 4, 5, np.inf), HHSIZE_LABELS)

    # 5. Workers per household
    df["worker"] = df["ESR"].isin(WORKER_ESR_CODES)
    df["wihh"] = df.groupby("SERIALNO")["worker"].transform("sum").astype(int)
    df["hhworker"] = _categorize(df["wihh"], (0, 1, 2, np.inf), HHWORKER_LABELS)

    # 6. Household type
    df["hhtype"] = np.where(df["WGTP"] != 0, "housing_unit", "group_quarters")

    return df


def householders(df: pd.DataFrame) -> pd.DataFrame:
    """One record per household (the reference person)."""
    return df[df["hholder"]]


# --- Tables ---


def household_frequency(df: pd.DataFrame, group_cols: List[str] = GROUP_COLS) -> pd.DataFrame:
    """WGTP-weighted household counts per (county, incgrp, hhsize, hhworker)."""
    hh = householders(df)
    freq = (
        hh.groupby(group_cols, observed=True)["WGTP"]
        .sum()
        .reset_index(name="n")
    )
    return freq[freq["n"] > 0].reset_index(drop=True)


def contingency_table(freq: pd.DataFrame) -> pd.DataFrame:
    """
    Wide table: rows (county, incgrp), one column per "<hhworker>_<hhsize>".
    Cells with no households are 0.
    """
    wide = freq.pivot_table(
        index=["county", "incgrp"],
        columns=["hhworker", "hhsize"],
        values="n",
        aggfunc="sum",
        fill_value=0,
        observed=True,
    )
    wide.columns = [f"{w}_{s}" for w, s in wide.columns]
    return wide


def weighted_median(values: pd.Series, weights: pd.Series) -> float:
    """
    Median of ``values`` with frequency ``weights``.
    When the cumulative weight hits exactly half, the two middle values
    are averaged.
    """
    v = np.asarray(values, dtype=float)
    w = np.asarray(weights, dtype=float)
    keep = ~np.isnan(v) & ~np.isnan(w) & (w > 0)
    v, w = v[keep], w[keep]

    if v.size == 0:
        return float("nan")

    order = np.argsort(v, kind="mergesort")
    v, w = v[order], w[order]
    cum = np.cumsum(w)
    half = cum[-1] / 2

    i = int(np.searchsorted(cum, half, side="left"))
    if np.isclose(cum[i], half) and i + 1 < v.size:
        return float((v[i] + v[i + 1]) / 2)
    return float(v[i])


def median_income_by_type(df: pd.DataFrame) -> pd.DataFrame:
    """Weighted median adjusted household income per household type."""
    hh = householders(df)
    rows = [
        {"hhtype": hhtype, "wtd_median": weighted_median(g["hinc_adj"], g["WGTP"])}
        for hhtype, g in hh.groupby("hhtype", sort=True)
    ]
    return pd.DataFrame(rows, columns=["hhtype", "wtd_median"])


def households_by_type(df: pd.DataFrame) -> pd.DataFrame:
    """Weighted household totals per household type."""
    hh = householders(df)
    return hh.groupby("hhtype", sort=True)["WGTP"].sum().reset_index(name="households")
