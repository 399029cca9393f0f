"""
TractShift - Core Logic for Multi-Year ACS Series.

Pure functions over tidy (year, county, estimate, moe) frames: variable
availability across vintages, margin-of-error intervals, top/bottom ranking
and a flag for rankings the MOEs cannot support.
"""

import pandas as pd
from typing import Iterable, Mapping


def check_variable_availability(
    variable: str,
    catalogs: Mapping[int, Iterable[str]],
) -> pd.DataFrame:
    """
    Reports, per year, whether a variable is published.

    Args:
        variable: ACS variable without E/M suffix (e.g. "B19013A_001").
        catalogs: {year: variable names published that year}.
    """
    rows = []
    for year in sorted(catalogs):
        names = set(catalogs[year])
        # variables.json lists the estimate as "<var>E"
        exists = variable in names or f"{variable}E" in names
        rows.append({"year": year, "table_exists": exists})
    return pd.DataFrame(rows, columns=["year", "table_exists"])


def all_years_available(availability: pd.DataFrame) -> bool:
    return bool(availability["table_exists"].all()) if not availability.empty else False


def tidy_income_series(df: pd.DataFrame) -> pd.DataFrame:
    """
    Renames API output to (year, county, estimate, moe) and drops
    duplicate (year, county) rows.
    """
    df = df.rename(columns={"NAME": "county"})
    if "GEOID" in df.columns:
        df = df.set_index("GEOID")

    cols = [c for c in ("year", "county", "estimate", "moe") if c in df.columns]
    df = df[cols]

    return df.drop_duplicates(subset=["year", "county"], keep="first")


def add_moe_interval(df: pd.DataFrame) -> pd.DataFrame:
    """Adds ``lower``/``upper`` = estimate -/+ moe."""
    df = df.copy()
    df["lower"] = df["estimate"] - df["moe"]
    df["upper"] = df["estimate"] + df["moe"]
    return df


def rank_top_bottom(df: pd.DataFrame, n: int = 10, by: str = "estimate") -> pd.DataFrame:
    """
    Keeps the ``n`` highest and ``n`` lowest rows by ``by`` (descending order).
    Rows are never repeated when the frame has fewer than 2n rows.
    """
    if n <= 0:
        raise ValueError("n must be positive.")

    ordered = df.sort_values(by, ascending=False, na_position="last")
    ordered = ordered[ordered[by].notna()]

    if len(ordered) <= 2 * n:
        return ordered

    return pd.concat([ordered.head(n), ordered.tail(n)])


def flag_rank_overlap(df: pd.DataFrame, group: str = "year") -> pd.DataFrame:
    """
    Ranks rows by estimate within each ``group`` and flags rows whose MOE
    interval overlaps the next-ranked row's interval.

    Adds ``rank`` (1 = highest) and ``overlaps_next`` (bool).
    """
    df = add_moe_interval(df)

    def _flag(g: pd.DataFrame) -> pd.DataFrame:
        g = g.sort_values("estimate", ascending=False)
        g["rank"] = range(1, len(g) + 1)
        next_upper = g["upper"].shift(-1)
        # Last-ranked row compares against NaN -> False
        g["overlaps_next"] = (g["lower"] <= next_upper).astype(bool)
        return g

    if group in df.columns:
        parts = [_flag(g) for _, g in df.groupby(group, sort=True)]
        return pd.concat(parts) if parts else df.assign(rank=[], overlaps_next=[])
    return _flag(df)


def sort_by_moe(df: pd.DataFrame) -> pd.DataFrame:
    """Rows ordered by descending margin of error."""
    return df.sort_values("moe", ascending=False)
