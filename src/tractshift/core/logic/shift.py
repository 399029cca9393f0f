"""
TractShift - Core Logic for Period-over-Period Shift.

Joins interpolated earlier-period estimates to later-period measurements by
zone id and differences them. Pure pandas; no geometry involved.
"""
from typing import Union

import numpy as np
import pandas as pd

from tractshift.core.errors import MissingEstimateError
from tractshift.core.types import MissingPolicy
from tractshift.core.zones import InterpolationResult, ZoneSet
from tractshift.settings import logger

MISSING_POLICIES = ("raise", "null")


def _as_series(data: Union[InterpolationResult, ZoneSet, pd.Series], what: str) -> pd.Series:
    if isinstance(data, InterpolationResult):
        return data.estimates
    if isinstance(data, ZoneSet):
        return data.values
    if isinstance(data, pd.Series):
        return data
    raise TypeError(f"Unsupported {what} type: {type(data).__name__}")


def compute_shift(
    estimated: Union[InterpolationResult, pd.Series],
    actual: Union[ZoneSet, pd.Series],
    *,
    on_missing: MissingPolicy = "raise",
    estimated_label: str = "estimated",
    actual_label: str = "actual",
) -> pd.DataFrame:
    """
    Per-zone shift between two periods: ``shift = actual - estimated``.

    Args:
        estimated: Earlier-period values already interpolated onto the
            later-period zones (indexed by zone id).
        actual: Later-period measured values (indexed by zone id).
        on_missing: "raise" collects every later-period zone lacking an
            estimate into one MissingEstimateError. "null" keeps those zones
            with NaN estimate and NaN shift.
        estimated_label / actual_label: Suffixes for the output columns
            (e.g. years).

    Returns:
        DataFrame indexed by zone id, one row per later-period zone, with
        columns ``estimate_<actual_label>``, ``estimate_<estimated_label>``
        and ``shift``.
    """
    if on_missing not in MISSING_POLICIES:
        raise ValueError(f"on_missing must be one of {MISSING_POLICIES}, got {on_missing!r}.")

    est = _as_series(estimated, "estimated")
    act = _as_series(actual, "actual")

    if not act.index.is_unique:
        raise ValueError("Actual values have duplicate zone ids.")
    if not est.index.is_unique:
        raise ValueError("Estimated values have duplicate zone ids.")

    # 1. Estimates that match no later-period zone are not part of the output
    extra = est.index.difference(act.index)
    if len(extra) > 0:
        logger.warning(
            f"    ⚠️ Ignoring {len(extra)} estimate(s) with no matching zone: "
            f"{extra[:10].tolist()}"
        )

    # 2. Join on zone id (left: every later-period zone keeps its row)
    aligned = est.reindex(act.index)
    missing = aligned.index[aligned.isna()]

    if len(missing) > 0:
        if on_missing == "raise":
            raise MissingEstimateError(missing.tolist())
        logger.warning(
            f"    ⚠️ {len(missing)} zone(s) have no estimate; shift left undefined."
        )

    est_col = f"estimate_{estimated_label}"
    act_col = f"estimate_{actual_label}"
    if est_col == act_col:
        raise ValueError("estimated_label and actual_label must differ.")

    out = pd.DataFrame({
        act_col: act.astype(float),
        est_col: aligned.astype(float),
    })
    # NaN - x stays NaN, so missing zones never read as "no change"
    out["shift"] = out[act_col] - out[est_col]
    out.index.name = act.index.name

    return out


def shift_summary(shift_df: pd.DataFrame) -> pd.Series:
    """Headline numbers for a shift table (totals, gainers, losers)."""
    s = shift_df["shift"]
    return pd.Series({
        "zones": len(s),
        "undefined": int(s.isna().sum()),
        "total_shift": float(np.nansum(s.to_numpy())),
        "gaining": int((s > 0).sum()),
        "losing": int((s < 0).sum()),
    })
