"""
TractShift - Areal Interpolation.

Re-estimates an attribute measured on one set of zones (origin) on a second,
overlapping set of zones (target). Two interpolators share one interface:

- AreaWeightedInterpolator: the attribute is assumed uniform inside each
  origin zone and is split by intersection area.
- PopulationWeightedInterpolator: the attribute follows the distribution of a
  finer weight layer (e.g. census block population) inside each origin zone.

All inputs must already share one projected CRS. Nothing is reprojected here.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

import geopandas as gpd
import numpy as np
import pandas as pd

from tractshift.core.geo.utils import check_same_crs
from tractshift.core.types import FallbackPolicy
from tractshift.core.zones import InterpolationResult, ZoneSet
from tractshift.settings import DEFAULT_MIN_FRACTION, logger

ORIGIN_ID = "_origin_id"
TARGET_ID = "_target_id"
WEIGHT = "_weight"
FALLBACK_POLICIES = ("area", "zero")


def _id_frame(zones: ZoneSet, id_name: str) -> gpd.GeoDataFrame:
    """Geometry plus id as a regular column (overlay/sjoin drop the index)."""
    return gpd.GeoDataFrame(
        {id_name: zones.ids.to_numpy()},
        geometry=zones.geometry.to_numpy(),
        crs=zones.crs,
    )


def intersection_areas(
    origin: ZoneSet,
    target: ZoneSet,
    min_fraction: float = DEFAULT_MIN_FRACTION,
) -> pd.DataFrame:
    """
    Pairwise overlay of origin and target zones.

    Returns one row per (origin, target) pair with a polygonal intersection:
    columns ``_origin_id``, ``_target_id``, ``area`` and ``origin_share``
    (intersection area / origin area). Pairs whose origin_share falls below
    ``min_fraction`` are dropped as boundary slivers.
    """
    check_same_crs(origin.crs, target.crs)

    empty = pd.DataFrame(
        {ORIGIN_ID: [], TARGET_ID: [], "area": [], "origin_share": []}
    )
    if len(origin) == 0 or len(target) == 0:
        return empty

    # keep_geom_type drops edge/point contacts between neighbours
    pieces = gpd.overlay(
        _id_frame(origin, ORIGIN_ID),
        _id_frame(target, TARGET_ID),
        how="intersection",
        keep_geom_type=True,
    )
    if pieces.empty:
        return empty

    pieces["area"] = pieces.geometry.area
    # A pair may come back as several pieces
    pairs = pieces.groupby([ORIGIN_ID, TARGET_ID], sort=False)["area"].sum().reset_index()
    pairs["origin_share"] = pairs["area"] / pairs[ORIGIN_ID].map(origin.areas)

    slivers = pairs["origin_share"] < min_fraction
    if slivers.any():
        logger.debug(f"    Dropping {int(slivers.sum())} sliver intersections.")

    return pairs.loc[~slivers].reset_index(drop=True)


class Interpolator(ABC):
    """Estimates origin values on target zone boundaries."""

    method: str = ""

    def __init__(self, extensive: bool = True, min_fraction: float = DEFAULT_MIN_FRACTION):
        if min_fraction < 0:
            raise ValueError("min_fraction must be >= 0.")
        self.extensive = extensive
        self.min_fraction = min_fraction

    @abstractmethod
    def interpolate(self, origin: ZoneSet, target: ZoneSet) -> InterpolationResult:
        """Returns one estimate per target zone."""

    def _check_inputs(self, origin: ZoneSet, target: ZoneSet) -> None:
        if not origin.has_values:
            raise ValueError("The origin zone set must carry values to interpolate.")
        check_same_crs(origin.crs, target.crs)

    def _area_estimates(self, pairs: pd.DataFrame, origin: ZoneSet, target: ZoneSet) -> pd.Series:
        """Area-weighted estimate per target id from an intersection table."""
        values = pairs[ORIGIN_ID].map(origin.values)

        if self.extensive:
            contrib = pairs["origin_share"] * values
            est = contrib.groupby(pairs[TARGET_ID]).sum()
            return est.reindex(target.ids, fill_value=0.0).astype(float)

        # Intensive: area-weighted mean over the covered part of each target
        num = (pairs["area"] * values).groupby(pairs[TARGET_ID]).sum()
        den = pairs["area"].groupby(pairs[TARGET_ID]).sum()
        return (num / den).reindex(target.ids).astype(float)


class AreaWeightedInterpolator(Interpolator):
    """
    Splits each origin value across targets by share of origin area.

    estimate(T) = sum over O of value(O) * area(O ∩ T) / area(O)
    """

    method = "area"

    def interpolate(self, origin: ZoneSet, target: ZoneSet) -> InterpolationResult:
        self._check_inputs(origin, target)

        logger.info(
            f"    📐 Area-weighted interpolation: {len(origin)} origin -> "
            f"{len(target)} target zones..."
        )
        pairs = intersection_areas(origin, target, self.min_fraction)
        estimates = self._area_estimates(pairs, origin, target)

        return InterpolationResult(
            estimates=estimates.rename("estimate"),
            method=self.method,
            extensive=self.extensive,
        )


class PopulationWeightedInterpolator(Interpolator):
    """
    Splits each origin value across targets by share of origin weight.

    Each weight unit is reduced to a representative point and assigned to the
    origin and target zones containing it.

    estimate(T) = sum over O of value(O) * w(O ∩ T) / w(O)

    Origins holding no weight follow ``fallback``:
      - "area": redistribute that origin by area share (total preserved).
      - "zero": that origin contributes nothing.
    """

    method = "population"

    def __init__(
        self,
        weights: ZoneSet,
        *,
        fallback: FallbackPolicy = "area",
        extensive: bool = True,
        min_fraction: float = DEFAULT_MIN_FRACTION,
    ):
        super().__init__(extensive=extensive, min_fraction=min_fraction)

        if fallback not in FALLBACK_POLICIES:
            raise ValueError(f"fallback must be one of {FALLBACK_POLICIES}, got {fallback!r}.")
        if not weights.has_values:
            raise ValueError("The weight zone set must carry weight values.")
        if (weights.values < 0).any():
            bad = weights.ids[weights.values < 0].tolist()
            raise ValueError(f"Weights must be non-negative; negative for: {bad[:10]}")

        self.weights = weights
        self.fallback = fallback

    def _assign_points(self, origin: ZoneSet, target: ZoneSet) -> pd.DataFrame:
        """
        One row per (weight unit, origin, target) with the unit's weight.
        Units outside every origin are dropped; units outside every target
        keep a null target id so they still count towards w(O).
        """
        points = gpd.GeoDataFrame(
            {WEIGHT: self.weights.values.to_numpy()},
            geometry=self.weights.geometry.representative_point().to_numpy(),
            crs=self.weights.crs,
        )

        in_origin = gpd.sjoin(points, _id_frame(origin, ORIGIN_ID), how="inner", predicate="within")
        in_target = gpd.sjoin(points, _id_frame(target, TARGET_ID), how="inner", predicate="within")

        alloc = in_origin[[WEIGHT, ORIGIN_ID]].join(in_target[[TARGET_ID]], how="left")
        return alloc.reset_index(drop=True)

    def interpolate(self, origin: ZoneSet, target: ZoneSet) -> InterpolationResult:
        self._check_inputs(origin, target)
        check_same_crs(origin.crs, self.weights.crs, what="origin and weights")

        logger.info(
            f"    👥 Population-weighted interpolation: {len(origin)} origin -> "
            f"{len(target)} target zones using {len(self.weights)} weight units..."
        )

        alloc = self._assign_points(origin, target)
        origin_w = alloc.groupby(ORIGIN_ID)[WEIGHT].sum().reindex(origin.ids, fill_value=0.0)

        placed = alloc.dropna(subset=[TARGET_ID])
        pair_w = placed.groupby([ORIGIN_ID, TARGET_ID], sort=False)[WEIGHT].sum().reset_index()
        target_w = pair_w.groupby(TARGET_ID)[WEIGHT].sum().reindex(target.ids, fill_value=0.0)

        if self.extensive:
            estimates, fallback_ids = self._extensive(origin, target, origin_w, pair_w)
        else:
            estimates, fallback_ids = self._intensive(origin, target, target_w, pair_w)

        return InterpolationResult(
            estimates=estimates.rename("estimate"),
            method=self.method,
            extensive=self.extensive,
            weight_totals=target_w.astype(float).rename("weight_total"),
            fallback_ids=fallback_ids,
        )

    def _extensive(self, origin, target, origin_w, pair_w):
        weighted = origin_w[origin_w > 0].index
        empty_ids: List = origin_w.index[origin_w <= 0].tolist()

        pair_w = pair_w[pair_w[ORIGIN_ID].isin(weighted)]
        share = pair_w[WEIGHT] / pair_w[ORIGIN_ID].map(origin_w)
        contrib = share * pair_w[ORIGIN_ID].map(origin.values)
        est = contrib.groupby(pair_w[TARGET_ID]).sum().reindex(target.ids, fill_value=0.0)

        if empty_ids:
            self._log_fallback(empty_ids, "origin zone(s) hold no weight")
            if self.fallback == "area":
                pairs = intersection_areas(origin, target, self.min_fraction)
                pairs = pairs[pairs[ORIGIN_ID].isin(empty_ids)]
                est = est + self._area_estimates(pairs, origin, target)

        return est.astype(float), empty_ids

    def _intensive(self, origin, target, target_w, pair_w):
        pair_w = pair_w[pair_w[WEIGHT] > 0]
        num = (pair_w[WEIGHT] * pair_w[ORIGIN_ID].map(origin.values)).groupby(pair_w[TARGET_ID]).sum()
        est = (num / target_w[target_w > 0]).reindex(target.ids)

        empty_targets = target_w.index[target_w <= 0]
        if len(empty_targets) == 0:
            return est.astype(float), []

        self._log_fallback(empty_targets.tolist(), "target zone(s) hold no weight")
        if self.fallback == "area":
            pairs = intersection_areas(origin, target, self.min_fraction)
            area_est = self._area_estimates(pairs, origin, target)
            est.loc[empty_targets] = area_est.loc[empty_targets]
        else:
            est.loc[empty_targets] = np.nan

        # Intensive fallback is per target; no origin is dropped
        return est.astype(float), []

    def _log_fallback(self, ids: List, reason: str) -> None:
        action = "area-weighted shares" if self.fallback == "area" else "zero contribution"
        logger.warning(
            f"    ⚠️ {len(ids)} {reason}; using {action}. Ids: {ids[:10]}"
        )


def interpolate_area_weighted(
    origin: ZoneSet,
    target: ZoneSet,
    *,
    extensive: bool = True,
    min_fraction: float = DEFAULT_MIN_FRACTION,
) -> InterpolationResult:
    """Shortcut for AreaWeightedInterpolator(...).interpolate(origin, target)."""
    return AreaWeightedInterpolator(
        extensive=extensive, min_fraction=min_fraction
    ).interpolate(origin, target)


def interpolate_population_weighted(
    origin: ZoneSet,
    target: ZoneSet,
    weights: ZoneSet,
    *,
    fallback: FallbackPolicy = "area",
    extensive: bool = True,
    min_fraction: float = DEFAULT_MIN_FRACTION,
) -> InterpolationResult:
    """
    Shortcut for PopulationWeightedInterpolator(weights, ...).interpolate(origin, target).

    Args:
        origin: Zones carrying the earlier-period values.
        target: Zones whose boundaries the estimate is wanted on.
        weights: Fine-grained units whose value is the weight (e.g. POP20).
        fallback: Policy for origins without weight ("area" or "zero").
        extensive: False for rates/medians (weighted mean instead of sum).
    """
    return PopulationWeightedInterpolator(
        weights, fallback=fallback, extensive=extensive, min_fraction=min_fraction
    ).interpolate(origin, target)


def make_interpolator(
    method: str,
    weights: Optional[ZoneSet] = None,
    **kwargs,
) -> Interpolator:
    """Builds an interpolator by name ("area" or "population")."""
    if method == "area":
        kwargs.pop("fallback", None)
        return AreaWeightedInterpolator(**kwargs)
    if method == "population":
        if weights is None:
            raise ValueError("Population-weighted interpolation requires weights.")
        return PopulationWeightedInterpolator(weights, **kwargs)
    raise ValueError(f"Unknown interpolation method {method!r}; use 'area' or 'population'.")
