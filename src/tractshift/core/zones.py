"""
TractShift - Zone Value Types.

A ZoneSet is an id-indexed collection of polygons sharing one projected CRS,
optionally carrying one numeric attribute per zone. Joins between zone sets
always go through the id index, never through row position.
"""
from dataclasses import dataclass, field
from typing import Any, Hashable, Iterator, List, NamedTuple, Optional

import geopandas as gpd
import numpy as np
import pandas as pd
from shapely.geometry.base import BaseGeometry

from tractshift.core.geo.utils import ensure_projected, validate_geometries

VALUE_COL = "value"


class Zone(NamedTuple):
    id: Hashable
    geometry: BaseGeometry
    value: Optional[float]


class ZoneSet:
    """
    Ordered, id-indexed zones in one projected CRS.

    Use :meth:`from_frame` to build one from a GeoDataFrame. Construction
    validates CRS, ids, geometries and values and raises on the first
    problem found.
    """

    def __init__(self, gdf: gpd.GeoDataFrame, *, has_values: bool = True, name: str = "zone set"):
        self.name = name
        ensure_projected(gdf, what=name)

        # 1. Ids
        if gdf.index.hasnans:
            raise ValueError(f"The {name} has zones with a null id.")
        if not gdf.index.is_unique:
            dupes = gdf.index[gdf.index.duplicated()].unique().tolist()
            raise ValueError(f"Duplicate zone ids in the {name}: {dupes[:10]}")

        # 2. Geometries
        validate_geometries(gdf)

        # 3. Values
        if has_values:
            if VALUE_COL not in gdf.columns:
                raise ValueError(f"The {name} has no '{VALUE_COL}' column.")
            values = pd.to_numeric(gdf[VALUE_COL], errors="coerce")
            bad = values.isna()
            if bad.any():
                ids = list(gdf.index[bad])
                raise ValueError(
                    f"Non-numeric or missing values in the {name} for zone(s): {ids[:10]}"
                )
            gdf = gdf.assign(**{VALUE_COL: values.astype(float)})
            self._frame = gdf[[VALUE_COL, gdf.geometry.name]]
        else:
            self._frame = gdf[[gdf.geometry.name]]

        self.has_values = has_values

    @classmethod
    def from_frame(
        cls,
        gdf: gpd.GeoDataFrame,
        *,
        id_col: Optional[str] = None,
        value_col: Optional[str] = None,
        name: str = "zone set",
    ) -> "ZoneSet":
        """
        Builds a ZoneSet from a GeoDataFrame.

        Args:
            gdf: Zones with geometry in a projected CRS.
            id_col: Column holding zone ids. Uses the index when omitted.
            value_col: Numeric attribute to carry. Omit for geometry-only targets.
            name: Label used in error messages ("origin", "target", ...).
        """
        frame = gdf.set_index(id_col) if id_col is not None else gdf
        if value_col is not None:
            if value_col not in frame.columns:
                raise ValueError(f"Column '{value_col}' not found in the {name}.")
            if value_col != VALUE_COL:
                frame = frame.drop(columns=VALUE_COL, errors="ignore")
                frame = frame.rename(columns={value_col: VALUE_COL})
        return cls(frame, has_values=value_col is not None, name=name)

    # --- Accessors ---

    @property
    def crs(self) -> Any:
        return self._frame.crs

    @property
    def ids(self) -> pd.Index:
        return self._frame.index

    @property
    def geometry(self) -> gpd.GeoSeries:
        return self._frame.geometry

    @property
    def values(self) -> pd.Series:
        if not self.has_values:
            raise ValueError(f"The {self.name} carries no values.")
        return self._frame[VALUE_COL]

    @property
    def areas(self) -> pd.Series:
        return self._frame.geometry.area

    def total(self) -> float:
        return float(self.values.sum())

    def to_frame(self) -> gpd.GeoDataFrame:
        return self._frame.copy()

    def __len__(self) -> int:
        return len(self._frame)

    def __contains__(self, zone_id: Hashable) -> bool:
        return zone_id in self._frame.index

    def __getitem__(self, zone_id: Hashable) -> Zone:
        row = self._frame.loc[zone_id]
        value = float(row[VALUE_COL]) if self.has_values else None
        return Zone(zone_id, row[self._frame.geometry.name], value)

    def __iter__(self) -> Iterator[Zone]:
        geoms = self._frame.geometry
        values = self._frame[VALUE_COL] if self.has_values else None
        for zid in self._frame.index:
            yield Zone(zid, geoms[zid], None if values is None else float(values[zid]))

    def __repr__(self) -> str:
        return f"ZoneSet(name={self.name!r}, zones={len(self)}, crs={self.crs.to_string()!r})"


@dataclass(frozen=True)
class InterpolationResult:
    """Estimated values on the target zones, indexed by target id."""

    estimates: pd.Series
    method: str
    extensive: bool = True
    weight_totals: Optional[pd.Series] = None
    fallback_ids: List[Hashable] = field(default_factory=list)

    def total(self) -> float:
        return float(np.nansum(self.estimates.to_numpy()))

    def to_frame(self) -> pd.DataFrame:
        df = self.estimates.rename("estimate").to_frame()
        if self.weight_totals is not None:
            df["weight_total"] = self.weight_totals.reindex(df.index)
        return df
