import numpy as np
import pandas as pd
import pytest
from shapely.geometry import Point, Polygon, box

from tractshift.core.errors import GeometryError, ProjectionError
from tractshift.core.geo.utils import repair_geometries, to_projected
from tractshift.core.zones import InterpolationResult, Zone, ZoneSet


def test_from_frame_indexes_by_id(grid_origin_gdf):
    zs = ZoneSet.from_frame(grid_origin_gdf.reset_index(), id_col="GEOID", value_col="estimate")

    assert len(zs) == 4
    assert list(zs.ids) == ["A", "B", "C", "D"]
    assert zs.total() == pytest.approx(100.0)
    assert "B" in zs
    assert zs["B"] == Zone("B", box(10, 0, 20, 10), 20.0)


def test_iteration_yields_zones(grid_origin_gdf):
    zs = ZoneSet.from_frame(grid_origin_gdf, value_col="estimate")
    zones = list(zs)

    assert [z.id for z in zones] == ["A", "B", "C", "D"]
    assert zones[0].value == 10.0
    assert zones[0].geometry.area == pytest.approx(100.0)


def test_geometry_only_zone_set(halves_gdf):
    zs = ZoneSet.from_frame(halves_gdf)

    assert not zs.has_values
    assert zs["T1"].value is None
    with pytest.raises(ValueError):
        zs.values


def test_duplicate_ids_are_rejected(grid_origin_gdf):
    gdf = grid_origin_gdf.rename(index={"B": "A"})

    with pytest.raises(ValueError, match="Duplicate"):
        ZoneSet.from_frame(gdf, value_col="estimate")


def test_missing_values_are_rejected(grid_origin_gdf):
    grid_origin_gdf.loc["C", "estimate"] = np.nan

    with pytest.raises(ValueError, match="C"):
        ZoneSet.from_frame(grid_origin_gdf, value_col="estimate")


def test_unknown_value_column(grid_origin_gdf):
    with pytest.raises(ValueError, match="not found"):
        ZoneSet.from_frame(grid_origin_gdf, value_col="population")


def test_missing_crs_is_rejected(zones_factory):
    gdf = zones_factory([("A", box(0, 0, 1, 1), 1.0)], crs=None)

    with pytest.raises(ProjectionError, match="no CRS"):
        ZoneSet.from_frame(gdf, value_col="estimate")


def test_non_polygon_geometry_is_rejected(zones_factory):
    gdf = zones_factory([("P", Point(1, 1), 1.0)])

    with pytest.raises(GeometryError, match="polygons"):
        ZoneSet.from_frame(gdf, value_col="estimate")


def test_empty_geometry_is_rejected(zones_factory):
    gdf = zones_factory([("E", box(0, 0, 1, 1), 1.0)])
    gdf.loc["E", "geometry"] = None

    with pytest.raises(GeometryError) as excinfo:
        ZoneSet.from_frame(gdf, value_col="estimate")
    assert excinfo.value.zone_ids == ["E"]


def test_repair_geometries_fixes_bowtie(zones_factory):
    bowtie = Polygon([(0, 0), (10, 10), (10, 0), (0, 10)])
    gdf = repair_geometries(zones_factory([("BAD", bowtie, 1.0), ("OK", box(20, 20, 30, 30), 2.0)]))

    assert gdf.is_valid.all()
    assert gdf.geometry["BAD"].geom_type in ("Polygon", "MultiPolygon")
    assert gdf.geometry["BAD"].area == pytest.approx(50.0)
    # Valid rows are untouched
    assert gdf.geometry["OK"].equals(box(20, 20, 30, 30))


def test_to_projected_reprojects_explicitly(zones_factory):
    gdf = zones_factory([("Z", box(-86.8, 33.2, -86.7, 33.3), 1.0)], crs="EPSG:4326")
    projected = to_projected(gdf, 5070)

    assert projected.crs.equals("EPSG:5070")
    assert not projected.crs.is_geographic
    # Same CRS: no copy, no work
    assert to_projected(projected, "EPSG:5070") is projected


def test_interpolation_result_frame():
    result = InterpolationResult(
        estimates=pd.Series({"A": 1.0, "B": np.nan}),
        method="population",
        weight_totals=pd.Series({"A": 5.0, "B": 0.0}),
    )

    frame = result.to_frame()
    assert list(frame.columns) == ["estimate", "weight_total"]
    assert result.total() == pytest.approx(1.0)
