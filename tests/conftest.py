import pytest
import pandas as pd
import geopandas as gpd
from shapely.geometry import box

CRS = "EPSG:5070"


def make_gdf(rows, crs=CRS):
    """rows: list of (id, geometry, value) -> GeoDataFrame indexed by id."""
    df = pd.DataFrame(rows, columns=["GEOID", "geometry", "estimate"])
    return gpd.GeoDataFrame(df, geometry="geometry", crs=crs).set_index("GEOID")


@pytest.fixture
def zones_factory():
    """Exposes make_gdf to tests that need ad-hoc layouts."""
    return make_gdf


@pytest.fixture
def single_origin_gdf():
    """One 10x10 zone (area 100) holding 200."""
    return make_gdf([("O", box(0, 0, 10, 10), 200.0)])


@pytest.fixture
def halves_gdf():
    """Two equal halves of the single origin zone."""
    return make_gdf([
        ("T1", box(0, 0, 5, 10), 0.0),
        ("T2", box(5, 0, 10, 10), 0.0),
    ])


@pytest.fixture
def grid_origin_gdf():
    """2x2 grid of 10x10 cells covering (0, 0)-(20, 20)."""
    return make_gdf([
        ("A", box(0, 0, 10, 10), 10.0),
        ("B", box(10, 0, 20, 10), 20.0),
        ("C", box(0, 10, 10, 20), 30.0),
        ("D", box(10, 10, 20, 20), 40.0),
    ])


@pytest.fixture
def strips_target_gdf():
    """Four vertical 5x20 strips tiling the same extent as the grid."""
    return make_gdf([
        (f"S{i}", box(5 * i, 0, 5 * (i + 1), 20), 0.0) for i in range(4)
    ])


@pytest.fixture
def blocks_gdf():
    """Weight units inside the single origin: 3 on the left half, 1 on the right."""
    df = pd.DataFrame({
        "GEOID": ["B1", "B2"],
        "POP20": [3, 1],
        "geometry": [box(1, 1, 3, 3), box(6, 1, 8, 3)],
    })
    return gpd.GeoDataFrame(df, crs=CRS)


@pytest.fixture
def grid_blocks_gdf():
    """One 5x5 block per quarter of every grid cell, with uneven weights."""
    rows = []
    weight = 1
    for x in range(0, 20, 5):
        for y in range(0, 20, 5):
            rows.append({"GEOID": f"b{x}_{y}", "POP20": weight, "geometry": box(x, y, x + 5, y + 5)})
            weight = weight % 7 + 1
    return gpd.GeoDataFrame(pd.DataFrame(rows), crs=CRS)


@pytest.fixture
def pums_households():
    """Minimal household records: three in PUMA 5600, one elsewhere."""
    return pd.DataFrame({
        "SERIALNO": ["H1", "H2", "H3", "H4"],
        "ST": [48, 48, 48, 48],
        "PUMA": [5600, 5600, 5600, 5700],
        "ADJINC": [1_000_000] * 4,
        "NP": [1, 3, 6, 2],
        "HINCP": [10_000, 50_000, -500, 90_000],
        "WGTP": [10, 20, 30, 40],
    })


@pytest.fixture
def pums_persons():
    """Person records; ESR 1/2 are workers, NaN means not in universe."""
    return pd.DataFrame({
        "SERIALNO": ["H1", "H2", "H2", "H2", "H3", "H3", "H4"],
        "ST": [48] * 7,
        "PUMA": [5600, 5600, 5600, 5600, 5600, 5600, 5700],
        "ADJINC": [1_000_000] * 7,
        "RELSHIPP": [20, 20, 21, 25, 20, 22, 20],
        "ESR": [1, 1, 2, 6, 6, None, 1],
        "AGEP": [40, 45, 43, 12, 70, 8, 30],
        "PWGTP": [10, 20, 20, 20, 30, 30, 40],
    })
