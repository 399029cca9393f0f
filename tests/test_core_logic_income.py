import pandas as pd
import pytest

from tractshift.core.logic.income import (
    add_moe_interval,
    all_years_available,
    check_variable_availability,
    flag_rank_overlap,
    rank_top_bottom,
    sort_by_moe,
    tidy_income_series,
)


def test_variable_availability_per_year():
    catalogs = {
        2012: {"B01003_001E"},
        2011: {"B19013A_001E", "B01003_001E"},
        2013: {"B19013A_001E"},
    }
    result = check_variable_availability("B19013A_001", catalogs)

    assert result["year"].tolist() == [2011, 2012, 2013]
    assert result["table_exists"].tolist() == [True, False, True]
    assert not all_years_available(result)
    assert all_years_available(result[result["table_exists"]])


def test_tidy_series_renames_and_dedupes():
    raw = pd.DataFrame({
        "GEOID": ["48253", "48253", "48441"],
        "NAME": ["Jones County, Texas"] * 2 + ["Taylor County, Texas"],
        "variable": ["B19013A_001"] * 3,
        "estimate": [50_000, 50_000, 60_000],
        "moe": [5_000, 5_000, 2_000],
        "year": [2020, 2020, 2020],
    })
    tidy = tidy_income_series(raw)

    assert list(tidy.columns) == ["year", "county", "estimate", "moe"]
    assert len(tidy) == 2
    assert tidy.index.name == "GEOID"


def test_moe_interval():
    df = add_moe_interval(pd.DataFrame({"estimate": [100.0], "moe": [15.0]}))

    assert df.loc[0, "lower"] == 85.0
    assert df.loc[0, "upper"] == 115.0


def test_rank_top_bottom_keeps_extremes():
    df = pd.DataFrame({"county": [f"c{i}" for i in range(25)], "estimate": range(25)})
    ranked = rank_top_bottom(df, n=10)

    assert len(ranked) == 20
    assert ranked["estimate"].iloc[0] == 24
    assert ranked["estimate"].iloc[-1] == 0
    # The middle five are dropped
    assert not ranked["estimate"].isin([10, 11, 12, 13, 14]).any()


def test_rank_top_bottom_never_repeats_rows():
    df = pd.DataFrame({"county": ["a", "b", "c"], "estimate": [3.0, None, 1.0]})
    ranked = rank_top_bottom(df, n=10)

    assert ranked["county"].tolist() == ["a", "c"]


def test_rank_top_bottom_rejects_bad_n():
    with pytest.raises(ValueError):
        rank_top_bottom(pd.DataFrame({"estimate": [1]}), n=0)


def test_flag_rank_overlap_per_year():
    df = pd.DataFrame({
        "year": [2020, 2020, 2020, 2021],
        "county": ["a", "b", "c", "a"],
        "estimate": [100.0, 95.0, 50.0, 10.0],
        "moe": [10.0, 10.0, 5.0, 1.0],
    })
    flagged = flag_rank_overlap(df).set_index(["year", "county"])

    # a: [90, 110] vs b: [85, 105] overlap; b vs c: [45, 55] do not
    assert bool(flagged.loc[(2020, "a"), "overlaps_next"])
    assert not bool(flagged.loc[(2020, "b"), "overlaps_next"])
    assert not bool(flagged.loc[(2020, "c"), "overlaps_next"])
    assert flagged.loc[(2020, "c"), "rank"] == 3
    assert flagged.loc[(2021, "a"), "rank"] == 1


def test_sort_by_moe():
    df = pd.DataFrame({"county": ["a", "b"], "moe": [1.0, 9.0]})
    assert sort_by_moe(df)["county"].tolist() == ["b", "a"]
