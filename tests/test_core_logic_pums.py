import numpy as np
import pandas as pd
import pytest

from tractshift.core.logic.pums import (
    contingency_table,
    household_frequency,
    householder_coding,
    households_by_type,
    median_income_by_type,
    merge_household_person,
    prepare_pums,
    weighted_median,
)


@pytest.fixture
def prepared(pums_households, pums_persons):
    merged = merge_household_person(pums_households, pums_persons)
    return prepare_pums(merged, puma=5600, county="Victoria")


def test_merge_keeps_one_row_per_person(pums_households, pums_persons):
    merged = merge_household_person(pums_households, pums_persons)

    assert len(merged) == len(pums_persons)
    assert {"NP", "HINCP", "WGTP", "ESR", "RELSHIPP"} <= set(merged.columns)


def test_merge_requires_serialno(pums_households, pums_persons):
    with pytest.raises(ValueError, match="SERIALNO"):
        merge_household_person(pums_households.drop(columns="SERIALNO"), pums_persons)


def test_prepare_derives_groups(prepared):
    hh = prepared[prepared["hholder"]].set_index("SERIALNO")

    # PUMA filter drops H4
    assert set(hh.index) == {"H1", "H2", "H3"}
    assert (prepared["county"] == "Victoria").all()

    assert hh.loc["H1", "incgrp"] == "$0 - $22,841"
    assert hh.loc["H2", "incgrp"] == "$44,964 - $67,446"
    # Negative income clipped to 0
    assert hh.loc["H3", "hinc_adj"] == 0

    assert hh.loc["H1", "hhsize"] == "1"
    assert hh.loc["H3", "hhsize"] == "5+"

    assert hh.loc["H1", "hhworker"] == "1"
    assert hh.loc["H2", "hhworker"] == "2+"
    assert hh.loc["H3", "hhworker"] == "0"
    assert (hh["hhtype"] == "housing_unit").all()


def test_income_factor_overrides_adjinc(pums_households, pums_persons):
    merged = merge_household_person(pums_households, pums_persons)
    df = prepare_pums(merged, puma=5600, income_factor=2.0)

    assert df.loc[df["SERIALNO"] == "H1", "hinc_adj"].iloc[0] == 20_000
    assert df.loc[df["SERIALNO"] == "H1", "incgrp"].iloc[0] == "$0 - $22,841"
    assert df.loc[df["SERIALNO"] == "H2", "incgrp"].iloc[0] == "$67,447 - $112,410"


def test_household_frequency_is_weighted(prepared):
    freq = household_frequency(prepared).set_index(["incgrp", "hhsize", "hhworker"])

    assert len(freq) == 3
    assert freq.loc[("$0 - $22,841", "1", "1"), "n"] == 10
    assert freq.loc[("$44,964 - $67,446", "3", "2+"), "n"] == 20
    assert freq.loc[("$0 - $22,841", "5+", "0"), "n"] == 30


def test_contingency_table_is_wide_and_zero_filled(prepared):
    table = contingency_table(household_frequency(prepared))

    assert set(table.columns) == {"1_1", "2+_3", "0_5+"}
    assert table.loc[("Victoria", "$0 - $22,841"), "1_1"] == 10
    assert table.loc[("Victoria", "$0 - $22,841"), "0_5+"] == 30
    assert table.loc[("Victoria", "$44,964 - $67,446"), "2+_3"] == 20
    assert table.loc[("Victoria", "$44,964 - $67,446"), "1_1"] == 0


def test_weighted_median():
    assert weighted_median([1, 2, 3], [1, 1, 1]) == 2.0
    assert weighted_median([1, 2], [1, 1]) == 1.5
    assert weighted_median([30, 10, 20], [5, 1, 1]) == 30.0
    # Zero / missing weights are ignored
    assert weighted_median([1, 100, 5], [1, 0, np.nan]) == 1.0
    assert np.isnan(weighted_median([], []))


def test_median_income_and_totals_by_type(prepared):
    medians = median_income_by_type(prepared)
    totals = households_by_type(prepared)

    assert medians["hhtype"].tolist() == ["housing_unit"]
    # Householder incomes 0 (w30), 10k (w10), 50k (w20): half weight lands on 0
    assert medians["wtd_median"].iloc[0] == pytest.approx(5_000)
    assert totals["households"].tolist() == [60]


def test_group_quarters_type(pums_households, pums_persons):
    pums_households.loc[pums_households["SERIALNO"] == "H1", "WGTP"] = 0
    merged = merge_household_person(pums_households, pums_persons)
    df = prepare_pums(merged, puma=5600)

    assert df.loc[df["SERIALNO"] == "H1", "hhtype"].iloc[0] == "group_quarters"
    assert (df["county"] == "all").all()


# --- Householder coding ---


@pytest.fixture
def relp_persons(pums_persons):
    """Pre-2019 person records: RELP == 0 marks the householder."""
    persons = pums_persons.rename(columns={"RELSHIPP": "RELP"})
    persons["RELP"] = persons["RELP"].map({20: 0, 21: 1, 22: 2, 25: 2})
    return persons


def test_householder_coding_detects_vintage():
    assert householder_coding(["SERIALNO", "RELSHIPP"]) == ("RELSHIPP", 20)
    assert householder_coding(["SERIALNO", "RELP"]) == ("RELP", 0)
    assert householder_coding(["RELP"], "RELP", 7) == ("RELP", 7)


def test_householder_coding_errors():
    with pytest.raises(ValueError, match="RELSHIPP"):
        householder_coding(["SERIALNO", "NP"])
    with pytest.raises(ValueError, match="RELP == 0"):
        householder_coding(["RELP"], "RELSHIPP")
    with pytest.raises(ValueError, match="householder_code"):
        householder_coding(["REL"], "REL")


def test_relp_records_give_same_table(pums_households, pums_persons, relp_persons):
    expected = household_frequency(
        prepare_pums(merge_household_person(pums_households, pums_persons), puma=5600)
    )

    df = prepare_pums(merge_household_person(pums_households, relp_persons), puma=5600)

    assert set(df.loc[df["hholder"], "SERIALNO"]) == {"H1", "H2", "H3"}
    pd.testing.assert_frame_equal(household_frequency(df), expected)


def test_missing_relationship_value_is_not_a_householder(pums_households, relp_persons):
    relp_persons.loc[relp_persons["SERIALNO"] == "H3", "RELP"] = np.nan
    df = prepare_pums(merge_household_person(pums_households, relp_persons), puma=5600)

    assert set(df.loc[df["hholder"], "SERIALNO"]) == {"H1", "H2"}
