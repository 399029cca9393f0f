import pandas as pd
import pytest

from tractshift.infra.geo import resolver


@pytest.fixture(autouse=True)
def clear_lookup_cache():
    resolver._county_lookup.cache_clear()
    yield
    resolver._county_lookup.cache_clear()


@pytest.fixture
def county_names(mocker):
    return mocker.patch(
        "tractshift.infra.adapters.acs_api.fetch_county_names",
        return_value=pd.DataFrame({
            "county": ["253", "441", "469"],
            "NAME": ["Jones County, Texas", "Taylor County, Texas", "Victoria County, Texas"],
        }),
    )


@pytest.mark.parametrize("value", ["48", 48, "TX", "tx", "Texas", " texas "])
def test_resolve_state(value):
    assert resolver.resolve_state(value) == "48"


def test_resolve_state_with_accents_and_padding():
    assert resolver.resolve_state("1") == "01"
    assert resolver.resolve_state("Puerto Rico") == "72"


@pytest.mark.parametrize("value", ["Atlantis", "03", "99"])
def test_unknown_state_raises(value):
    with pytest.raises(ValueError, match="Could not resolve state"):
        resolver.resolve_state(value)


def test_state_abbreviation():
    assert resolver.state_abbreviation("48") == "TX"
    with pytest.raises(ValueError):
        resolver.state_abbreviation("99")


def test_numeric_counties_skip_the_lookup(county_names):
    assert resolver.resolve_counties("48", ["253", 441, "48469"]) == ["253", "441", "469"]
    county_names.assert_not_called()


def test_county_names_are_matched(county_names):
    result = resolver.resolve_counties("48", ["Jones", "taylor county", "Jones County, Texas"])

    assert result == ["253", "441"]
    # One lookup per state
    county_names.assert_called_once_with("48")


def test_unresolved_counties_are_all_reported(county_names):
    with pytest.raises(ValueError) as excinfo:
        resolver.resolve_counties("48", ["Jones", "Gotham", "Springfield"])

    assert "Gotham" in str(excinfo.value)
    assert "Springfield" in str(excinfo.value)


def test_normalize_text_transliterates():
    assert resolver._normalize_text("  Doña   ANA ") == "dona ana"
    # No combining mark to strip: transliterated, not dropped
    assert resolver._normalize_text("Søndre Ærø") == "sondre aero"


def test_accented_county_names_are_matched(mocker):
    mocker.patch(
        "tractshift.infra.adapters.acs_api.fetch_county_names",
        return_value=pd.DataFrame({
            "county": ["013", "049"],
            "NAME": ["Doña Ana County, New Mexico", "Santa Fe County, New Mexico"],
        }),
    )

    assert resolver.resolve_counties("35", ["Dona Ana", "doña ana county"]) == ["013"]
