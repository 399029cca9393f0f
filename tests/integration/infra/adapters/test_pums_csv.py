import zipfile

import pytest

from tractshift.infra.adapters.pums_csv import fetch_pums, read_pums_csv

pytestmark = pytest.mark.integration

PERSONS_CSV = (
    "RT,SERIALNO,ST,PUMA,RELP,ESR,PWGTP,FOO\n"
    "P,2017000000001,48,05600,0,1,10,x\n"
    "P,2017000000001,48,05600,1,6,12,y\n"
)


@pytest.fixture
def persons_zip(tmp_path):
    """State person file as published: the CSV plus the documentation PDF."""
    archive = tmp_path / "csv_ptx.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("psam_p48.csv", PERSONS_CSV)
        zf.writestr("ACS2013_2017_PUMS_README.pdf", b"%PDF-1.4")
    return archive


def test_read_keeps_requested_columns(tmp_path):
    path = tmp_path / "psam_p48.csv"
    path.write_text(PERSONS_CSV)

    df = read_pums_csv(path, ["SERIALNO", "RELP", "RELSHIPP"])

    assert list(df.columns) == ["SERIALNO", "RELP"]
    assert df["SERIALNO"].tolist() == ["2017000000001", "2017000000001"]


def test_fetch_reads_csv_from_state_zip(mocker, persons_zip):
    download = mocker.patch(
        "tractshift.infra.adapters.pums_csv.cached_download", return_value=persons_zip
    )

    df = fetch_pums(2017, "TX", "p")

    assert download.call_args.args[0] == (
        "https://www2.census.gov/programs-surveys/acs/data/pums/2017/5-Year/csv_ptx.zip"
    )
    assert df["RELP"].tolist() == [0, 1]
    assert "FOO" not in df.columns
    # Documentation is not unpacked
    assert [p.name for p in persons_zip.with_suffix("").iterdir()] == ["psam_p48.csv"]


def test_fetch_rejects_unknown_kind():
    with pytest.raises(ValueError, match="kind"):
        fetch_pums(2017, "TX", "x")
