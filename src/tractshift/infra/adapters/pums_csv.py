"""
TractShift - Infrastructure Adapter for ACS PUMS files.

Reads household ("h") and person ("p") microdata CSVs, either from local
paths or from the Census Bureau's state zip files through the disk cache.
"""
from pathlib import Path, PurePosixPath
from typing import Optional, Sequence, Union

import pandas as pd

from tractshift.core.catalog.acs import PUMS_TEMPLATE
from tractshift.core.logic.pums import PUMS_COLUMNS
from tractshift.infra.storage.cache import cached_download, cached_extract_zip, find_file
from tractshift.settings import logger

PUMS_KINDS = ("h", "p")


def read_pums_csv(
    path: Union[str, Path],
    columns: Optional[Sequence[str]] = PUMS_COLUMNS,
) -> pd.DataFrame:
    """
    Reads one PUMS CSV, keeping only ``columns`` (all when None).
    SERIALNO stays a string: it carries a year prefix and letters ("2017HU...").
    """
    wanted = set(columns) if columns is not None else None
    return pd.read_csv(
        path,
        usecols=(lambda c: c in wanted) if wanted is not None else None,
        dtype={"SERIALNO": str},
        low_memory=False,
    )


def fetch_pums(
    year: int,
    state_abbr: str,
    kind: str,
    *,
    span: int = 5,
    columns: Optional[Sequence[str]] = PUMS_COLUMNS,
) -> pd.DataFrame:
    """
    Downloads (once) and reads a state PUMS file.

    Args:
        year: Last year of the ACS period (e.g. 2017 for 2013-2017).
        state_abbr: USPS abbreviation, lower or upper case.
        kind: "h" (households) or "p" (persons).
        span: 1 or 5 (year estimates).
    """
    if kind not in PUMS_KINDS:
        raise ValueError(f"kind must be one of {PUMS_KINDS}, got {kind!r}.")

    url = PUMS_TEMPLATE.format(year=year, span=span, kind=kind, state_abbr=state_abbr.lower())
    zip_name = PurePosixPath(url).name
    rel = Path("pums") / f"{year}_{span}yr" / zip_name

    zip_path = cached_download(url, relpath=rel, timeout=600)
    # The zips also carry the ACS documentation PDF
    csv_pattern = f"psam_{kind}*.csv"
    extract_dir = cached_extract_zip(
        zip_path, extract_dir=zip_path.with_suffix(""), patterns=(csv_pattern,)
    )
    csv_path = find_file(extract_dir, csv_pattern)

    logger.info(f"    📄 Reading PUMS {kind} records: {csv_path.name}")
    return read_pums_csv(csv_path, columns)
