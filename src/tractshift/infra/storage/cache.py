"""TractShift disk cache & HTTP utilities."""

from __future__ import annotations

import json
import zipfile
from fnmatch import fnmatch
from functools import lru_cache
from pathlib import Path, PurePosixPath
from typing import Any, Optional, Sequence

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from tractshift.settings import get_cache_dir, logger


@lru_cache(maxsize=1)
def get_session(retries: int = 3, backoff_factor: float = 0.5) -> requests.Session:
    """Shared requests Session with automatic retries and exponential backoff."""
    session = requests.Session()
    retry = Retry(
        total=retries,
        read=retries,
        connect=retries,
        backoff_factor=backoff_factor,
        # The Census API answers 503 under load; 429 when keyless quota is hit
        status_forcelist=(429, 500, 502, 503, 504),
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def cached_download(
    url: str,
    *,
    relpath: Path,
    timeout: int = 180,
    force: bool = False,
) -> Path:
    """
    Download a URL to the TractShift cache directory (or reuse if present).

    Streams to a temporary file and renames on success, so an interrupted
    download never leaves a truncated file behind.
    """
    out = get_cache_dir() / relpath
    out.parent.mkdir(parents=True, exist_ok=True)

    if out.exists() and not force:
        return out

    logger.info(f"    ⬇️  Downloading (cached): {url}")
    temp_out = out.with_suffix(out.suffix + ".tmp")

    try:
        with get_session().get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with open(temp_out, "wb") as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
        temp_out.replace(out)

    except requests.RequestException as e:
        if temp_out.exists():
            temp_out.unlink()
        raise RuntimeError(f"Failed to download {url} after retries.") from e

    return out


def cached_json(url: str, *, relpath: Path, timeout: int = 120) -> Any:
    """Downloads (once) and parses a JSON document."""
    path = cached_download(url, relpath=relpath, timeout=timeout)
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _member_matches(member: str, patterns: Optional[Sequence[str]]) -> bool:
    if patterns is None:
        return True
    name = PurePosixPath(member).name
    return any(fnmatch(name, p) for p in patterns)


def cached_extract_zip(
    zip_path: Path,
    *,
    extract_dir: Path,
    patterns: Optional[Sequence[str]] = None,
    force: bool = False,
) -> Path:
    """
    Unpacks a downloaded archive next to it, once.

    Only members whose file name matches one of ``patterns`` are written
    (all members when None). Members resolving outside extract_dir abort
    the extraction before anything is written.
    """
    if extract_dir.exists() and any(extract_dir.iterdir()) and not force:
        return extract_dir

    root = extract_dir.resolve()

    with zipfile.ZipFile(zip_path) as zf:
        wanted = [m for m in zf.namelist() if _member_matches(m, patterns)]
        for member in wanted:
            if not (root / member).resolve().is_relative_to(root):
                raise ValueError(f"Security violation: Zip Slip detected in {member}")

        logger.info(f"    📦 Extracting {len(wanted)} file(s) from {zip_path.name}")
        extract_dir.mkdir(parents=True, exist_ok=True)
        zf.extractall(extract_dir, members=wanted)

    return extract_dir


def find_file(root: Path, pattern: str) -> Path:
    """
    First file under root (recursive, sorted) matching pattern.
    Raises FileNotFoundError naming what the directory does hold.
    """
    matches = sorted(p for p in root.rglob(pattern) if p.is_file())
    if not matches:
        found = sorted(p.name for p in root.rglob("*") if p.is_file())
        raise FileNotFoundError(f"No '{pattern}' file in {root.name}. Found: {found[:10]}")
    return matches[0]
