"""Track IPD-IMGT/HLA release versions and detect updates."""

import json
import logging
import re
from pathlib import Path

import requests

from .config import DEFAULT_DB_VERSION, RELEASE_PAGE, VERSION_FILE

logger = logging.getLogger(__name__)


def scrape_current_release() -> dict:
    """
    Scrape the current IPD-IMGT/HLA release from the project homepage.

    Returns {"version": "3.55.0"} or {"version": "unknown"}.
    """
    resp = requests.get(RELEASE_PAGE, timeout=30)
    resp.raise_for_status()

    match = re.search(r"Release\s+([\d.]+\d)", resp.text)
    if match:
        return {"version": match.group(1)}
    return {"version": "unknown"}


def load_version_file(repo_root: Path) -> dict:
    """Load version.json from the repo root."""
    path = Path(repo_root) / VERSION_FILE
    if path.exists():
        return json.loads(path.read_text())
    return {}


def save_version_file(repo_root: Path, data: dict) -> None:
    """Write version.json."""
    path = Path(repo_root) / VERSION_FILE
    path.write_text(json.dumps(data, indent=2) + "\n")


def current_db_version(repo_root: Path) -> str:
    """Database version the local records were built from."""
    return load_version_file(repo_root).get("db_version") or DEFAULT_DB_VERSION


def has_new_release(repo_root: Path) -> bool:
    """True if IPD-IMGT/HLA has published a release newer than the stored one.

    Network failures are logged and reported as "no new release".
    """
    stored = load_version_file(repo_root).get("db_version", "")
    try:
        remote = scrape_current_release()
    except requests.RequestException as e:
        logger.error("Failed to check IPD-IMGT/HLA release: %s", e)
        return False
    if remote["version"] == "unknown":
        logger.warning("No release number found on %s", RELEASE_PAGE)
        return False
    return remote["version"] != stored
