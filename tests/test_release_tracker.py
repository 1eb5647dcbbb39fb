"""Tests for release version tracking."""

import requests
import responses

from hlaref.config import RELEASE_PAGE
from hlaref.release_tracker import (
    current_db_version,
    has_new_release,
    load_version_file,
    save_version_file,
    scrape_current_release,
)


class TestScrapeCurrentRelease:
    @responses.activate
    def test_parses_version(self):
        responses.add(
            responses.GET,
            RELEASE_PAGE,
            body="<html>Release 3.55.0 (2024-01)</html>",
        )
        assert scrape_current_release()["version"] == "3.55.0"

    @responses.activate
    def test_version_not_found(self):
        responses.add(
            responses.GET,
            RELEASE_PAGE,
            body="<html>No version here</html>",
        )
        assert scrape_current_release()["version"] == "unknown"


class TestVersionFile:
    def test_save_and_load(self, tmp_path):
        save_version_file(tmp_path, {"db_version": "3.55.0"})
        assert load_version_file(tmp_path)["db_version"] == "3.55.0"
        assert (tmp_path / "version.json").read_text().endswith("\n")

    def test_load_missing(self, tmp_path):
        assert load_version_file(tmp_path) == {}

    def test_current_db_version(self, tmp_path):
        assert current_db_version(tmp_path) == "Latest"
        save_version_file(tmp_path, {"db_version": "3.54.0"})
        assert current_db_version(tmp_path) == "3.54.0"


class TestHasNewRelease:
    @responses.activate
    def test_detects_new_release(self, tmp_path):
        save_version_file(tmp_path, {"db_version": "3.54.0"})
        responses.add(responses.GET, RELEASE_PAGE, body="<html>Release 3.55.0</html>")
        assert has_new_release(tmp_path) is True

    @responses.activate
    def test_no_new_release(self, tmp_path):
        save_version_file(tmp_path, {"db_version": "3.55.0"})
        responses.add(responses.GET, RELEASE_PAGE, body="<html>Release 3.55.0</html>")
        assert has_new_release(tmp_path) is False

    @responses.activate
    def test_nothing_stored(self, tmp_path):
        responses.add(responses.GET, RELEASE_PAGE, body="<html>Release 3.55.0</html>")
        assert has_new_release(tmp_path) is True

    @responses.activate
    def test_network_error(self, tmp_path):
        responses.add(
            responses.GET, RELEASE_PAGE,
            body=requests.ConnectionError("unreachable"),
        )
        assert has_new_release(tmp_path) is False

    @responses.activate
    def test_http_error(self, tmp_path):
        responses.add(responses.GET, RELEASE_PAGE, status=503)
        assert has_new_release(tmp_path) is False

    @responses.activate
    def test_unparseable_page(self, tmp_path):
        save_version_file(tmp_path, {"db_version": "3.55.0"})
        responses.add(responses.GET, RELEASE_PAGE, body="<html>maintenance</html>")
        assert has_new_release(tmp_path) is False
