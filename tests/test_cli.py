"""
Tests for the command line interface.
"""

import os
from unittest.mock import patch

import pytest

from conftest import STA_BASE
from transloader import cli


def run_cli(argv):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    return exc_info.value.code


class TestArgumentValidation:
    """Test that invalid invocations exit with status 2."""

    @pytest.fixture
    def base(self, tmp_path):
        return ["--station", "CXCM", "--cache", str(tmp_path)]

    def test_no_arguments(self):
        assert run_cli([]) == 2

    def test_help(self):
        assert run_cli(["--help"]) == 0

    def test_invalid_verb(self, base):
        assert run_cli(["delete", "metadata", "--source", "environment_canada"] + base) == 2

    def test_invalid_source(self, base):
        assert run_cli(["get", "metadata", "--source", "noaa"] + base) == 2

    def test_missing_cache_directory(self, tmp_path):
        argv = ["get", "metadata", "--source", "environment_canada", "--station", "CXCM"]
        assert run_cli(argv + ["--cache", str(tmp_path / "missing")]) == 2

    def test_put_requires_destination(self, base):
        assert run_cli(["put", "metadata", "--source", "environment_canada"] + base) == 2

    @pytest.mark.parametrize("date", [None, "yesterday", "2019-07-03T14:00:00"])
    def test_put_observations_requires_valid_date(self, base, date):
        argv = ["put", "observations", "--source", "environment_canada"] + base
        argv += ["--destination", STA_BASE]
        if date is not None:
            argv += ["--date", date]
        assert run_cli(argv) == 2

    def test_data_garrison_requires_user(self, base):
        assert run_cli(["get", "metadata", "--source", "data_garrison"] + base) == 2

    def test_campbell_metadata_requires_data_url(self, base):
        assert run_cli(["get", "metadata", "--source", "campbell_scientific"] + base) == 2

    def test_allow_and_block_are_exclusive(self, base):
        argv = ["put", "metadata", "--source", "environment_canada"] + base
        argv += ["--destination", STA_BASE, "--allow", "air_temp", "--block", "rel_hum"]
        assert run_cli(argv) == 2

    def test_case_insensitive_verbs(self, tmp_path):
        parser = cli.build_parser()
        args = parser.parse_args(
            ["GET", "Metadata", "--source", "environment_canada", "--station", "X", "--cache", "."]
        )
        assert (args.verb, args.object) == ("get", "metadata")


class TestCommands:
    """Test command dispatch against the fake servers."""

    @pytest.fixture(autouse=True)
    def route_http(self, http):
        # The CLI closes its client; keep the shared fake open across commands
        with patch("transloader.cli.HTTPClient", return_value=http), patch.object(
            http, "close"
        ):
            yield

    def test_get_metadata(self, tmp_path, environment_canada_files):
        code = cli.main(
            [
                "get",
                "metadata",
                "--source",
                "environment_canada",
                "--station",
                "CXCM",
                "--cache",
                str(tmp_path),
            ]
        )

        assert code == 0
        assert (tmp_path / "v2" / "environment_canada" / "metadata" / "CXCM.json").exists()

    def test_full_cycle(self, tmp_path, environment_canada_files, sensorthings):
        base = ["--source", "environment_canada", "--station", "CXCM", "--cache", str(tmp_path)]

        assert cli.main(["get", "metadata"] + base) == 0
        assert cli.main(["put", "metadata", "--destination", STA_BASE] + base) == 0
        assert cli.main(["get", "observations"] + base) == 0
        assert (
            cli.main(
                ["put", "observations", "--destination", STA_BASE, "--date", "latest"] + base
            )
            == 0
        )

        assert len(sensorthings.posted("Things")) == 1
        assert len(sensorthings.posted("Observations")) == 4

    def test_runtime_error_exits_1(self, tmp_path, file_server):
        """Test that a station with no data URLs fails with status 1."""
        code = cli.main(
            [
                "get",
                "observations",
                "--source",
                "campbell_scientific",
                "--station",
                "606830",
                "--cache",
                str(tmp_path),
            ]
        )

        assert code == 1

    def test_invalid_environment_exits_1(self, tmp_path):
        """Test that a malformed TRANSLOADER_* value is reported without a traceback."""
        argv = ["get", "metadata", "--source", "environment_canada", "--station", "CXCM"]

        with patch.dict(os.environ, {"TRANSLOADER_TIMEOUT": "abc"}):
            assert cli.main(argv + ["--cache", str(tmp_path)]) == 1

    def test_corrupt_cache_exits_1(self, tmp_path, sensorthings):
        metadata_dir = tmp_path / "v2" / "environment_canada" / "metadata"
        metadata_dir.mkdir(parents=True)
        (metadata_dir / "CXCM.json").write_text("{not json")

        code = cli.main(
            [
                "put",
                "metadata",
                "--source",
                "environment_canada",
                "--station",
                "CXCM",
                "--cache",
                str(tmp_path),
                "--destination",
                STA_BASE,
            ]
        )

        assert code == 1
        assert sensorthings.posts == []

    def test_unwritable_cache_exits_1(self, tmp_path, environment_canada_files):
        argv = ["get", "metadata", "--source", "environment_canada", "--station", "CXCM"]

        with patch("transloader.cache.tempfile.mkstemp", side_effect=PermissionError("denied")):
            assert cli.main(argv + ["--cache", str(tmp_path)]) == 1
