"""Tests for the s3-download command-line interface."""

import gzip

import boto3
from moto import mock_aws
from typer.testing import CliRunner

from s3_download import __version__
from s3_download.cli import app

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_invalid_s3_path():
    """Test a path without the s3:// scheme is rejected."""
    result = runner.invoke(app, ["list", "test-bucket/logs"])

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_invalid_log_level():
    result = runner.invoke(app, ["--log-level", "chatty", "list", "s3://test-bucket/"])

    assert result.exit_code == 1
    assert "Unknown log level" in result.output


def test_ungzip(tmp_path):
    (tmp_path / "a.txt.gz").write_bytes(gzip.compress(b"alpha"))

    result = runner.invoke(app, ["ungzip", str(tmp_path)])

    assert result.exit_code == 0
    assert (tmp_path / "a.txt").read_bytes() == b"alpha"
    assert not (tmp_path / "a.txt.gz").exists()


def test_ungzip_keep_original(tmp_path):
    (tmp_path / "a.txt.gz").write_bytes(gzip.compress(b"alpha"))

    result = runner.invoke(app, ["ungzip", str(tmp_path), "--keep-original"])

    assert result.exit_code == 0
    assert (tmp_path / "a.txt.gz").exists()


@mock_aws
class TestObjectCommands:
    """Test object commands against a mocked bucket."""

    def setup_method(self, method):
        """Set up test environment."""
        self.s3_client = boto3.client("s3", region_name="us-east-1")
        self.s3_client.create_bucket(Bucket="test-bucket")

        for key, body in {
            "logs/app.log": b"log",
            "logs/old/app.1.log": b"old",
            "backups/x.bak": b"backup",
            "site/index.html": b"<html/>",
            "site/logo.png": b"\x89PNG",
            "site/web.config": b"<configuration/>",
        }.items():
            self.s3_client.put_object(Bucket="test-bucket", Key=key, Body=body)

    def _keys(self, prefix=""):
        response = self.s3_client.list_objects_v2(Bucket="test-bucket", Prefix=prefix)
        return sorted(obj["Key"] for obj in response.get("Contents", []))

    def test_list(self):
        result = runner.invoke(app, ["list", "s3://test-bucket/logs/"])

        assert result.exit_code == 0
        assert "logs/app.log" in result.output
        assert "logs/old/app.1.log" in result.output

    def test_list_non_recursive_with_global_options(self):
        result = runner.invoke(
            app,
            [
                "--region",
                "us-east-1",
                "list",
                "s3://test-bucket/logs/",
                "--no-recursive",
            ],
        )

        assert result.exit_code == 0
        assert "logs/app.log" in result.output
        assert "logs/old/app.1.log" not in result.output

    def test_list_missing_bucket(self):
        result = runner.invoke(app, ["list", "s3://missing-bucket/"])

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_download_into_directory(self, tmp_path):
        result = runner.invoke(
            app, ["download", "s3://test-bucket/backups/x.bak", str(tmp_path)]
        )

        assert result.exit_code == 0
        assert (tmp_path / "x.bak").read_bytes() == b"backup"

    def test_download_with_remove(self, tmp_path):
        target = tmp_path / "copy.bak"

        result = runner.invoke(
            app,
            ["download", "s3://test-bucket/backups/x.bak", str(target), "--remove"],
        )

        assert result.exit_code == 0
        assert target.exists()
        assert self._keys("backups/") == []

    def test_upload_to_folder(self, tmp_path):
        local = tmp_path / "notes.txt"
        local.write_text("notes")

        result = runner.invoke(
            app, ["upload", str(local), "s3://test-bucket/uploads/"]
        )

        assert result.exit_code == 0
        assert "s3://test-bucket/uploads/notes.txt" in result.output
        assert self._keys("uploads/") == ["uploads/notes.txt"]

    def test_upload_missing_file(self, tmp_path):
        result = runner.invoke(
            app, ["upload", str(tmp_path / "absent"), "s3://test-bucket/a.txt"]
        )

        assert result.exit_code == 1

    def test_delete(self):
        result = runner.invoke(app, ["delete", "s3://test-bucket/backups/x.bak"])

        assert result.exit_code == 0
        assert self._keys("backups/") == []

    def test_delete_recursive(self):
        result = runner.invoke(app, ["delete", "s3://test-bucket/logs/", "-r"])

        assert result.exit_code == 0
        assert self._keys("logs/") == []

    def test_copy_and_move(self):
        result = runner.invoke(
            app,
            ["copy", "s3://test-bucket/backups/x.bak", "s3://test-bucket/keep/x.bak"],
        )
        assert result.exit_code == 0
        assert self._keys("keep/") == ["keep/x.bak"]

        result = runner.invoke(
            app,
            ["move", "s3://test-bucket/logs/", "s3://test-bucket/archive/", "-r"],
        )
        assert result.exit_code == 0
        assert self._keys("logs/") == []
        assert self._keys("archive/") == ["archive/app.log", "archive/old/app.1.log"]

    def test_copy_across_buckets_rejected(self):
        result = runner.invoke(
            app, ["copy", "s3://test-bucket/a.txt", "s3://other-bucket/a.txt"]
        )

        assert result.exit_code == 1
        assert "same bucket" in result.output

    def test_find(self, tmp_path):
        result = runner.invoke(
            app, ["find", "s3://test-bucket/", "*.bak", str(tmp_path)]
        )

        assert result.exit_code == 0
        assert (tmp_path / "x.bak").exists()

    def test_find_no_match(self, tmp_path):
        result = runner.invoke(
            app, ["find", "s3://test-bucket/", "*.zip", str(tmp_path)]
        )

        assert result.exit_code == 1
        assert list(tmp_path.iterdir()) == []

    def test_restore_text_only(self, tmp_path):
        result = runner.invoke(
            app,
            [
                "restore",
                "s3://test-bucket/site",
                str(tmp_path),
                "--text-only",
                "--exclude",
                "web.config",
            ],
        )

        assert result.exit_code == 0
        assert "Downloaded: 1" in result.output
        assert (tmp_path / "index.html").exists()
        assert not (tmp_path / "logo.png").exists()
        assert not (tmp_path / "web.config").exists()

    def test_restore_extension_option(self, tmp_path):
        result = runner.invoke(
            app,
            ["restore", "s3://test-bucket/site", str(tmp_path), "-e", "png"],
        )

        assert result.exit_code == 0
        assert (tmp_path / "logo.png").exists()
        assert not (tmp_path / "index.html").exists()


@mock_aws
class TestLifecycleCommands:
    """Test the lifecycle sub-commands against a mocked bucket."""

    def setup_method(self, method):
        """Set up test environment."""
        self.s3_client = boto3.client("s3", region_name="us-east-1")
        self.s3_client.create_bucket(Bucket="test-bucket")

    def test_show_without_configuration(self):
        result = runner.invoke(app, ["lifecycle", "show", "test-bucket"])

        assert result.exit_code == 0
        assert "no lifecycle configuration" in result.output

    def test_add_update_remove(self):
        result = runner.invoke(
            app,
            [
                "lifecycle",
                "add",
                "test-bucket",
                "expire-tmp",
                "--days",
                "7",
                "--prefix",
                "tmp/",
            ],
        )
        assert result.exit_code == 0

        result = runner.invoke(app, ["lifecycle", "show", "test-bucket"])
        assert "expire-tmp" in result.output
        assert "days=7" in result.output

        result = runner.invoke(
            app,
            [
                "lifecycle",
                "update",
                "test-bucket",
                "expire-tmp",
                "--days",
                "30",
                "--disabled",
            ],
        )
        assert result.exit_code == 0

        result = runner.invoke(app, ["lifecycle", "show", "test-bucket"])
        assert "days=30" in result.output
        assert "disabled" in result.output

        result = runner.invoke(
            app, ["lifecycle", "remove", "test-bucket", "expire-tmp"]
        )
        assert result.exit_code == 0

        result = runner.invoke(app, ["lifecycle", "show", "test-bucket"])
        assert "no lifecycle configuration" in result.output

    def test_update_unknown_rule(self):
        result = runner.invoke(
            app, ["lifecycle", "update", "test-bucket", "nope", "--days", "1"]
        )

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_clear(self):
        runner.invoke(
            app, ["lifecycle", "add", "test-bucket", "r1", "--days", "1"]
        )

        result = runner.invoke(app, ["lifecycle", "clear", "test-bucket"])

        assert result.exit_code == 0
        show = runner.invoke(app, ["lifecycle", "show", "test-bucket"])
        assert "no lifecycle configuration" in show.output
