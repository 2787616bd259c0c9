"""Command-line interface for s3-download.

Commands:
    - restore: Mirror a bucket folder onto the local filesystem
    - ungzip: Extract every .gz file below a local directory
    - list: List object keys under a bucket folder
    - find: Download the first object whose name matches a wildcard
    - download / upload: Transfer single objects
    - delete / copy / move: Manage objects or whole folders in a bucket
    - lifecycle: Show and edit bucket expiration rules

AWS credentials are given once, before the command name, and fall back to
the default AWS credential chain.
"""

import os
from dataclasses import dataclass
from typing import Annotated, NoReturn, Optional

import typer

from . import __version__
from .cli_params import (
    aws_access_key_option,
    aws_endpoint_url_option,
    aws_profile_option,
    aws_region_option,
    aws_secret_key_option,
    aws_session_token_option,
    expiration_days_option,
    log_level_option,
    recursive_option,
    reduced_redundancy_option,
    remove_after_download_option,
    rule_enabled_option,
    rule_prefix_option,
    s3_path_argument,
)
from .core import set_log_level
from .core.exceptions import ValidationError
from .objectstorage import S3BucketHelper, S3ClientManager
from .objectstorage.keys import DELIMITER, key_basename
from .objectstorage.results import HANDLED_ERRORS, BatchResult
from .restore import (
    TEXT_FILE_EXTENSIONS,
    RestoreConfig,
    restore_from_s3,
    ungzip_files,
)

app = typer.Typer(
    name="s3-download",
    help="Restore, list and manage objects in S3 buckets.",
    no_args_is_help=True,
)
lifecycle_app = typer.Typer(
    help="Show and edit bucket lifecycle (expiration) rules.",
    no_args_is_help=True,
)
app.add_typer(lifecycle_app, name="lifecycle")


@dataclass
class AwsOptions:
    """Connection options shared by every command."""

    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    region_name: Optional[str] = None
    endpoint_url: Optional[str] = None
    aws_profile: Optional[str] = None

    def helper(self, bucket_name: str) -> S3BucketHelper:
        return S3BucketHelper.from_credentials(
            bucket_name,
            access_key_id=self.access_key_id,
            secret_access_key=self.secret_access_key,
            region_name=self.region_name,
            session_token=self.session_token,
            endpoint_url=self.endpoint_url,
            aws_profile=self.aws_profile,
        )


def version_callback(value: bool) -> None:
    """Display version information."""
    if value:
        typer.echo(f"s3-download {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    access_key_id: Annotated[Optional[str], aws_access_key_option()] = None,
    secret_access_key: Annotated[Optional[str], aws_secret_key_option()] = None,
    session_token: Annotated[Optional[str], aws_session_token_option()] = None,
    region_name: Annotated[Optional[str], aws_region_option()] = None,
    endpoint_url: Annotated[Optional[str], aws_endpoint_url_option()] = None,
    aws_profile: Annotated[Optional[str], aws_profile_option()] = None,
    log_level: Annotated[Optional[str], log_level_option()] = None,
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, help="Show version."),
    ] = None,
) -> None:
    """
    s3-download: restore and manage S3 bucket contents.
    """
    if log_level:
        try:
            set_log_level(log_level)
        except ValidationError as e:
            _fail(str(e))
    ctx.obj = AwsOptions(
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        session_token=session_token,
        region_name=region_name,
        endpoint_url=endpoint_url,
        aws_profile=aws_profile,
    )


def _fail(message: str) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def _report_batch(batch: BatchResult, verb: str) -> None:
    for key in batch.succeeded:
        typer.echo(f"{verb}: {key}")
    for key, reason in batch.failed.items():
        typer.echo(f"Failed: {key}: {reason}", err=True)
    if batch.stopped_early:
        typer.echo("Stopped at the first failure.", err=True)
    if not batch.ok:
        raise typer.Exit(1)


def _same_bucket(source: str, destination: str) -> tuple[str, str, str]:
    bucket, key = S3ClientManager.parse_s3_path(source)
    dest_bucket, dest_key = S3ClientManager.parse_s3_path(destination)
    if bucket != dest_bucket:
        raise ValidationError(
            f"Source and destination must be in the same bucket: "
            f"'{bucket}' != '{dest_bucket}'"
        )
    return bucket, key, dest_key


@app.command("restore")
def restore_cmd(
    ctx: typer.Context,
    source: Annotated[str, s3_path_argument("Bucket folder to restore")],
    destination: Annotated[str, typer.Argument(help="Local directory")],
    extensions: Annotated[
        Optional[list[str]],
        typer.Option(
            "--extension", "-e", help="Only restore files with this extension"
        ),
    ] = None,
    text_only: Annotated[
        bool,
        typer.Option("--text-only", help="Only restore web source and text files"),
    ] = False,
    exclude: Annotated[
        Optional[list[str]],
        typer.Option("--exclude", help="File name never restored"),
    ] = None,
    recursive: Annotated[bool, recursive_option()] = True,
    assume_gzip: Annotated[
        bool,
        typer.Option("--assume-gzip", help="Objects are gzip streams, save as .gz"),
    ] = False,
    extract: Annotated[
        bool,
        typer.Option("--extract-gzip", help="Extract downloaded .gz files"),
    ] = False,
) -> None:
    """
    Restore a bucket folder into a local directory.

    Files already present locally are skipped, so an interrupted restore can
    be re-run.

    Examples:
        s3-download restore s3://backups/site ./site --text-only
        s3-download restore s3://backups/logs ./logs --assume-gzip --extract-gzip
    """
    try:
        bucket, prefix = S3ClientManager.parse_s3_path(source)
        allowed = list(extensions or [])
        if text_only:
            allowed.extend(TEXT_FILE_EXTENSIONS)
        config = RestoreConfig(
            source_prefix=prefix,
            output_directory=destination,
            extensions=allowed or None,
            exclude_names=exclude or [],
            recursive=recursive,
            assume_gzip=assume_gzip,
            extract_gzip=extract,
        )
        with ctx.obj.helper(bucket) as helper:
            report = restore_from_s3(helper, config)
    except HANDLED_ERRORS as e:
        _fail(str(e))

    typer.echo(f"Downloaded: {len(report.downloaded)}")
    typer.echo(f"Skipped (already present): {len(report.skipped)}")
    if report.failed:
        typer.echo(f"Failed: {len(report.failed)}", err=True)
        for key, reason in report.failed.items():
            typer.echo(f"  {key}: {reason}", err=True)
        raise typer.Exit(1)


@app.command("ungzip")
def ungzip_cmd(
    directory: Annotated[str, typer.Argument(help="Local directory")],
    keep_original: Annotated[
        bool, typer.Option("--keep-original", help="Keep the .gz files")
    ] = False,
) -> None:
    """Extract every .gz file below a local directory."""
    try:
        extracted = ungzip_files(directory, delete_original=not keep_original)
    except (ValidationError, OSError, EOFError) as e:
        _fail(str(e))

    for path in extracted:
        typer.echo(path)


@app.command("list")
def list_cmd(
    ctx: typer.Context,
    source: Annotated[str, s3_path_argument("Bucket folder to list")],
    recursive: Annotated[bool, recursive_option()] = True,
) -> None:
    """
    List object keys under a bucket folder.

    Examples:
        s3-download list s3://backups/logs/
        s3-download --aws-profile prod list s3://backups/ --no-recursive
    """
    try:
        bucket, prefix = S3ClientManager.parse_s3_path(source)
        with ctx.obj.helper(bucket) as helper:
            keys = helper.lister.list_keys(prefix, recursive=recursive).unwrap()
    except HANDLED_ERRORS as e:
        _fail(str(e))

    if keys:
        for key in keys:
            typer.echo(key)
    else:
        typer.echo("No objects found.", err=True)


@app.command("find")
def find_cmd(
    ctx: typer.Context,
    source: Annotated[str, s3_path_argument("Bucket folder to search")],
    pattern: Annotated[str, typer.Argument(help="Wildcard, e.g. '*.bak'")],
    destination: Annotated[str, typer.Argument(help="Local directory")] = ".",
    remove: Annotated[bool, remove_after_download_option()] = False,
) -> None:
    """Download the first object whose file name matches a wildcard."""
    try:
        bucket, prefix = S3ClientManager.parse_s3_path(source)
        with ctx.obj.helper(bucket) as helper:
            local_path = helper.objects.find_first_match(
                prefix, pattern, destination, remove_after_download=remove
            ).unwrap()
    except HANDLED_ERRORS as e:
        _fail(str(e))

    if local_path is None:
        typer.echo(f"No object matching '{pattern}' found.", err=True)
        raise typer.Exit(1)
    typer.echo(local_path)


@app.command("download")
def download_cmd(
    ctx: typer.Context,
    source: Annotated[str, s3_path_argument("Object to download")],
    destination: Annotated[
        str, typer.Argument(help="Local file or existing directory")
    ] = ".",
    remove: Annotated[bool, remove_after_download_option()] = False,
) -> None:
    """Download a single object."""
    try:
        bucket, key = S3ClientManager.parse_s3_path(source)
        if os.path.isdir(destination):
            destination = os.path.join(destination, key_basename(key))
        with ctx.obj.helper(bucket) as helper:
            local_path = helper.objects.download_file(
                key, destination, remove_after_download=remove
            ).unwrap()
    except HANDLED_ERRORS as e:
        _fail(str(e))

    typer.echo(local_path)


@app.command("upload")
def upload_cmd(
    ctx: typer.Context,
    local_path: Annotated[str, typer.Argument(help="Local file to upload")],
    destination: Annotated[
        str, s3_path_argument("Object key, or folder ending with '/'")
    ],
    reduced_redundancy: Annotated[bool, reduced_redundancy_option()] = False,
) -> None:
    """Upload a local file, creating the bucket if needed."""
    try:
        bucket, key = S3ClientManager.parse_s3_path(destination)
        with ctx.obj.helper(bucket) as helper:
            if not key or key.endswith(DELIMITER):
                result = helper.objects.upload_to_folder(
                    local_path, key, reduced_redundancy=reduced_redundancy
                )
            else:
                result = helper.objects.upload_file(
                    local_path, key, reduced_redundancy=reduced_redundancy
                )
            uploaded = result.unwrap()
    except HANDLED_ERRORS as e:
        _fail(str(e))

    typer.echo(f"s3://{bucket}/{uploaded}")


@app.command("delete")
def delete_cmd(
    ctx: typer.Context,
    target: Annotated[str, s3_path_argument("Object or folder to delete")],
    recursive: Annotated[
        bool,
        typer.Option("--recursive", "-r", help="Delete every object in the folder"),
    ] = False,
) -> None:
    """Delete an object, or with --recursive every object under a folder."""
    try:
        bucket, key = S3ClientManager.parse_s3_path(target)
        with ctx.obj.helper(bucket) as helper:
            if recursive:
                batch = helper.objects.delete_folder(key)
            else:
                deleted = helper.objects.delete_file(key).unwrap()
    except HANDLED_ERRORS as e:
        _fail(str(e))

    if recursive:
        _report_batch(batch, "Deleted")
    else:
        typer.echo(f"Deleted: {deleted}")


@app.command("copy")
def copy_cmd(
    ctx: typer.Context,
    source: Annotated[str, s3_path_argument("Object or folder to copy")],
    destination: Annotated[str, s3_path_argument("Destination in the same bucket")],
    recursive: Annotated[
        bool,
        typer.Option("--recursive", "-r", help="Copy every object in the folder"),
    ] = False,
) -> None:
    """Copy an object or folder within a bucket, keeping object ACLs."""
    try:
        bucket, key, dest_key = _same_bucket(source, destination)
        with ctx.obj.helper(bucket) as helper:
            if recursive:
                batch = helper.objects.copy_folder(key, dest_key)
            else:
                copied = helper.objects.copy_file(key, dest_key).unwrap()
    except HANDLED_ERRORS as e:
        _fail(str(e))

    if recursive:
        _report_batch(batch, "Copied")
    else:
        typer.echo(f"Copied: {key} -> {copied}")


@app.command("move")
def move_cmd(
    ctx: typer.Context,
    source: Annotated[str, s3_path_argument("Object or folder to move")],
    destination: Annotated[str, s3_path_argument("Destination in the same bucket")],
    recursive: Annotated[
        bool,
        typer.Option("--recursive", "-r", help="Move every object in the folder"),
    ] = False,
) -> None:
    """Move an object or folder within a bucket (copy, then delete)."""
    try:
        bucket, key, dest_key = _same_bucket(source, destination)
        with ctx.obj.helper(bucket) as helper:
            if recursive:
                batch = helper.objects.move_folder(key, dest_key)
            else:
                moved = helper.objects.move_file(key, dest_key).unwrap()
    except HANDLED_ERRORS as e:
        _fail(str(e))

    if recursive:
        _report_batch(batch, "Moved")
    else:
        typer.echo(f"Moved: {key} -> {moved}")


BucketArgument = Annotated[str, typer.Argument(help="Bucket name")]
RuleIdArgument = Annotated[str, typer.Argument(help="Lifecycle rule ID")]


@lifecycle_app.command("show")
def lifecycle_show_cmd(ctx: typer.Context, bucket: BucketArgument) -> None:
    """Show the bucket's lifecycle rules."""
    try:
        with ctx.obj.helper(bucket) as helper:
            rules = helper.lifecycle.get_rules().unwrap()
    except HANDLED_ERRORS as e:
        _fail(str(e))

    if rules is None:
        typer.echo(f"Bucket '{bucket}' has no lifecycle configuration.")
        return
    for rule in rules:
        status = "enabled" if rule.enabled else "disabled"
        days = rule.expiration_days if rule.expiration_days is not None else "-"
        typer.echo(f"{rule.rule_id}\tprefix={rule.prefix!r}\tdays={days}\t{status}")


@lifecycle_app.command("add")
def lifecycle_add_cmd(
    ctx: typer.Context,
    bucket: BucketArgument,
    rule_id: RuleIdArgument,
    days: Annotated[int, expiration_days_option()],
    prefix: Annotated[str, rule_prefix_option()] = "",
    enabled: Annotated[bool, rule_enabled_option()] = True,
) -> None:
    """Add an expiration rule."""
    try:
        with ctx.obj.helper(bucket) as helper:
            helper.lifecycle.add_rule(rule_id, prefix, days, enabled=enabled).unwrap()
    except HANDLED_ERRORS as e:
        _fail(str(e))

    typer.echo(f"Added rule '{rule_id}' to {bucket}")


@lifecycle_app.command("update")
def lifecycle_update_cmd(
    ctx: typer.Context,
    bucket: BucketArgument,
    rule_id: RuleIdArgument,
    days: Annotated[int, expiration_days_option()],
    prefix: Annotated[str, rule_prefix_option()] = "",
    enabled: Annotated[bool, rule_enabled_option()] = True,
) -> None:
    """Replace an existing expiration rule."""
    try:
        with ctx.obj.helper(bucket) as helper:
            helper.lifecycle.update_rule(
                rule_id, prefix, days, enabled=enabled
            ).unwrap()
    except HANDLED_ERRORS as e:
        _fail(str(e))

    typer.echo(f"Updated rule '{rule_id}' on {bucket}")


@lifecycle_app.command("remove")
def lifecycle_remove_cmd(
    ctx: typer.Context, bucket: BucketArgument, rule_id: RuleIdArgument
) -> None:
    """Remove an expiration rule."""
    try:
        with ctx.obj.helper(bucket) as helper:
            helper.lifecycle.remove_rule(rule_id).unwrap()
    except HANDLED_ERRORS as e:
        _fail(str(e))

    typer.echo(f"Removed rule '{rule_id}' from {bucket}")


@lifecycle_app.command("clear")
def lifecycle_clear_cmd(ctx: typer.Context, bucket: BucketArgument) -> None:
    """Delete the whole lifecycle configuration."""
    try:
        with ctx.obj.helper(bucket) as helper:
            helper.lifecycle.delete_configuration().unwrap()
    except HANDLED_ERRORS as e:
        _fail(str(e))

    typer.echo(f"Lifecycle configuration of {bucket} deleted")


if __name__ == "__main__":
    app()
