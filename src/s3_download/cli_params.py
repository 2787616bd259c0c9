"""Shared CLI parameter definitions.

Each function returns a fresh ``typer.Option``/``typer.Argument`` for use in
an ``Annotated`` command signature, so option names and help text stay the
same across commands. Typer mutates the parameter info it is given, which is
why these are factories rather than module-level constants.

Usage:
    @app.command()
    def my_command(
        source: Annotated[str, s3_path_argument("Bucket folder")],
        recursive: Annotated[bool, recursive_option()] = True,
    ):
        pass
"""

from typing import Annotated, Optional

import typer


def aws_access_key_option() -> Annotated[Optional[str], typer.Option]:
    """AWS access key ID option."""
    return typer.Option("--access-key-id", help="AWS access key ID")


def aws_secret_key_option() -> Annotated[Optional[str], typer.Option]:
    """AWS secret access key option."""
    return typer.Option("--secret-access-key", help="AWS secret access key")


def aws_session_token_option() -> Annotated[Optional[str], typer.Option]:
    """AWS session token option."""
    return typer.Option("--session-token", help="AWS session token")


def aws_region_option() -> Annotated[Optional[str], typer.Option]:
    """AWS region option."""
    return typer.Option(
        "--region", help="AWS region name (default: S3_DOWNLOAD_REGION_NAME)"
    )


def aws_endpoint_url_option() -> Annotated[Optional[str], typer.Option]:
    """AWS endpoint URL option."""
    return typer.Option("--endpoint-url", help="Custom S3 endpoint URL")


def aws_profile_option() -> Annotated[Optional[str], typer.Option]:
    """AWS profile option."""
    return typer.Option("--aws-profile", help="AWS CLI profile name")


def log_level_option() -> Annotated[Optional[str], typer.Option]:
    return typer.Option(
        "--log-level",
        help="Log level for stderr logging (DEBUG, INFO, WARNING, ERROR)",
        envvar="S3_DOWNLOAD_LOG_LEVEL",
    )


def s3_path_argument(help_text: str) -> Annotated[str, typer.Argument]:
    """An ``s3://bucket/key`` argument."""
    return typer.Argument(help=f"{help_text} (s3://bucket/key)")


def recursive_option() -> Annotated[bool, typer.Option]:
    """Recurse into sub-folders."""
    return typer.Option(
        "--recursive/--no-recursive", help="Include objects in sub-folders"
    )


def remove_after_download_option() -> Annotated[bool, typer.Option]:
    """Delete the remote object after a verified download."""
    return typer.Option(
        "--remove",
        help="Delete the remote object once the local copy is complete",
    )


def reduced_redundancy_option() -> Annotated[bool, typer.Option]:
    """Store uploads as REDUCED_REDUNDANCY."""
    return typer.Option(
        "--reduced-redundancy", help="Use the REDUCED_REDUNDANCY storage class"
    )


def rule_prefix_option() -> Annotated[str, typer.Option]:
    """Lifecycle rule prefix option."""
    return typer.Option("--prefix", help="Key prefix the rule applies to")


def expiration_days_option() -> Annotated[int, typer.Option]:
    """Lifecycle rule expiration option."""
    return typer.Option(
        "--days", min=1, help="Days after creation before objects expire"
    )


def rule_enabled_option() -> Annotated[bool, typer.Option]:
    """Lifecycle rule status option."""
    return typer.Option("--enabled/--disabled", help="Rule status")
