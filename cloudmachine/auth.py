"""AWS credential resolution.

Order: explicit access/secret pair, then environment variables, then the
shared credentials file (``~/.aws/credentials``).
"""

from __future__ import annotations

import configparser
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from cloudmachine.exceptions import ConfigurationError

CREDENTIALS_PATH = Path.home() / ".aws" / "credentials"

_ACCESS_KEY_VARS = ("AWS_ACCESS_KEY_ID", "AWS_ACCESS_KEY")
_SECRET_KEY_VARS = ("AWS_SECRET_ACCESS_KEY", "AWS_SECRET_KEY")


@dataclass(frozen=True, slots=True)
class Credentials:
    access_key: str
    secret_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)


def _first(environ: Mapping[str, str], names: tuple[str, ...]) -> str:
    for name in names:
        if value := environ.get(name):
            return value
    return ""


def from_environment(environ: Mapping[str, str]) -> Credentials | None:
    access_key = _first(environ, _ACCESS_KEY_VARS)
    secret_key = _first(environ, _SECRET_KEY_VARS)
    if not access_key or not secret_key:
        return None
    return Credentials(access_key, secret_key, environ.get("AWS_SESSION_TOKEN") or None)


def from_file(path: Path, profile: str = "default") -> Credentials:
    """Read a profile from an INI credentials file.

    Raises:
        ConfigurationError: If the file is missing or the profile is incomplete.
    """
    if not path.is_file():
        raise ConfigurationError(
            "You need to provide AWS credentials using a) AWS_ACCESS_KEY_ID and "
            "AWS_SECRET_ACCESS_KEY; b) --access-key and --secret-key; c) aws configure."
        )

    parser = configparser.ConfigParser()
    try:
        parser.read(path)
    except configparser.Error as e:
        raise ConfigurationError(f"Your credentials file {path} is not valid: {e}") from e

    access_key = parser.get(profile, "aws_access_key_id", fallback="")
    secret_key = parser.get(profile, "aws_secret_access_key", fallback="")
    if not access_key or not secret_key:
        raise ConfigurationError(f"Your credentials file {path} is not valid for profile '{profile}'")

    token = parser.get(profile, "aws_session_token", fallback="") or None
    return Credentials(access_key, secret_key, token)


def resolve_credentials(
    access_key: str | None = None,
    secret_key: str | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    path: Path | None = None,
    profile: str = "default",
) -> Credentials:
    if access_key or secret_key:
        if not (access_key and secret_key):
            raise ConfigurationError("Both access key and secret key must be given")
        return Credentials(access_key, secret_key)

    if creds := from_environment(os.environ if environ is None else environ):
        return creds

    return from_file(path or CREDENTIALS_PATH, profile)
