from __future__ import annotations

from pathlib import Path

import pytest

from cloudmachine.auth import Credentials, from_environment, resolve_credentials
from cloudmachine.exceptions import ConfigurationError

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]

CREDENTIALS_FILE = """\
[default]
aws_access_key_id = AKIADEFAULT
aws_secret_access_key = default-secret

[ops]
aws_access_key_id = AKIAOPS
aws_secret_access_key = ops-secret
aws_session_token = token
"""


class TestResolveCredentials:
    def test_explicit_pair_wins(self, tmp_path: Path):
        creds = resolve_credentials("AKIA", "secret", environ={"AWS_ACCESS_KEY_ID": "env"},
                                    path=tmp_path / "none")
        assert creds == Credentials("AKIA", "secret")

    def test_half_pair_rejected(self):
        with pytest.raises(ConfigurationError):
            resolve_credentials("AKIA", None, environ={})

    def test_environment(self, tmp_path: Path):
        environ = {"AWS_ACCESS_KEY_ID": "AKIAENV", "AWS_SECRET_ACCESS_KEY": "env-secret"}
        creds = resolve_credentials(environ=environ, path=tmp_path / "none")
        assert creds == Credentials("AKIAENV", "env-secret")

    def test_legacy_environment_names(self):
        creds = from_environment({"AWS_ACCESS_KEY": "AKIAOLD", "AWS_SECRET_KEY": "old-secret"})
        assert creds == Credentials("AKIAOLD", "old-secret")

    def test_incomplete_environment_falls_through(self, tmp_path: Path):
        path = tmp_path / "credentials"
        path.write_text(CREDENTIALS_FILE)
        creds = resolve_credentials(environ={"AWS_ACCESS_KEY_ID": "AKIAENV"}, path=path)
        assert creds.access_key == "AKIADEFAULT"

    def test_file_profile(self, tmp_path: Path):
        path = tmp_path / "credentials"
        path.write_text(CREDENTIALS_FILE)
        creds = resolve_credentials(environ={}, path=path, profile="ops")
        assert creds == Credentials("AKIAOPS", "ops-secret", "token")

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigurationError, match="AWS credentials"):
            resolve_credentials(environ={}, path=tmp_path / "none")

    def test_missing_profile(self, tmp_path: Path):
        path = tmp_path / "credentials"
        path.write_text(CREDENTIALS_FILE)
        with pytest.raises(ConfigurationError, match="staging"):
            resolve_credentials(environ={}, path=path, profile="staging")

    def test_secret_not_in_repr(self):
        assert "secret" not in repr(Credentials("AKIA", "secret"))
