from __future__ import annotations

from pathlib import Path

import pytest

from cloudmachine.auth import Credentials
from cloudmachine.config import _layer, build_aws, load_config, resolve_aws
from cloudmachine.exceptions import ConfigurationError
from cloudmachine.providers.aws import AWS

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


class TestLayer:
    def test_nested_merge(self):
        base = {"aws": {"region": "us-east-1", "profile": "ops"}}
        override = {"aws": {"region": "us-west-2"}}
        assert _layer(base, override) == {"aws": {"region": "us-west-2", "profile": "ops"}}

    def test_empty_override(self):
        assert _layer({"a": 1}, {}) == {"a": 1}


class TestLoadConfig:
    def test_no_files(self, tmp_path: Path):
        assert load_config(project_dir=tmp_path, global_path=tmp_path / "none.toml") == {"aws": {}}

    def test_project_overrides_global(self, tmp_path: Path):
        global_toml = tmp_path / "defaults.toml"
        global_toml.write_text('[aws]\nregion = "us-east-1"\nconcurrency = 2\n')
        (tmp_path / "cloudmachine.toml").write_text('[aws]\nregion = "eu-west-1"\n')

        result = load_config(project_dir=tmp_path, global_path=global_toml)
        assert result["aws"] == {"region": "eu-west-1", "concurrency": 2}

    def test_invalid_toml(self, tmp_path: Path):
        (tmp_path / "cloudmachine.toml").write_text("[aws\n")
        with pytest.raises(ConfigurationError):
            load_config(project_dir=tmp_path, global_path=tmp_path / "none.toml")


class TestBuildAWS:
    def test_defaults(self):
        config = build_aws({})
        assert config == AWS()
        assert config.region == "us-west-2"
        assert config.workdir == Path("cloud-config")

    def test_values_from_table(self):
        config = build_aws({"region": "eu-west-1", "workdir": "/tmp/cc", "poll_timeout": 60})
        assert config.region == "eu-west-1"
        assert config.workdir == Path("/tmp/cc")
        assert config.poll_policy().timeout == 60

    def test_none_overrides_ignored(self):
        config = build_aws({"region": "eu-west-1"}, region=None, concurrency=4)
        assert config.region == "eu-west-1"
        assert config.concurrency == 4

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="regoin"):
            build_aws({"regoin": "eu-west-1"})

    def test_credentials_not_read_from_file(self):
        with pytest.raises(ConfigurationError):
            build_aws({"credentials": "x"})

    def test_resolve_with_credentials_override(self, tmp_path: Path):
        creds = Credentials("AKIA", "secret")
        config = resolve_aws(project_dir=tmp_path, global_path=tmp_path / "none.toml",
                             credentials=creds)
        assert config.credentials == creds
