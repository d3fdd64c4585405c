from __future__ import annotations

import pytest

from cloudmachine.cascade import apply_defaults, inherit_tags, suffix_machine, with_name_tag
from cloudmachine.types import ClusterDefaults, Instance, Machine, Tag, Volume

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


def _machine() -> Machine:
    return Machine(
        instance=Instance(name="web", type="t2.small", tags=[Tag("team", "core")]),
        volumes=[
            Volume(name="data", size=10, tags=[Tag("Backup", "daily")]),
            Volume(name="logs", size=5),
        ],
    )


def _defaults() -> ClusterDefaults:
    return ClusterDefaults(
        image_id="ami-1",
        region="us-east-1",
        key_name="ops",
        security_groups=["sg-1"],
        subnet_id="subnet-1",
        availability_zone="us-east-1b",
        tags=[Tag("Team", "platform"), Tag("env", "prod"), Tag("backup", "weekly")],
    )


class TestInheritTags:
    def test_own_tags_win_case_insensitively(self):
        result = inherit_tags([Tag("team", "core")], [Tag("TEAM", "platform"), Tag("env", "prod")])
        assert result == [Tag("team", "core"), Tag("env", "prod")]

    def test_inherited_keep_defining_scope_casing(self):
        result = inherit_tags([], [Tag("CostCenter", "42")])
        assert result == [Tag("CostCenter", "42")]

    def test_duplicate_inherited_keys_keep_first(self):
        result = inherit_tags([], [Tag("env", "prod"), Tag("ENV", "dev")])
        assert result == [Tag("env", "prod")]


class TestWithNameTag:
    def test_name_tag_appended(self):
        assert with_name_tag("web", [Tag("env", "prod")]) == [Tag("env", "prod"), Tag("Name", "web")]

    def test_existing_name_tag_replaced(self):
        assert with_name_tag("web", [Tag("Name", "old")]) == [Tag("Name", "web")]


class TestApplyDefaults:
    def test_fills_unset_instance_fields(self):
        result = apply_defaults(_machine(), _defaults())
        instance = result.instance
        assert instance.image_id == "ami-1"
        assert instance.region == "us-east-1"
        assert instance.key_name == "ops"
        assert instance.security_groups == ["sg-1"]
        assert instance.subnet_id == "subnet-1"
        assert instance.availability_zone == "us-east-1b"

    def test_machine_values_win(self):
        machine = _machine()
        machine.instance.image_id = "ami-mine"
        machine.instance.security_groups = ["sg-mine"]
        result = apply_defaults(machine, _defaults())
        assert result.instance.image_id == "ami-mine"
        assert result.instance.security_groups == ["sg-mine"]

    def test_tags_cascade_to_instance_and_each_volume(self):
        result = apply_defaults(_machine(), _defaults())
        assert result.instance.tags == [Tag("team", "core"), Tag("env", "prod"), Tag("backup", "weekly")]
        data, logs = result.volumes
        assert data.tags == [Tag("Backup", "daily"), Tag("Team", "platform"), Tag("env", "prod")]
        assert logs.tags == [Tag("Team", "platform"), Tag("env", "prod"), Tag("backup", "weekly")]

    def test_idempotent(self):
        once = apply_defaults(_machine(), _defaults())
        twice = apply_defaults(once, _defaults())
        assert once == twice

    def test_input_not_mutated(self):
        machine = _machine()
        apply_defaults(machine, _defaults())
        assert machine == _machine()

    def test_empty_defaults_change_nothing(self):
        assert apply_defaults(_machine(), ClusterDefaults()) == _machine()


class TestSuffixMachine:
    def test_three_nodes(self):
        template = _machine()
        nodes = [suffix_machine(template, i) for i in range(1, 4)]

        assert [n.instance.name for n in nodes] == ["web-1", "web-2", "web-3"]
        assert [[v.name for v in n.volumes] for n in nodes] == [
            ["data-1", "logs-1"],
            ["data-2", "logs-2"],
            ["data-3", "logs-3"],
        ]

    def test_template_not_mutated(self):
        template = _machine()
        suffix_machine(template, 1)
        assert template.instance.name == "web"
        assert [v.name for v in template.volumes] == ["data", "logs"]

    def test_nodes_do_not_share_state(self):
        template = _machine()
        first, second = suffix_machine(template, 1), suffix_machine(template, 2)
        first.instance.tags.append(Tag("only", "first"))
        assert Tag("only", "first") not in second.instance.tags
        assert Tag("only", "first") not in template.instance.tags
