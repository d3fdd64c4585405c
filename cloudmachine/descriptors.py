"""Decode machine and cluster descriptor files.

Descriptor files are YAML. Keys are matched case-insensitively and without
``_``/``-``, so both flat keys (``imageid``, ``availablezone``) and
snake_case keys (``image_id``, ``availability_zone``) are accepted.

Example machine file::

    instance:
      name: search
      type: m4.large
      imageid: ami-0d6d4b2e
      keyname: ops
      securitygroups: [sg-1a2b3c]
      availablezone: us-west-2b
      cloudconfig: cloud-config/search.yml
      tags:
        - key: team
          value: search
    volumes:
      - name: search-data
        type: gp2
        size: 100
        device: /dev/xvdf
        mount: /data
        filesystem: ext4
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, TypeAlias

import yaml

from cloudmachine.exceptions import ConfigurationError
from cloudmachine.types import (
    Cluster,
    ClusterDefaults,
    ClusterEntry,
    Instance,
    Machine,
    Tag,
    Volume,
)

RawDescriptor: TypeAlias = Mapping[str, Any]

# normalized key -> field name
_VOLUME_KEYS = {
    "id": "id",
    "name": "name",
    "type": "type",
    "size": "size",
    "iops": "iops",
    "availablezone": "availability_zone",
    "availabilityzone": "availability_zone",
    "snapshotid": "snapshot_id",
    "device": "device",
    "mount": "mount",
    "filesystem": "filesystem",
    "tags": "tags",
}

_INSTANCE_KEYS = {
    "id": "id",
    "name": "name",
    "type": "type",
    "imageid": "image_id",
    "region": "region",
    "keyname": "key_name",
    "securitygroups": "security_groups",
    "subnetid": "subnet_id",
    "availablezone": "availability_zone",
    "availabilityzone": "availability_zone",
    "cloudconfig": "cloud_config",
    "ebsoptimized": "ebs_optimized",
    "shutdownbehavior": "shutdown_behavior",
    "enableapitermination": "enable_api_termination",
    "placementgroup": "placement_group",
    "placementgroupname": "placement_group",
    "tags": "tags",
}

_DEFAULTS_KEYS = {
    "imageid": "image_id",
    "region": "region",
    "keyname": "key_name",
    "securitygroups": "security_groups",
    "subnetid": "subnet_id",
    "availablezone": "availability_zone",
    "availabilityzone": "availability_zone",
    "tags": "tags",
}

# Older files name the zone ``defaultavailablezone``; it applies only
# when the current key is missing.
_LEGACY_ZONE = "defaultavailablezone"

_INT_FIELDS = frozenset({"size", "iops", "nodes"})
_BOOL_FIELDS = frozenset({"ebs_optimized", "enable_api_termination"})
_LIST_FIELDS = frozenset({"security_groups"})


def _normalize(key: object) -> str:
    return str(key).lower().replace("_", "").replace("-", "")


def _require_mapping(raw: object, what: str) -> RawDescriptor:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"{what} must be a mapping, got {type(raw).__name__}")
    return raw


def parse_tags(raw: object) -> list[Tag]:
    """Tags as a list of ``{key, value}`` mappings or a plain mapping."""
    match raw:
        case None:
            return []
        case Mapping():
            return [Tag(str(k), "" if v is None else str(v)) for k, v in raw.items()]
        case list():
            tags: list[Tag] = []
            for item in raw:
                entry = {_normalize(k): v for k, v in _require_mapping(item, "tag").items()}
                if "key" not in entry:
                    raise ConfigurationError(f"Tag without key: {item!r}")
                value = entry.get("value")
                tags.append(Tag(str(entry["key"]), "" if value is None else str(value)))
            return tags
        case _:
            raise ConfigurationError(f"tags must be a list or a mapping, got {type(raw).__name__}")


def _coerce(field: str, value: Any, what: str) -> Any:
    if value is None:
        return None
    if field == "tags":
        return parse_tags(value)
    if field in _INT_FIELDS:
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{what}.{field} must be an integer, got {value!r}") from e
    if field in _BOOL_FIELDS:
        if not isinstance(value, bool):
            raise ConfigurationError(f"{what}.{field} must be true or false, got {value!r}")
        return value
    if field in _LIST_FIELDS:
        if isinstance(value, str):
            return [value]
        return [str(v) for v in value]
    return str(value)


def _fields(raw: RawDescriptor, keys: Mapping[str, str], what: str) -> dict[str, Any]:
    values: dict[str, Any] = {}
    legacy_zone: str | None = None
    for key, value in raw.items():
        normalized = _normalize(key)
        if normalized == _LEGACY_ZONE:
            legacy_zone = None if value is None else str(value)
            continue
        field = keys.get(normalized)
        if field is None:
            raise ConfigurationError(f"Unknown {what} key: {key!r}")
        coerced = _coerce(field, value, what)
        if coerced is not None:
            values[field] = coerced

    if legacy_zone and not values.get("availability_zone") and "availability_zone" in keys.values():
        values["availability_zone"] = legacy_zone
    return values


def volume_from_dict(raw: object) -> Volume:
    return Volume(**_fields(_require_mapping(raw, "volume"), _VOLUME_KEYS, "volume"))


def instance_from_dict(raw: object) -> Instance:
    return Instance(**_fields(_require_mapping(raw, "instance"), _INSTANCE_KEYS, "instance"))


def machine_from_dict(raw: object) -> Machine:
    data = {_normalize(k): v for k, v in _require_mapping(raw, "machine").items()}
    unknown = set(data) - {"instance", "volumes"}
    if unknown:
        raise ConfigurationError(f"Unknown machine key(s): {', '.join(sorted(unknown))}")

    volumes = data.get("volumes") or []
    if not isinstance(volumes, list):
        raise ConfigurationError("machine volumes must be a list")

    return Machine(
        instance=instance_from_dict(data.get("instance")),
        volumes=[volume_from_dict(v) for v in volumes],
    )


def cluster_from_dict(raw: object) -> Cluster:
    data = {_normalize(k): v for k, v in _require_mapping(raw, "cluster").items()}
    unknown = set(data) - {"default", "defaults", "clusters"}
    if unknown:
        raise ConfigurationError(f"Unknown cluster key(s): {', '.join(sorted(unknown))}")

    defaults_raw = _require_mapping(data.get("default") or data.get("defaults"), "default")
    defaults = ClusterDefaults(**_fields(defaults_raw, _DEFAULTS_KEYS, "default"))

    entries: list[ClusterEntry] = []
    for item in data.get("clusters") or []:
        entry = {_normalize(k): v for k, v in _require_mapping(item, "cluster entry").items()}
        if not entry.get("machine"):
            raise ConfigurationError(f"Cluster entry without machine: {item!r}")
        nodes = _coerce("nodes", entry.get("nodes"), "cluster entry")
        if nodes is None:
            nodes = 1
        elif nodes < 0:
            raise ConfigurationError(f"Cluster entry nodes must be >= 0, got {nodes}")
        entries.append(ClusterEntry(machine=str(entry["machine"]), nodes=nodes))

    return Cluster(defaults=defaults, entries=entries)


def _read_yaml(path: Path, what: str) -> Any:
    try:
        content = path.read_text()
    except OSError as e:
        raise ConfigurationError(f"Error opening {what} file {path}: {e}") from e
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error reading {what} file {path}: {e}") from e


def load_machine(path: str | Path) -> Machine:
    return machine_from_dict(_read_yaml(Path(path), "machine"))


def load_cluster(path: str | Path) -> Cluster:
    """Load a cluster file. Relative machine paths resolve against the file's directory."""
    path = Path(path)
    cluster = cluster_from_dict(_read_yaml(path, "cluster"))
    for entry in cluster.entries:
        machine = Path(entry.machine)
        if not machine.is_absolute() and not machine.exists():
            candidate = path.parent / machine
            if candidate.exists():
                entry.machine = str(candidate)
    return cluster
