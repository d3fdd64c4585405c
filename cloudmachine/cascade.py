"""Default cascade from cluster defaults down to machines and volumes.

Lower scopes always win: a field is only filled when the machine leaves it
unset, and a tag is only inherited when the receiving scope has no tag with
the same key (compared case-insensitively). Inherited tags keep the casing
of the scope that defined them.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable

from cloudmachine.constants import NAME_TAG
from cloudmachine.types import ClusterDefaults, Machine, Tag


def inherit_tags(own: Iterable[Tag], inherited: Iterable[Tag]) -> list[Tag]:
    """Return ``own`` followed by every inherited tag whose key is not taken yet."""
    result = list(own)
    taken = {t.key.casefold() for t in result}
    for tag in inherited:
        key = tag.key.casefold()
        if key not in taken:
            result.append(tag)
            taken.add(key)
    return result


def with_name_tag(name: str, tags: Iterable[Tag]) -> list[Tag]:
    """Tags applied right after creation: the descriptor's own plus ``Name``."""
    return [t for t in tags if t.key != NAME_TAG] + [Tag(NAME_TAG, name)]


def apply_defaults(machine: Machine, defaults: ClusterDefaults) -> Machine:
    """Return a copy of ``machine`` with unset fields filled from ``defaults``.

    The input machine is left untouched, so applying the same defaults twice
    yields the same descriptor as applying them once.
    """
    result = copy.deepcopy(machine)
    instance = result.instance

    instance.image_id = instance.image_id or defaults.image_id
    instance.region = instance.region or defaults.region
    instance.key_name = instance.key_name or defaults.key_name
    instance.security_groups = instance.security_groups or list(defaults.security_groups)
    instance.subnet_id = instance.subnet_id or defaults.subnet_id
    instance.availability_zone = instance.availability_zone or defaults.availability_zone

    instance.tags = inherit_tags(instance.tags, defaults.tags)
    for volume in result.volumes:
        volume.tags = inherit_tags(volume.tags, defaults.tags)

    return result


def suffix_machine(template: Machine, index: int) -> Machine:
    """Clone ``template`` for node ``index``, appending ``-index`` to every name."""
    node = copy.deepcopy(template)
    node.instance.name = f"{node.instance.name}-{index}"
    for volume in node.volumes:
        volume.name = f"{volume.name}-{index}"
    return node
