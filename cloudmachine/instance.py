"""Instance resolver: get-or-create a compute instance and wait for it.

An instance without an id is launched (optionally with a rendered
cloud-config as user data), tagged and polled until ``running``; an
instance with an id is loaded. The provider's view is merged back into the
descriptor in both cases.
"""

from __future__ import annotations

from pathlib import Path

import jinja2
from loguru import logger

from cloudmachine.cascade import with_name_tag
from cloudmachine.constants import NAME_TAG, InstanceStatus
from cloudmachine.exceptions import ConfigurationError, PartialStateError, ProviderError
from cloudmachine.observability.reporter import Reporter
from cloudmachine.providers.protocol import Compute, InstanceRequest
from cloudmachine.providers.wait import PollPolicy, wait_until_state
from cloudmachine.types import Instance, InstanceState, Tag

log = logger.bind(component="instance")

# Shell length expansions like ${#HOSTS[@]} must pass through
_templates = jinja2.Environment(
    undefined=jinja2.StrictUndefined,
    comment_start_string="{{#",
    comment_end_string="#}}",
    keep_trailing_newline=True,
    autoescape=False,
)


def render_cloud_config(instance: Instance) -> str:
    """Render the instance's cloud-config template with its own fields.

    Template variables are descriptor field names, e.g. ``{{ name }}`` or
    ``{{ availability_zone }}``.

    Raises:
        ConfigurationError: If the file cannot be read or rendered.
    """
    path = Path(instance.cloud_config)
    try:
        source = path.read_text()
    except OSError as e:
        raise ConfigurationError(f"Cannot read cloud-config {path}: {e}") from e

    try:
        return _templates.from_string(source).render(instance.template_context())
    except jinja2.TemplateError as e:
        raise ConfigurationError(f"Cannot render cloud-config {path}: {e}") from e


def region_of(availability_zone: str) -> str:
    """``us-west-2a`` -> ``us-west-2``."""
    if availability_zone and availability_zone[-1].isalpha():
        return availability_zone[:-1]
    return availability_zone


def merge_instance(instance: Instance, observed: InstanceState) -> None:
    """Overwrite desired fields with what the provider reports."""
    instance.observed = observed
    instance.id = observed.id
    instance.type = observed.instance_type or instance.type
    instance.image_id = observed.image_id or instance.image_id
    instance.subnet_id = observed.subnet_id or instance.subnet_id
    instance.key_name = observed.key_name or instance.key_name
    instance.availability_zone = observed.availability_zone or instance.availability_zone
    instance.region = instance.region or region_of(instance.availability_zone)
    instance.ebs_optimized = observed.ebs_optimized

    if observed.security_groups:
        instance.security_groups = [sg.id for sg in observed.security_groups]

    if observed.tags:
        tags: list[Tag] = []
        for tag in observed.tags:
            if tag.key == NAME_TAG:
                instance.name = tag.value
            else:
                tags.append(tag)
        instance.tags = tags


def build_request(instance: Instance) -> InstanceRequest:
    return InstanceRequest(
        image_id=instance.image_id,
        instance_type=instance.type,
        key_name=instance.key_name,
        security_group_ids=tuple(instance.security_groups),
        subnet_id=instance.subnet_id,
        availability_zone=instance.availability_zone,
        ebs_optimized=instance.ebs_optimized,
        disable_api_termination=not instance.enable_api_termination,
        shutdown_behavior=instance.shutdown_behavior,
        placement_group=instance.placement_group,
        user_data=render_cloud_config(instance) if instance.cloud_config else "",
    )


class InstanceResolver:
    """Resolves instance descriptors against one provider region."""

    def __init__(
        self,
        compute: Compute,
        *,
        reporter: Reporter | None = None,
        poll: PollPolicy | None = None,
    ) -> None:
        self._compute = compute
        self._reporter = reporter or Reporter.quiet()
        self._poll = poll or PollPolicy()

    async def resolve(self, instance: Instance) -> InstanceState:
        """Create the instance if it has no id, otherwise load it."""
        created = not instance.id
        self._reporter.resolving("instance", instance.id)

        observed = await self.create(instance) if created else await self.load(instance)

        self._reporter.resource("instance", created, {
            "Id": instance.id,
            "Name": instance.name,
            "Type": instance.type,
            "Image Id": instance.image_id,
            "Available Zone": instance.availability_zone,
            "Key Name": instance.key_name,
            "Security Groups": instance.security_groups,
            "Placement Group": instance.placement_group,
            "Subnet Id": instance.subnet_id,
            "EBS Optimized": instance.ebs_optimized,
        })
        return observed

    async def load(self, instance: Instance) -> InstanceState:
        if not instance.id:
            raise ConfigurationError("To load an instance you need to pass its id")

        observed = await self._compute.describe_instance(instance.id)
        merge_instance(instance, observed)
        return observed

    async def create(self, instance: Instance) -> InstanceState:
        request = build_request(instance)
        observed = await self._compute.create_instance(request)
        log.info("Launched instance {id} ({name})", id=observed.id, name=instance.name)

        try:
            await self._compute.create_tags(observed.id, with_name_tag(instance.name, instance.tags))
        except ProviderError as e:
            raise PartialStateError("instance", observed.id, "tagging", str(e)) from e

        merge_instance(instance, observed)
        await self.wait_until_state(instance, InstanceStatus.RUNNING)
        return instance.observed or observed

    async def wait_until_state(self, instance: Instance, state: str) -> None:
        self._reporter.waiting("instance", instance.state, state)
        try:
            await wait_until_state(
                current=lambda: instance.state,
                reload=lambda: self.load(instance),
                target=state,
                policy=self._poll,
                description=f"instance {instance.id}",
                on_poll=self._reporter.poll,
            )
        except Exception:
            self._reporter.settled(False)
            raise
        self._reporter.settled(True)

    async def reboot(self, instance: Instance) -> None:
        """Reboot an existing instance.

        Raises:
            PartialStateError: If the provider rejects the reboot.
        """
        log.info("Rebooting instance {id}", id=instance.id)
        self._reporter.info(f"Rebooting instance {instance.id}")
        try:
            await self._compute.reboot_instance(instance.id)
        except ProviderError as e:
            raise PartialStateError("instance", instance.id, "reboot", str(e)) from e

    async def terminate(self, instance: Instance) -> None:
        log.info("Terminating instance {id}", id=instance.id)
        await self._compute.terminate_instance(instance.id)
        self._reporter.info(f"Instance <{instance.id}> was destroyed!")
