"""Human-readable progress output for provisioning runs.

A Reporter is created once at startup and handed to every component, so
nothing writes to a process-wide stream. Output is meant for people; it is
not a stable, parseable format.
"""

from __future__ import annotations

import io
from collections.abc import Mapping

from rich.console import Console
from rich.markup import escape


class Reporter:
    """Writes resource banners, field dumps, poll progress and summaries."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True, highlight=False)

    @classmethod
    def quiet(cls) -> Reporter:
        return cls(Console(file=io.StringIO(), quiet=True))

    # -------------------------------------------------------------------------
    # Resources
    # -------------------------------------------------------------------------

    def resolving(self, kind: str, resource_id: str) -> None:
        if resource_id:
            self.console.print(f"Loading {kind} id <{escape(resource_id)}>...")
        else:
            self.console.print(f"Creating new {kind}...")

    def resource(self, kind: str, created: bool, fields: Mapping[str, object]) -> None:
        action = "NEW" if created else "LOADING"
        self.console.print(f"[bold]--------- {action} {kind.upper()} ---------[/bold]")
        for label, value in fields.items():
            self.console.print(f"    {label}: {escape(str(value))}")
        self.console.print("----------------------------------")

    # -------------------------------------------------------------------------
    # Polling
    # -------------------------------------------------------------------------

    def waiting(self, kind: str, current: str, target: str) -> None:
        self.console.print(
            f"{kind.capitalize()} state is <{escape(current)}>, waiting for <{escape(target)}>",
            end="",
        )

    def poll(self, _state: str) -> None:
        self.console.print(".", end="")

    def settled(self, ok: bool) -> None:
        self.console.print(" [green][OK][/green]" if ok else " [red][ERROR][/red]")

    # -------------------------------------------------------------------------
    # Machines & clusters
    # -------------------------------------------------------------------------

    def info(self, message: str) -> None:
        self.console.print(escape(message))

    def machine_ready(self, instance_id: str, address: str, volumes: int) -> None:
        self.console.print(
            f"The instance Id <{escape(instance_id)}> with IP Address <{escape(address)}> "
            f"is running with {volumes} volume(s)!"
        )

    def cluster_started(self, index: int) -> None:
        self.console.rule(f"Running machines of {index}. cluster")

    def node_finished(self, instance_id: str, address: str) -> None:
        self.console.print(
            f"Machine Id <{escape(instance_id)}>, IP Address <{escape(address)}>"
        )

    def node_failed(self, name: str, error: BaseException) -> None:
        self.console.print(f"[red]Machine {escape(name)} failed:[/red] {escape(str(error))}")
