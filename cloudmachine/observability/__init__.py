"""Progress reporting for cloudmachine runs."""

from injector import Module, provider, singleton
from rich.console import Console

from .reporter import Reporter


class ReporterModule(Module):
    """DI module that provides the run's Reporter.

    Usage:
        injector = Injector([AWSModule(), ReporterModule()])
        reporter = injector.get(Reporter)
    """

    def __init__(self, console: Console | None = None, quiet: bool = False) -> None:
        self._console = console
        self._quiet = quiet

    @singleton
    @provider
    def provide_reporter(self) -> Reporter:
        if self._quiet:
            return Reporter.quiet()
        return Reporter(self._console)


__all__ = [
    "Reporter",
    "ReporterModule",
]
