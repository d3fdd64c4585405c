"""Bootstrap workflows run on disposable instances."""

from cloudmachine.bootstrap.format import (
    FormatWorkflow,
    format_cloud_config,
    format_unit,
    write_cloud_config,
)

__all__ = [
    "FormatWorkflow",
    "format_cloud_config",
    "format_unit",
    "write_cloud_config",
]
