"""Rich console rendering for the Gateway API lab CLI."""

from gatewaylab.display.formatters import (
    format_error,
    format_lab_status,
    format_step,
    format_success,
    format_test_commands,
)

__all__ = [
    "format_error",
    "format_lab_status",
    "format_step",
    "format_success",
    "format_test_commands",
]
