"""Shared CLI infrastructure."""

from recallforge.cli.core.command_base import RecallForgeCommand
from recallforge.cli.core.error_handlers import CLIErrorHandler

__all__ = ["CLIErrorHandler", "RecallForgeCommand"]
