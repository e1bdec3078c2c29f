"""Base class for all CLI commands.

Gives every command the same console output helpers, error handling and
project/config/service initialization.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from rich.console import Console

from recallforge.cli.console import get_console
from recallforge.cli.core.error_handlers import CLIErrorHandler
from recallforge.core.config import Config, load_config
from recallforge.core.logging import configure_logging
from recallforge.study.service import ReviewService


class RecallForgeCommand(ABC):
    """Abstract base class for all RecallForge CLI commands.

    Subclasses implement execute() and return an exit code.

    Example:
        class MyCommand(RecallForgeCommand):
            def execute(self, item_id: str) -> int:
                service = self.build_service()
                ...
                return 0
    """

    # Set by the top-level --log-level/--verbose options
    log_level_override: Optional[str] = None

    def __init__(
        self,
        console: Optional[Console] = None,
        service: Optional[ReviewService] = None,
    ) -> None:
        """Initialize command.

        Args:
            console: Rich console (inject for testing)
            service: Prebuilt service (inject for testing)
        """
        self.console = console or get_console()
        self._service = service

    @abstractmethod
    def execute(self, *args: Any, **kwargs: Any) -> int:
        """Run the command. Returns exit code (0 = success)."""
        pass

    # === Project Management ===

    def get_project_path(self, project: Optional[Path] = None) -> Path:
        """Resolved project directory from --project or the cwd."""
        return (project or Path.cwd()).resolve()

    def load_config(self, project: Optional[Path] = None) -> Config:
        """Load recallforge.yaml from the project and apply its logging section."""
        project_path = self.get_project_path(project)
        config = load_config(base_path=project_path)
        level = self.log_level_override or config.logging.level
        configure_logging(level=level, log_file=config.log_path)
        return config

    def build_service(self, project: Optional[Path] = None) -> ReviewService:
        """Service for the project, reused across calls on this command."""
        if self._service is None:
            config = self.load_config(project)
            config.ensure_directories()
            self._service = ReviewService.from_config(config)
        return self._service

    # === Output Methods ===

    def print_success(self, message: str) -> None:
        self.console.print(f"[green][OK][/green] {message}")

    def print_error(self, message: str) -> None:
        self.console.print(f"[red][ERROR][/red] {message}")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow][WARN][/yellow] {message}")

    def print_info(self, message: str) -> None:
        self.console.print(f"[blue][INFO][/blue] {message}")

    # === Error Handling ===

    def handle_error(self, error: Exception, context: str = "") -> int:
        """Display the error and return exit code 1.

        Does not exit; the caller decides.
        """
        CLIErrorHandler.handle_error(error, context)
        return 1
