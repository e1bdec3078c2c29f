"""Standard error handling for CLI commands.

Every command reports failures through CLIErrorHandler so errors look the
same everywhere: a panel with the error code, the reason and the fix.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Type

import typer

from recallforge.cli.console import ErrorRenderer, get_console


class CLIErrorHandler:
    """Centralized error handling with consistent formatting.

    Example:
        try:
            service.reactivate(item_id)
        except Exception as e:
            CLIErrorHandler.exit_on_error(e, "Reactivation failed")
    """

    # Error type → (console style, display prefix) for one-line errors
    ERROR_STYLES: Dict[Type[Exception], tuple[str, str]] = {
        ValueError: ("red", "Validation error"),
        FileNotFoundError: ("yellow", "File not found"),
        PermissionError: ("red", "Permission denied"),
        OSError: ("red", "System error"),
    }

    @staticmethod
    def handle_error(
        error: Exception,
        context: str = "",
        use_panel: bool = True,
    ) -> None:
        """Display error with helpful formatting.

        Args:
            error: Exception to display
            context: Optional context message
            use_panel: Rich panel (default) or a single line
        """
        if use_panel:
            ErrorRenderer.render(error, context=context)
            return

        style, prefix = CLIErrorHandler.ERROR_STYLES.get(type(error), ("red", "Error"))
        msg = f"[{style}]{prefix}:[/{style}] {error}"
        if context:
            msg = f"[dim]{context}[/dim]\n{msg}"
        get_console().print(msg)

    @staticmethod
    def exit_on_error(
        error: Exception,
        context: str = "",
        exit_code: int = 1,
    ) -> None:
        """Handle error and exit the CLI.

        Raises:
            typer.Exit: Always
        """
        CLIErrorHandler.handle_error(error, context)
        raise typer.Exit(exit_code)

    @staticmethod
    def wrap_operation(
        operation: Callable[[], Any],
        operation_name: str = "Operation",
    ) -> Any:
        """Run operation, exiting the CLI with an error panel on failure."""
        try:
            return operation()
        except KeyboardInterrupt:
            CLIErrorHandler.handle_keyboard_interrupt()
        except Exception as e:
            CLIErrorHandler.exit_on_error(e, f"{operation_name} failed")

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle Ctrl+C gracefully."""
        get_console().print("\n[yellow]Interrupted by user[/yellow]")
        raise typer.Exit(130)
