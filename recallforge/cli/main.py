"""RecallForge CLI - Main application entry point.

Registers the review commands and the API server command.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from recallforge import __version__
from recallforge.cli import review
from recallforge.cli.console import get_console, set_verbose_mode
from recallforge.cli.core.command_base import RecallForgeCommand
from recallforge.cli.core.error_handlers import CLIErrorHandler


class ServeCommand(RecallForgeCommand):
    """Run the HTTP API with uvicorn."""

    def execute(self, host: str, port: int, project: Optional[Path] = None) -> int:
        import uvicorn

        from recallforge.api.main import create_app

        service = self.build_service(project)
        self.print_info(f"Serving on http://{host}:{port}")
        uvicorn.run(create_app(service), host=host, port=port)
        return 0


app = typer.Typer(
    name="recallforge",
    help="Spaced repetition scheduling for wrong-note review",
    add_completion=False,
    pretty_exceptions_enable=False,
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        get_console().print(f"recallforge {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Debug logging and full tracebacks"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override logging.level from recallforge.yaml"
    ),
) -> None:
    """RecallForge - review wrong notes on an Ebbinghaus schedule."""
    set_verbose_mode(verbose)
    RecallForgeCommand.log_level_override = "DEBUG" if verbose else log_level


review.register(app)


@app.command("serve")
def serve_command(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    project: Optional[Path] = typer.Option(
        None, "--project", "-p", help="Project directory"
    ),
) -> None:
    """Serve the review API over HTTP."""
    CLIErrorHandler.wrap_operation(
        lambda: ServeCommand().execute(host, port, project), "API server"
    )


def cli_main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    cli_main()
