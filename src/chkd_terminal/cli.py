"""chkd-terminal CLI - inspect and manage durable workspace terminals."""

import typer
from rich.console import Console

from chkd_terminal import __version__
from chkd_terminal.commands import attach, destroy, kill, name, sessions, status
from chkd_terminal.logging_config import cleanup_old_logs, get_logger, setup_logging
from chkd_terminal.models.config import set_config
from chkd_terminal.services.config_loader import load_config

app = typer.Typer(
    name="chkd-terminal",
    help="Inspect and manage durable tmux sessions for chkd workspaces.",
    add_completion=False,
    rich_markup_mode="rich",
)

app.command(name="sessions")(sessions)
app.command(name="kill")(kill)
app.command(name="name")(name)
app.command(name="status")(status)
app.command(name="destroy")(destroy)
app.command(name="attach")(attach)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    """chkd-terminal - durable tmux sessions behind every workspace terminal."""
    config = load_config()
    if verbose:
        config.verbose = True
    set_config(config)

    setup_logging(config)
    cleanup_old_logs(max_age_days=30)
    logger = get_logger("chkd_terminal.cli")

    if version:
        Console().print(f"chkd-terminal version {__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand:
        logger.info(f"Command invoked: {ctx.invoked_subcommand}")
    else:
        Console().print(ctx.get_help())


if __name__ == "__main__":
    app()
