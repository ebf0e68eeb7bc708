"""cronledger config command - Configuration management."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cronledger.cli.exit_codes import ExitCode
from cronledger.cli.output import print_json

app = typer.Typer(help="Manage cronledger configuration.")
console = Console()


@app.command("show")
def show_config(
    section: Optional[str] = typer.Argument(
        None,
        help="Configuration section to show (scheduler, retention, logging).",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    ),
) -> None:
    """Show current configuration.

    Example:
        cronledger config show
        cronledger config show scheduler --json
    """
    from cronledger.config import get_config, config_to_dict

    data = config_to_dict(get_config())
    if section:
        if section not in data or not isinstance(data[section], dict):
            console.print(f"[red]Unknown configuration section: {section}[/red]")
            raise typer.Exit(code=ExitCode.INVALID_ARGUMENT)
        data = {section: data[section]}

    if json_output:
        print_json(data)
        return

    table = Table(title="Configuration")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for key, value in data.items():
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                table.add_row(f"{key}.{sub_key}", str(sub_value))
        else:
            table.add_row(key, str(value))
    console.print(table)


@app.command("init")
def init_config(
    path: Optional[Path] = typer.Option(
        None,
        "--path",
        "-p",
        help="Where to write the file (default: config directory).",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite an existing file.",
    ),
) -> None:
    """Write the current configuration to a TOML file.

    Example:
        cronledger config init
        cronledger config init --path ./cronledger.toml --force
    """
    from cronledger.config import get_config, save_config, DEFAULT_CONFIG_FILE

    config = get_config()
    target = path or config.config_dir / DEFAULT_CONFIG_FILE

    if target.exists() and not force:
        console.print(f"[yellow]Config file already exists: {target}[/yellow]")
        console.print("Use --force to overwrite.")
        raise typer.Exit(code=ExitCode.GENERAL_ERROR)

    written = save_config(config, target)
    console.print(f"[green]✓[/green] Configuration written to {written}")


@app.command("path")
def config_path() -> None:
    """Show configuration file path.

    Example:
        cronledger config path
    """
    from cronledger.config import get_config, DEFAULT_CONFIG_FILE

    config_dir = get_config().config_dir
    config_file_path = config_dir / DEFAULT_CONFIG_FILE
    console.print(f"[bold]Config directory:[/bold] {config_dir}")
    console.print(f"[bold]Config file:[/bold] {config_file_path}")
    console.print(f"[bold]Exists:[/bold] {config_file_path.exists()}")


@app.command("validate")
def validate_config() -> None:
    """Validate current configuration.

    Example:
        cronledger config validate
    """
    from cronledger.config import get_config, validate_config as do_validate

    issues = do_validate(get_config())

    all_passed = True
    for issue in issues:
        if issue.severity == "error":
            status = "[red]✗[/red]"
            all_passed = False
        else:
            status = "[yellow]![/yellow]"
        console.print(f"  {status} {escape(str(issue))}")

    if issues:
        console.print()
    if all_passed:
        console.print("[green]Configuration is valid[/green]")
    else:
        console.print("[red]Configuration has errors[/red]")
        raise typer.Exit(code=ExitCode.CONFIGURATION_ERROR)
