"""polfile CLI: inspect and edit registry.pol files from the command line."""

import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from polfile import __version__
from polfile.errors import PolicyFileError

console = Console()


def _format_data(entry) -> str:
    if isinstance(entry.data, bytes):
        return entry.data.hex(" ") if entry.data else "(empty)"
    if isinstance(entry.data, list):
        return "\n".join(escape(s) for s in entry.data) if entry.data else "(empty)"
    if isinstance(entry.data, int):
        return f"{entry.data} ({entry.data:#x})"
    return escape(entry.data)


def _label(key: str, value_name: str) -> str:
    return escape(key + "\\" + value_name)


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/] {escape(str(error))}")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.option("--config", "-c", "config_path", default=None, type=click.Path(exists=True, dir_okay=False),
              help="YAML config file")
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: str | None):
    """polfile: edit registry.pol policy files.

    Reads, creates, modifies and deletes settings stored in a Group Policy
    registry.pol file, and keeps the GPO's gpt.ini version counter in step
    with every change.
    """
    from polfile.config import load_config

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    try:
        ctx.obj = load_config(config_path)
    except PolicyFileError as e:
        _fail(e)


# ── Get / List ───────────────────────────────────────────────────────


@main.command()
@click.argument("pol_path")
@click.argument("key")
@click.option("--value-name", "-n", default="", help="Value name (empty for the key's default value)")
def get(pol_path: str, key: str, value_name: str):
    """Show a single entry of a policy file."""
    from polfile.editor import get_entry

    try:
        entry = get_entry(pol_path, key, value_name)
    except (PolicyFileError, OSError) as e:
        _fail(e)

    if entry is None:
        console.print(f"[yellow]Not found:[/] {_label(key, value_name)}")
        sys.exit(1)

    console.print(f"[cyan]{escape(entry.path)}[/] ({entry.kind.display_name})")
    console.print(_format_data(entry))


@main.command(name="list")
@click.argument("pol_path")
def list_entries(pol_path: str):
    """List every entry of a policy file in file order."""
    from polfile.editor import get_all_entries

    try:
        entries = get_all_entries(pol_path)
    except (PolicyFileError, OSError) as e:
        _fail(e)

    if not entries:
        console.print("[yellow]Policy file is empty.[/]")
        return

    table = Table(title=f"{pol_path} ({len(entries)} entries)")
    table.add_column("Key", style="cyan")
    table.add_column("Value Name")
    table.add_column("Type", style="dim")
    table.add_column("Data", style="green")

    for entry in entries:
        table.add_row(escape(entry.key), escape(entry.value_name), entry.kind.display_name, _format_data(entry))

    console.print(table)


# ── Set / Remove ─────────────────────────────────────────────────────


@main.command(name="set")
@click.argument("pol_path")
@click.argument("key")
@click.option("--value-name", "-n", default="", help="Value name (empty for the key's default value)")
@click.option("--kind", "-k", default="String", help="String, ExpandString, Binary, DWord, QWord or MultiString")
@click.option("--data", "-d", multiple=True, help="Value data; repeat for MultiString, hex for Binary")
@click.option("--gpt-ini/--no-gpt-ini", "update_gpt_ini", default=None,
              help="Bump the gpt.ini version after a change")
@click.pass_obj
def set_value(config, pol_path: str, key: str, value_name: str, kind: str, data: tuple,
              update_gpt_ini: bool | None):
    """Create or update an entry."""
    from polfile.editor import set_entry
    from polfile.models.kinds import ValueKind

    try:
        value_kind = ValueKind.parse(kind)
        value = _data_from_options(value_kind, data)
        changed = set_entry(pol_path, key, value_name, value, value_kind,
                            update_gpt_ini=update_gpt_ini, config=config)
    except (PolicyFileError, OSError) as e:
        _fail(e)

    if changed:
        console.print(f"[green]Set[/] {_label(key, value_name)}")
    else:
        console.print(f"[dim]Unchanged[/] {_label(key, value_name)}")


@main.command()
@click.argument("pol_path")
@click.argument("key")
@click.option("--value-name", "-n", default="", help="Value name (empty for the key's default value)")
@click.option("--gpt-ini/--no-gpt-ini", "update_gpt_ini", default=None,
              help="Bump the gpt.ini version after a change")
@click.pass_obj
def remove(config, pol_path: str, key: str, value_name: str, update_gpt_ini: bool | None):
    """Delete an entry."""
    from polfile.editor import remove_entry

    try:
        changed = remove_entry(pol_path, key, value_name, update_gpt_ini=update_gpt_ini, config=config)
    except (PolicyFileError, OSError) as e:
        _fail(e)

    if changed:
        console.print(f"[green]Removed[/] {_label(key, value_name)}")
    else:
        console.print(f"[dim]Not present[/] {_label(key, value_name)}")


def _data_from_options(kind, data: tuple):
    from polfile.errors import ValidationError
    from polfile.models.kinds import ValueKind

    if kind == ValueKind.MULTI_STRING:
        return list(data)
    if len(data) > 1:
        raise ValidationError(f"{kind.display_name} takes a single --data value")
    text = data[0] if data else ""
    if kind == ValueKind.BINARY:
        try:
            return bytes.fromhex(text.replace(":", " "))
        except ValueError:
            raise ValidationError(f"Binary data must be hexadecimal, got {text!r}") from None
    if kind in (ValueKind.DWORD, ValueKind.QWORD) and not data:
        raise ValidationError(f"{kind.display_name} requires --data")
    return text


# ── gpt.ini ──────────────────────────────────────────────────────────


@main.command(name="bump-version")
@click.argument("gpt_ini")
@click.option("--scope", "-s", "scopes", multiple=True, required=True,
              type=click.Choice(["machine", "user"], case_sensitive=False),
              help="Counter to increment (repeatable)")
def bump_version(gpt_ini: str, scopes: tuple):
    """Increment the Machine and/or User version counter of a gpt.ini."""
    from polfile.gpt.gpt_ini import update_gpt_ini_version
    from polfile.gpt.version import decode_version

    try:
        version = update_gpt_ini_version(gpt_ini, scopes)
    except (PolicyFileError, OSError) as e:
        _fail(e)

    machine, user = decode_version(version)
    console.print(f"  Version={version} (machine {machine}, user {user})")


# ── Manifests ────────────────────────────────────────────────────────


@main.command()
@click.argument("pol_path")
@click.option("--output", "-o", default=None, help="Write the manifest to a file instead of stdout")
@click.option("--name", default="", help="Manifest name")
def export(pol_path: str, output: str | None, name: str):
    """Export a policy file as a YAML manifest."""
    from pathlib import Path

    from polfile.editor import load_policy_file
    from polfile.manifest import export_manifest

    try:
        text = export_manifest(load_policy_file(pol_path), name=name or Path(pol_path).stem)
    except (PolicyFileError, OSError) as e:
        _fail(e)

    if output:
        Path(output).write_text(text, encoding="utf-8")
        console.print(f"[green]Manifest written to:[/] {output}")
    else:
        click.echo(text, nl=False)


@main.command()
@click.argument("manifest_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("pol_path")
@click.option("--gpt-ini/--no-gpt-ini", "update_gpt_ini", default=None,
              help="Bump the gpt.ini version after a change")
@click.pass_obj
def apply(config, manifest_path: str, pol_path: str, update_gpt_ini: bool | None):
    """Apply a YAML manifest to a policy file."""
    from polfile.manifest import apply_manifest, load_manifest

    try:
        manifest = load_manifest(manifest_path)
        result = apply_manifest(pol_path, manifest, update_gpt_ini=update_gpt_ini, config=config)
    except (PolicyFileError, OSError) as e:
        _fail(e)

    for path in result.added:
        console.print(f"  [green]+[/] {escape(path)}")
    for path in result.updated:
        console.print(f"  [yellow]~[/] {escape(path)}")
    for path in result.removed:
        console.print(f"  [red]-[/] {escape(path)}")
    console.print(f"\n{result.summary()}")


if __name__ == "__main__":
    main()
