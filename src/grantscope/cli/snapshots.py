from typing import Any, Dict, List

import click
import yaml

from grantscope.compress import compress_snapshot
from grantscope.diff import SnapshotDiff, diff_snapshots
from grantscope.error import GrantscopeError
from grantscope.snapshot_loader import (
    dump_snapshot,
    load_inventory,
    load_snapshot,
    snapshot_path,
)
from grantscope.sql import SqlCommand, sql_commands_from_diff

from .cli import cli, exit_with_error


def print_section(prefix: str, color: str, section: str, entries: Dict[str, Any]):
    for name, content in entries.items():
        click.secho(f"@@ {section}:{name} @@", fg="cyan")
        if not isinstance(content, (dict, list)):
            click.secho(f"{prefix} {content}", fg=color)
            continue
        dumped = yaml.safe_dump(content, sort_keys=True, default_flow_style=False)
        for line in dumped.splitlines():
            click.secho(f"{prefix} {line}", fg=color)


def print_snapshot_diff(snapshot_diff: SnapshotDiff):
    """Prints added entries in green, deleted in red and updated in yellow"""
    if snapshot_diff.is_empty():
        click.secho("No changes.")
        return

    for prefix, color, tree in (
        ("+", "green", snapshot_diff.added),
        ("-", "red", snapshot_diff.deleted),
        ("~", "yellow", snapshot_diff.updated),
    ):
        for section, entries in tree.items():
            if isinstance(entries, dict):
                print_section(prefix, color, section, entries)
            else:
                click.secho(f"{prefix} {section}: {entries}", fg=color)


def print_sql_commands(sql_commands: List[SqlCommand]):
    if not sql_commands:
        click.secho("No SQL commands needed.")
        return
    for command in sql_commands:
        click.secho(f"{command.sql};", fg="cyan")


@cli.command()
@click.argument("snapshot_file")
def validate(snapshot_file):
    """
    Load a snapshot file and check it against the snapshot schema.
    """
    click.secho("Confirming snapshot loads successfully")
    try:
        load_snapshot(snapshot_file)
    except GrantscopeError as exc:
        exit_with_error(exc)
    click.secho("Snapshot successfully loaded", fg="green")


@cli.command()
@click.argument("current_file")
@click.argument("proposed_file")
@click.option("--sql", help="Also print the SQL commands for the changes.", is_flag=True)
def diff(current_file, proposed_file, sql):
    """
    Show what changes between the current and the proposed snapshot.
    """
    try:
        current = load_snapshot(current_file)
        proposed = load_snapshot(proposed_file)
        snapshot_diff = diff_snapshots(current, proposed)
        sql_commands = sql_commands_from_diff(snapshot_diff) if sql else []
    except GrantscopeError as exc:
        exit_with_error(exc)

    click.secho(f"diff a/{current_file} b/{proposed_file}", bold=True)
    print_snapshot_diff(snapshot_diff)

    if sql:
        click.secho()
        click.secho("SQL Commands generated for the changes:")
        print_sql_commands(sql_commands)


@cli.command()
@click.argument("snapshot_file")
@click.argument("inventory_file")
@click.option(
    "--output",
    help="Write the compressed snapshot here instead of overwriting SNAPSHOT_FILE.",
)
@click.option(
    "--output-dir",
    help="Write the compressed snapshot to <accountId>.yaml in this directory.",
)
def compress(snapshot_file, inventory_file, output, output_dir):
    """
    Replace grant lists that cover every object of a schema or database
    with wildcards.
    """
    try:
        snapshot = load_snapshot(snapshot_file)
        inventory = load_inventory(inventory_file)
    except GrantscopeError as exc:
        exit_with_error(exc)

    if output and output_dir:
        raise click.UsageError("--output and --output-dir can not be used together")

    if output_dir:
        account_id = (snapshot.get("metadata") or {}).get("accountId")
        if not account_id:
            raise click.UsageError(
                "--output-dir needs a snapshot with metadata.accountId"
            )
        output = snapshot_path(account_id, output_dir)

    compressed = compress_snapshot(snapshot, inventory)
    dump_snapshot(compressed, output or snapshot_file)
    click.secho(f"Compressed snapshot written to {output or snapshot_file}", fg="green")
