"""
Command-line interface for muko
"""

from typing import List

import click
from rich.console import Console
from rich.table import Table
from rich import box

from app import MukoManager
from hosts_file import HostsFile
from models import ResolvedEntry, DEFAULT_DEV_IP
from exceptions import MukoError
from logger import logger

console = Console()


def render_table(resolved: List[ResolvedEntry]) -> Table:
    """Build the Mode / Domain / Alias / Dev IP / Prod IP table"""
    table = Table(box=box.SQUARE, header_style="bold")
    table.add_column("Mode")
    table.add_column("Domain")
    table.add_column("Alias")
    table.add_column("Dev IP")
    table.add_column("Prod IP")

    for item in resolved:
        entry = item.entry
        mode = "[green]DEV[/green]" if entry.active else "[blue]PROD[/blue]"
        alias = entry.alias if entry.alias and entry.alias != entry.domain else ""
        table.add_row(mode, entry.domain, alias, entry.ip, item.resolved_ip or "-")

    return table


def print_entries(manager: MukoManager):
    resolved = manager.list_entries()
    console.print("Muko-managed domains:")
    if not resolved:
        console.print("  (none yet, add one with 'muko add <domain>')")
        return
    console.print(render_table(resolved))


def _run(action):
    """Turn muko errors into a clean message and a non-zero exit"""
    try:
        return action()
    except MukoError as e:
        logger.debug(f"Command failed: {e}")
        raise click.ClickException(str(e))


def print_entries_after_change(manager: MukoManager):
    """Show the refreshed table; the change is already on disk, so a listing error only warns"""
    try:
        print_entries(manager)
    except MukoError as e:
        logger.warning(f"Listing after change failed: {e}")
        click.echo(f"Warning: change saved, but the entries could not be listed: {e}", err=True)


@click.group(invoke_without_command=True)
@click.option("--hosts-file", "hosts_path", default=None, envvar="MUKO_HOSTS_FILE",
              help="Path to the hosts file (default /etc/hosts)")
@click.pass_context
def cli(ctx, hosts_path):
    """Manage domain overrides in the hosts file.

    Without a command, lists every muko-managed domain.
    """
    ctx.obj = _run(lambda: MukoManager(HostsFile(hosts_path)))
    if ctx.invoked_subcommand is None:
        _run(lambda: print_entries(ctx.obj))


@cli.command()
@click.argument("domain_name")
@click.option("--ip", default=DEFAULT_DEV_IP, show_default=True, help="IP address used in DEV mode")
@click.option("--alias", default=None, help="Short name usable instead of the domain")
@click.pass_obj
def add(manager, domain_name, ip, alias):
    """Add a domain to the hosts file in DEV mode"""
    entry, replaced = _run(lambda: manager.add(domain_name, ip, alias))
    if replaced:
        console.print(f"✓ Domain '{entry.domain}' already existed and has been overwritten")
    else:
        console.print(f"✓ Domain '{entry.domain}' has been added to {manager.hosts_file.path}")
    console.print()
    print_entries_after_change(manager)


@cli.command()
@click.argument("identifier")
@click.pass_obj
def dev(manager, identifier):
    """Set a domain to DEV mode (use the custom IP)"""
    _run(lambda: manager.set_mode(identifier, True))
    console.print(f"✓ Set '{identifier}' to DEV mode")
    console.print()
    print_entries_after_change(manager)


@cli.command()
@click.argument("identifier")
@click.pass_obj
def prod(manager, identifier):
    """Set a domain to PROD mode (use the real IP)"""
    _run(lambda: manager.set_mode(identifier, False))
    console.print(f"✓ Set '{identifier}' to PROD mode")
    console.print()
    print_entries_after_change(manager)


def main():
    """Main entry point"""
    cli(prog_name="muko")


if __name__ == "__main__":
    main()
