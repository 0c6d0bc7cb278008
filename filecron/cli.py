"""CLI interface for the filecron daemon"""
import click
import sys
import traceback

from filecron.config import Config
from filecron.daemon import Daemon, setup_logging
from filecron.events import parse_mask, dump_types
from filecron.table import parse_table


DEFAULT_CONFIG = '/etc/filecron/config.yaml'


def handle_error(error, verbose=False):
    """Handle and display errors in a user-friendly way"""
    if isinstance(error, PermissionError):
        click.echo("✗ Permission denied. Try running with sudo or as root.", err=True)
    elif isinstance(error, FileNotFoundError):
        click.echo(f"✗ File or directory not found: {error}", err=True)
    else:
        click.echo(f"✗ Error: {error}", err=True)

    if verbose:
        click.echo("\nDetailed traceback:", err=True)
        traceback.print_exc()


@click.group()
@click.version_option(version='0.1.0')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output', envvar='FILECRON_VERBOSE')
@click.pass_context
def cli(ctx, verbose):
    """Filesystem event triggered job runner

    Watches the paths listed in per-user tables and runs the matching
    commands as their owners.

    Examples:
        filecron run --config /etc/filecron/config.yaml
        filecron check /var/spool/incron/alice
        filecron mask IN_CLOSE_WRITE,IN_MOVED_TO
    """
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose


@cli.command()
@click.option('--config', 'config_file', default=DEFAULT_CONFIG, show_default=True,
              help='Path to configuration file')
@click.option('--spool-dir', help='Table directory (overrides config)')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Log level (overrides config)')
@click.pass_context
def run(ctx, config_file, spool_dir, log_level):
    """Run the daemon in the foreground"""
    verbose = ctx.obj.get('verbose', False)
    try:
        config = Config.load_or_default(config_file)
        if spool_dir:
            config.spool_dir = spool_dir
        if log_level:
            config.log_level = log_level.upper()
        elif verbose:
            config.log_level = 'DEBUG'
    except ValueError as e:
        click.echo(f"Error: Failed to load configuration: {e}", err=True)
        sys.exit(1)

    setup_logging(config)

    try:
        Daemon(config).run()
    except Exception as e:
        handle_error(e, verbose)
        sys.exit(1)


@cli.command()
@click.argument('table_file', type=click.Path(exists=True, dir_okay=False))
def check(table_file):
    """Parse a table file and print its rules"""
    try:
        with open(table_file, 'r', encoding='utf-8') as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        handle_error(e)
        sys.exit(1)

    lines = [line for line in content.splitlines()
             if line.strip() and not line.strip().startswith('#')]
    rules = parse_table(content, source=table_file)

    for rule in rules:
        flags = ' [no-loop]' if rule.no_loop else ''
        click.echo(f"{rule.path}\t{dump_types(rule.mask) or rule.mask}{flags}\t{rule.command}")

    invalid = len(lines) - len(rules)
    if invalid:
        click.echo(f"✗ {invalid} invalid rule(s) in {table_file}", err=True)
        sys.exit(1)

    click.echo(f"✓ {len(rules)} rule(s) OK")


@cli.command()
@click.argument('mask')
def mask(mask):
    """Show the numeric value and event names of a mask"""
    try:
        value, no_loop = parse_mask(mask)
    except ValueError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    click.echo(f"{value}\t{dump_types(value)}{' IN_NO_LOOP' if no_loop else ''}")


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
