import logging
import sys

import click

import grantscope
from grantscope.config import Settings
from grantscope.error import GrantscopeError
from grantscope.issues import build_default_registry
from grantscope.logger import GLOBAL_LOGGER as logger


def exit_with_error(exc: GrantscopeError):
    """Print every line of the error in red and stop with a failing status."""
    for line in str(exc).splitlines():
        click.secho(line, fg="red", err=True)
    sys.exit(1)


@click.group(invoke_without_command=True, no_args_is_help=True)
@click.option(
    "-v", "--verbose", help="Increases log level with count, e.g -vv", count=True
)
@click.version_option(version=grantscope.__version__, prog_name="grantscope")
@click.pass_context
def cli(ctx, verbose):
    logger.setLevel(logging.WARNING)
    if verbose == 1:
        logger.setLevel(logging.INFO)
    if verbose >= 2:
        logger.setLevel(logging.DEBUG)

    ctx.ensure_object(dict)
    try:
        settings = Settings.from_env()
    except GrantscopeError as exc:
        exit_with_error(exc)

    ctx.obj["settings"] = settings
    ctx.obj["registry"] = build_default_registry(settings)
