# strata/cli.py

import json
import logging
import shlex

import click
import toml

from .blueprint import Blueprint
from .exceptions import HelpRequested, StrataError
from .factories import FactoryLookupError, import_qualified
from .parser import help_requested
from .utils import pretty, to_plain

log = logging.getLogger(__name__)

_LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}


def _build(ctx, target: str, args) -> Blueprint:
    """Resolve TARGET and layer presets, environment and ARGS onto it."""
    opts = ctx.obj
    try:
        bp = Blueprint(import_qualified(target))
        for file_path in opts["file_paths"]:
            bp.apply_file(file_path)
        if opts["prefix"]:
            bp.apply_env(opts["prefix"], load_dotenv_file=opts["dotenv"])
        bp.apply_from_argv(args)
    except HelpRequested as e:
        click.echo(e.help_text)
        ctx.exit(0)
    except (StrataError, FactoryLookupError, FileNotFoundError, RuntimeError, TypeError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        ctx.exit(1)
    return bp


def _make(ctx, bp: Blueprint):
    try:
        return bp.make()
    except StrataError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        ctx.exit(1)


@click.group(context_settings={"help_option_names": ["--help"]})
@click.option("-c", "--config", "file_paths", multiple=True, help="JSON/TOML preset file (repeatable, later wins)")
@click.option("-p", "--prefix", help="Env-var prefix for arguments (PREFIX_A__B=v sets a.b)")
@click.option("--no-dotenv", is_flag=True, help="Do not load a .env file")
@click.option("-v", "--verbose", count=True, help="More logging (-v info, -vv debug)")
@click.pass_context
def cli(ctx, file_paths, prefix, no_dotenv, verbose):
    """
    strata CLI: build a configuration object from layered arguments.

    TARGET is `package.module:attr`; trailing arguments are `key=value`,
    `...key=value` (wildcard) or `key@=other.key` (reference):
      • make    TARGET [ARGS...] [--to json|toml|pretty]
      • help    TARGET [ARGS...]
      • check   TARGET [ARGS...]
      • argv    TARGET [ARGS...]
    """
    logging.basicConfig(level=_LOG_LEVELS.get(verbose, logging.DEBUG))
    ctx.obj = {
        "file_paths": list(file_paths),
        "prefix": prefix,
        "dotenv": not no_dotenv,
    }


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("target")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.option("--to", "fmt", type=click.Choice(["json", "toml", "pretty"]), default="json", help="Output format")
@click.pass_context
def make(ctx, target, args, fmt):
    """Construct TARGET and print it as JSON, TOML or an indented tree."""
    bp = _build(ctx, target, args)
    obj = _make(ctx, bp)
    if fmt == "pretty":
        click.echo(pretty(obj, colored=True))
        return
    data = to_plain(obj)
    if fmt == "toml":
        text = toml.dumps(data if isinstance(data, dict) else {"value": data})
    else:
        text = json.dumps(data, indent=2, default=str)
    click.echo(text)


@cli.command(name="help", context_settings={"ignore_unknown_options": True})
@click.argument("target")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def help_(ctx, target, args):
    """Show every parameter of TARGET with its current value and source."""
    args = [a for a in args if not help_requested([a])]
    bp = _build(ctx, target, args)
    try:
        click.echo(bp.get_help())
    except StrataError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        ctx.exit(1)


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("target")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def check(ctx, target, args):
    """Exit 0 if TARGET can be constructed from ARGS, 1 otherwise."""
    bp = _build(ctx, target, args)
    _make(ctx, bp)
    log.info(f"{bp.entrypoint_repr}: OK")


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("target")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def argv(ctx, target, args):
    """Print presets, environment and ARGS collapsed into one command line."""
    bp = _build(ctx, target, args)
    try:
        click.echo(" ".join(shlex.quote(arg) for arg in bp.to_argv()))
    except ValueError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        ctx.exit(1)


if __name__ == "__main__":
    cli()
