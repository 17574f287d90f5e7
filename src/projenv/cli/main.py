import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from ..config import ResolverConfig, get_default_config_path, load_config
from ..errors import ConfigError, PathError, SelfTestFailure
from ..probes import make_cluster_info, make_route_info
from ..resolver import build_environment, format_environment
from ..selftest import run_selftest

ENV_ACTIONS = ("env", "projenv")


def print_environment(settings: dict) -> None:
    """Prints the sourceable project variables to stdout."""
    pairs = build_environment(
        ResolverConfig.from_environ(),
        make_cluster_info(settings),
        make_route_info(settings),
        local_registry=settings["local-registry"],
    )
    click.echo(format_environment(pairs), nl=False)


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    envvar="PROJENV_CONFIG",
    help="Path to the projenv settings file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log probe details to stderr.")
@click.argument("action", required=False)
def main(config_path: Optional[Path], verbose: bool, action: Optional[str]) -> None:
    """Derive project naming variables.

    ACTION is `env` (or `projenv`) to print the variables, or `selftest` to
    run the built-in checks. Any other action does nothing.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    console = Console(stderr=True)

    try:
        if action in ENV_ACTIONS:
            settings = load_config(config_path or get_default_config_path())
            print_environment(settings)
        elif action == "selftest":
            run_selftest(console=console)
    except (PathError, ConfigError, SelfTestFailure) as e:
        console.print(f"Error: {e}", style="red", markup=False, highlight=False, soft_wrap=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
