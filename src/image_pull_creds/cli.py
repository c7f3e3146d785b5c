"""Command-line entry point for image-pull-creds."""

import logging
import sys

import click
import uvicorn

from . import __version__
from .config import load_settings
from .exceptions import ImagePullCredsError
from .log import setup_logging
from .provider import new_provider
from .reconcile import Reconciler
from .server import create_app

logger = logging.getLogger(__name__)


@click.group(name="image-pull-creds")
@click.version_option(version=__version__, prog_name="image-pull-creds")
def cli():
    """Distribute registry pull credentials to every namespace."""


@cli.command()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="YAML settings file.")
@click.option("--host", default=None, help="Address to listen on.")
@click.option("--port", type=int, default=None, help="Port to listen on.")
def serve(config_path, host, port):
    """Run service."""
    try:
        settings = load_settings(config_path)
        setup_logging(settings.log_level, settings.log_format)
    except ImagePullCredsError as e:
        raise click.ClickException(str(e)) from None

    try:
        provider = new_provider(settings)
    except ImagePullCredsError as e:
        logger.error(f"error creating provider: {e}")
        sys.exit(1)

    reconciler = Reconciler(
        provider,
        request_timeout=settings.request_timeout,
        lock_timeout=settings.lock_timeout,
    )
    app = create_app(reconciler)

    listen_host = host if host is not None else settings.host
    listen_port = port if port is not None else settings.port
    logger.info(f"starting server on {listen_host}:{listen_port}")
    # uvicorn handles SIGINT/SIGTERM with a graceful shutdown
    uvicorn.run(app, host=listen_host, port=listen_port, log_config=None)


def main():
    """Entry point for the console script."""
    cli()


if __name__ == "__main__":
    main()
