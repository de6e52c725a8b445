import logging

import click

from shareden.cli.settings import settings
from shareden.cli.shares import shares

@click.group()
@click.option("--verbose", is_flag=True, help="Log debug output.")
@click.pass_context
def main(ctx, verbose):
    """Shareden CLI"""
    ctx.ensure_object(dict)
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)

main.add_command(shares)
main.add_command(settings)

@main.command()
def version():
    """Print the version."""
    from shareden.version import get_version
    click.echo(get_version())

@main.command()
@click.option('--host', default='127.0.0.1', help='The host to bind to.')
@click.option('--port', default=8000, help='The port to bind to.')
def server(host, port):
    """Run the FastAPI server."""
    import uvicorn

    from shareden.api.server import app
    uvicorn.run(app, host=host, port=port)
