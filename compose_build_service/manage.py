# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
import logging

import click

from compose_build_service import app, conf, db, dependency_graph, create_app
from compose_build_service.errors import ValidationError


@click.group()
@click.option("-d", "--debug", is_flag=True, help="Debug output.")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output.")
@click.option("-q", "--quiet", is_flag=True, help="Only log warnings and errors.")
def cli(debug, verbose, quiet):
    create_app(debug=debug, verbose=verbose, quiet=quiet)


@cli.command()
def createdb():
    """ Creates the database tables
    """
    with app.app_context():
        db.create_all()
    click.echo("Database tables created")


@cli.command()
@click.argument("component")
def downstream(component):
    """ Prints the components a composed build of COMPONENT would rebuild
    """
    try:
        components = dependency_graph.downstream(component)
    except ValidationError as e:
        raise click.BadParameter(str(e), param_hint="COMPONENT")
    for name in sorted(components):
        click.echo(name)


@cli.command()
@click.option("--host", default=conf.host, show_default=True)
@click.option("--port", default=conf.port, type=int, show_default=True)
@click.option("--debug/--no-debug", "debug", default=conf.debug)
def run(host, port, debug):
    """ Runs the Flask app
    """
    logging.info("Starting the compose build service")
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    cli()
