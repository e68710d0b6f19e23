# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""The composed build orchestrator.

The orchestrator rebuilds a chain of interdependent repositories in
dependency order against one coherent set of commits, and is responsible
for a number of tasks:

- Providing an HTTP interface via which composed build jobs are
  submitted, queried and notified about finished component builds.
- Resolving the requested branch of every affected repository to a
  concrete commit, falling back to the default branch.
- Triggering the build of each component in the CI system once all
  of its dependencies have finished building, exactly once per job.
- Tracking the per-component build state of every job in the database
  and picking up the CI build ids as they become known.
"""

from importlib.metadata import version as dist_version, PackageNotFoundError
from logging import getLogger

from flask import Flask
from flask_sqlalchemy import SQLAlchemy

from compose_build_service.config import init_config
from compose_build_service.errors import (
    ValidationError, NotFound, ResolutionError, ConcurrencyConflictError,
    json_error)
from compose_build_service.graph import DependencyGraph
from compose_build_service.logger import init_logging

try:
    version = dist_version("compose-build-service")
except PackageNotFoundError:
    version = "unknown"
api_version = 1

conf, config_section = init_config()
app = Flask(__name__)
app.config.from_object(config_section)

db = SQLAlchemy(app)

init_logging(conf)
log = getLogger(__name__)

dependency_graph = DependencyGraph(conf.dependencies)


def create_app(debug=False, verbose=False, quiet=False):
    # logging (intended for the management cli, see manage.py)
    if debug:
        log.setLevel("DEBUG")
    elif verbose:
        log.setLevel("INFO")
    elif quiet:
        log.setLevel("WARNING")

    return app


def load_views():
    from compose_build_service import views

    assert views


@app.errorhandler(ValidationError)
def validationerror_error(e):
    """Flask error handler for ValidationError exceptions"""
    return json_error(400, "Bad Request", str(e))


@app.errorhandler(NotFound)
def notfound_error(e):
    """Flask error handler for NotFound exceptions"""
    return json_error(404, "Not Found", str(e))


@app.errorhandler(ResolutionError)
def resolutionerror_error(e):
    """Flask error handler for ResolutionError exceptions"""
    return json_error(422, "Unprocessable Entity", str(e))


@app.errorhandler(ConcurrencyConflictError)
def conflict_error(e):
    """Flask error handler for writes that kept conflicting"""
    log.warning("Giving up on a conflicting write: %s", e)
    return json_error(503, "Service Unavailable", str(e))


@app.errorhandler(RuntimeError)
def runtimeerror_error(e):
    """Flask error handler for RuntimeError exceptions"""
    log.exception("RuntimeError exception raised")
    return json_error(500, "Internal Server Error", str(e))


load_views()
