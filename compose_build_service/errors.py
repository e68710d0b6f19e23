# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Defines custom exceptions and error handling functions """

from flask import jsonify


class ValidationError(ValueError):
    pass


class NotFound(ValueError):
    pass


class ProgrammingError(ValueError):
    pass


class ResolutionError(RuntimeError):
    """Neither the requested nor the fallback branch could be resolved."""


class TriggerError(RuntimeError):
    """The CI system refused or failed to start a build."""


class StatusQueryError(RuntimeError):
    """The CI system could not be asked about a build request."""


class ConcurrencyConflictError(RuntimeError):
    """A record changed underneath us between read and write."""


def json_error(status, error, message):
    response = jsonify({"status": status, "error": error, "message": message})
    response.status_code = status
    return response
