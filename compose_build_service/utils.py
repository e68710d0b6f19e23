# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Utility functions for compose_build_service. """
import functools
import logging
import time

import requests
from flask import request, url_for

log = logging.getLogger(__name__)


def retry(timeout=120, interval=30, wait_on=Exception, attempts=None):
    """ A decorator that allows to retry a section of code...
    ...until success, timeout, or the number of attempts is used up.
    """
    def wrapper(function):
        @functools.wraps(function)
        def inner(*args, **kwargs):
            start = time.time()
            tries = 0
            while True:
                tries += 1
                try:
                    return function(*args, **kwargs)
                except wait_on as e:
                    if (time.time() - start) >= timeout:
                        raise
                    if attempts is not None and tries >= attempts:
                        raise
                    log.warning("Exception %r raised from %r.  Retry in %rs" % (
                        e, function, interval))
                    time.sleep(interval)
        return inner
    return wrapper


def pagination_metadata(p_query):
    """
    Returns a dictionary containing metadata about the paginated query. This must be run as part of a Flask request.
    :param p_query: flask_sqlalchemy.Pagination object
    :return: a dictionary containing metadata about the paginated query
    """

    pagination_data = {
        'page': p_query.page,
        'per_page': p_query.per_page,
        'total': p_query.total,
        'pages': p_query.pages,
        'first': url_for(request.endpoint, page=1, per_page=p_query.per_page, _external=True),
        'last': url_for(request.endpoint, page=p_query.pages, per_page=p_query.per_page, _external=True)
    }

    if p_query.has_prev:
        pagination_data['prev'] = url_for(request.endpoint, page=p_query.prev_num,
                                          per_page=p_query.per_page, _external=True)
    if p_query.has_next:
        pagination_data['next'] = url_for(request.endpoint, page=p_query.next_num,
                                          per_page=p_query.per_page, _external=True)

    return pagination_data


# Shared by every client talking HTTP to the outside world.  No retries are
# mounted here, callers decide whether a failed call is worth repeating.
requests_session = requests.Session()
