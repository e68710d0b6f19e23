# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Picking up the CI build ids of requested builds. """

import logging

from compose_build_service.errors import ConcurrencyConflictError, StatusQueryError
from compose_build_service.store import JobStore

log = logging.getLogger(__name__)


def reconcile(config, session, builder, job):
    """ Asks the CI system which build serves every requested component
    whose build id we don't know yet, and stores the answers.

    This never launches anything.  A component the CI system can't tell us
    about right now is skipped, the next call asks again.

    :return: the job as stored afterwards
    """
    store = JobStore(session)

    for build in list(job.repository_builds):
        if build.build_request_id is None or build.build_id is not None:
            continue
        component, request_id = build.component, build.build_request_id

        try:
            build_id = builder.get_build_id(component, request_id)
        except StatusQueryError as e:
            log.warning("[%s] failed to query request %s of %s: %s",
                        job.id, request_id, component, e)
            continue

        if build_id is None:
            log.debug("[%s] request %s of %s has no build yet", job.id, request_id, component)
            continue

        try:
            store.update_field(job.id, component, "build_id", build_id)
        except ConcurrencyConflictError as e:
            log.warning("[%s] %s", job.id, e)
            continue
        log.info("[%s] %s is built by %s", job.id, component, build_id)

    return store.get(job.id)
