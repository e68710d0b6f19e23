# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Starting the builds of components whose dependencies are built. """

import logging

from compose_build_service.errors import ConcurrencyConflictError, TriggerError
from compose_build_service.store import JobStore
from compose_build_service.utils import retry

log = logging.getLogger(__name__)


class AdvanceResult(object):
    """ What one pass over a job did.

    :attribute job: the job as stored after the pass
    :attribute list triggered: components whose build was requested
    :attribute dict failed: component -> reason, for builds the CI system
        refused; these stay pending and are tried again on the next pass
    :attribute dict unrecorded: component -> request id, for builds which
        were launched but whose request id kept conflicting on write
    """

    def __init__(self, job, triggered=None, failed=None, unrecorded=None):
        self.job = job
        self.triggered = triggered or []
        self.failed = failed or {}
        self.unrecorded = unrecorded or {}

    def json(self):
        rv = self.job.json()
        if self.failed:
            rv['trigger_failures'] = self.failed
        if self.unrecorded:
            rv['unrecorded_requests'] = self.unrecorded
        return rv

    def __repr__(self):
        return "<AdvanceResult job %s, triggered %r, failed %r>" % (
            self.job.id, self.triggered, sorted(self.failed))


def is_ready(graph, records, component):
    """ True if every dependency of the component tracked by the job is built.

    Dependencies the job doesn't track count as built already.
    """
    return all(
        records[dep].build_complete
        for dep in graph.dependencies(component)
        if dep in records
    )


def _store_request_id(config, store, job_id, component, request_id):
    @retry(interval=0, wait_on=ConcurrencyConflictError,
           attempts=config.conflict_retries + 1)
    def _update():
        record = store.get_record(job_id, component)
        if record.build_request_id is not None and record.build_request_id != request_id:
            log.warning("[%s] %s was launched concurrently as request %s, "
                        "request %s is a duplicate",
                        job_id, component, record.build_request_id, request_id)
            return
        store.update_field(job_id, component, "build_request_id", request_id)

    _update()


def advance(config, session, graph, builder, job):
    """ Launches the build of every pending component of the job which is ready.

    Each component is looked at once.  A component only becomes ready when a
    dependency completes, which is never the case within this pass, so newly
    ready components are left for the pass run by the next completion.

    Calling this again on the same stored job launches nothing new: a
    component whose build was requested already is never requested again.
    """
    store = JobStore(session)
    result = AdvanceResult(job)

    records = job.repositories
    ready = [
        component for component, record in sorted(records.items())
        if record.build_request_id is None and is_ready(graph, records, component)
    ]

    for component in ready:
        # Somebody else may have launched it since the job was read.
        record = store.get_record(job.id, component)
        if record.build_request_id is not None:
            log.debug("[%s] %s was launched meanwhile as request %s",
                      job.id, component, record.build_request_id)
            continue

        log.info("[%s] launching build for %s", job.id, component)
        try:
            request_id = builder.build(component, record.commit, record.branch, job.id)
        except TriggerError as e:
            log.error("[%s] failed to launch build for %s: %s", job.id, component, e)
            result.failed[component] = str(e)
            continue

        try:
            _store_request_id(config, store, job.id, component, request_id)
        except ConcurrencyConflictError as e:
            log.error("[%s] %s was launched as request %s but it could not be "
                      "recorded: %s", job.id, component, request_id, e)
            result.unrecorded[component] = request_id
            continue
        result.triggered.append(component)

    result.job = store.get(job.id)
    if result.failed:
        log.warning("[%s] builds of %s could not be launched and stay pending",
                    job.id, ", ".join(sorted(result.failed)))
    return result


def mark_build_complete(config, session, graph, builder, job_id, component):
    """ Records that the component finished building and launches whatever
    that made ready.

    :raises NotFound: if the job doesn't exist or doesn't track the component
    :raises ConcurrencyConflictError: if the write kept conflicting
    """
    store = JobStore(session)
    log.info("[%s] marking build complete for %s", job_id, component)

    record = store.get_record(job_id, component)
    if record.build_request_id is None:
        log.warning("[%s] %s reported complete but its build was never launched",
                    job_id, component)

    @retry(interval=0, wait_on=ConcurrencyConflictError,
           attempts=config.conflict_retries + 1)
    def _mark():
        store.update_field(job_id, component, "build_complete", True)

    _mark()
    log.info("[%s] build marked as completed for %s", job_id, component)

    result = advance(config, session, graph, builder, store.get(job_id))
    if result.job.done:
        log.info("[%s] all components complete", job_id)
    return result
