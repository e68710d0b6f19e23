# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Creation of composed build jobs. """

import logging
import time

from compose_build_service import models
from compose_build_service.errors import ConcurrencyConflictError, ValidationError
from compose_build_service.scheduler.batches import advance
from compose_build_service.store import JobStore
from compose_build_service.utils import retry

log = logging.getLogger(__name__)


def new_job_id(store):
    """ Returns an unused job id derived from the current time, in ms. """
    job_id = int(time.time() * 1000)
    while store.exists(str(job_id)):
        job_id += 1
    return str(job_id)


def create_job(config, session, graph, resolver, builder, publisher, root, branch):
    """ Creates a composed build of `root` and everything that depends on it.

    Every component is resolved before anything is written: if any of them
    can't be resolved, no job is created at all.  The builds of components
    which are ready right away are launched before returning.

    :raises ValidationError: if root or branch are missing or root is unknown
    :raises ResolutionError: if a component's commit can't be resolved
    :return: AdvanceResult of the initial pass over the new job
    """
    if not root or not branch:
        raise ValidationError("Missing branch or repo in request")
    if root not in graph:
        raise ValidationError("Unknown repository: %s" % root)

    components = [root] + sorted(graph.downstream(root))
    log.debug("Composed build of %s:%s covers %s", root, branch, ", ".join(components))

    resolved = dict(
        (component, resolver.resolve(component, branch)) for component in components)

    store = JobStore(session)

    @retry(interval=0, wait_on=ConcurrencyConflictError,
           attempts=config.conflict_retries + 1)
    def _create():
        now = models.utcnow()
        job = models.Job(id=new_job_id(store), root=root, branch=branch, time_submitted=now)
        for component in components:
            job.repository_builds.append(models.RepositoryBuild(
                component=component,
                branch=resolved[component]["branch"],
                commit=resolved[component]["commit"],
                build_complete=False,
                time_modified=now,
            ))
        return store.create(job)

    job = _create()
    log.info("[%s] created composed build of %s:%s", job.id, root, branch)

    failed = publisher.publish_commits(job)
    if failed:
        log.warning("[%s] commits of %s were not published", job.id, ", ".join(failed))

    # A crash before this point leaves the job pending, POST /jobs/<id>/advance resumes it.
    return advance(config, session, graph, builder, job)
