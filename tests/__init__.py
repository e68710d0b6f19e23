# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
import os

os.environ.setdefault("COMPOSE_BUILD_SERVICE_TESTING", "1")

from compose_build_service import app, conf, db  # noqa: E402
from compose_build_service import models  # noqa: E402
from compose_build_service.builder import GenericBuilder  # noqa: E402
from compose_build_service.errors import StatusQueryError, TriggerError  # noqa: E402
from compose_build_service.graph import DependencyGraph  # noqa: E402
from compose_build_service.scm import CommitResolver  # noqa: E402
from compose_build_service.store import JobStore  # noqa: E402

__all__ = [
    "app", "conf", "db", "diamond_graph", "init_data", "make_job",
    "FakeBuilder", "FakeResolver",
]

# A <- B, A <- C, B,C <- D; E stands alone.
DIAMOND = {"A": [], "B": ["A"], "C": ["A"], "D": ["B", "C"], "E": []}


def diamond_graph():
    return DependencyGraph(DIAMOND)


def init_data():
    """ Empties the database. Must be called within an app context. """
    db.session.remove()
    db.drop_all()
    db.create_all()


def make_job(session, records, job_id="1000", root="A", branch="master"):
    """ Stores a job with the given records.

    :param dict records: component -> dict of RepositoryBuild attributes;
        branch and commit default to master and a fake hash
    """
    now = models.utcnow()
    job = models.Job(id=job_id, root=root, branch=branch, time_submitted=now)
    for component, attrs in sorted(records.items()):
        attrs = dict(attrs)
        attrs.setdefault("branch", "master")
        attrs.setdefault("commit", "%s-sha" % component.lower())
        # build_request_id must be set before build_id
        build_id = attrs.pop("build_id", None)
        record = models.RepositoryBuild(component=component, time_modified=now, **attrs)
        if build_id is not None:
            record.build_id = build_id
        job.repository_builds.append(record)
    return JobStore(session).create(job)


class FakeBuilder(GenericBuilder):
    """ Builder recording what it was asked to build. """

    backend = "fake"

    def __init__(self, refuse=(), build_ids=None, unreachable=()):
        self.requests = []
        self.queries = []
        self.refuse = set(refuse)
        self.build_ids = dict(build_ids or {})
        self.unreachable = set(unreachable)

    @property
    def triggered(self):
        return [component for component, _, _, _ in self.requests]

    def build(self, component, commit, branch, job_id):
        if component in self.refuse:
            raise TriggerError("Travis CI refused the build of %s: 500" % component)
        self.requests.append((component, commit, branch, job_id))
        return "req-%s-%d" % (component, len(self.requests))

    def get_build_id(self, component, request_id):
        self.queries.append((component, request_id))
        if component in self.unreachable:
            raise StatusQueryError("Failed to reach Travis CI for %s" % component)
        return self.build_ids.get(component)


class FakeResolver(CommitResolver):
    """ Resolver answering from a dict of component -> {branch: commit}. """

    backend = "fake"

    def __init__(self, heads, default_branch="master"):
        self.heads = heads
        self.default_branch = default_branch
        self.timeout = 1

    def get_latest(self, component, branch):
        return self.heads.get(component, {}).get(branch)
