# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" SQLAlchemy Database models for the Flask app
"""

from datetime import datetime

from sqlalchemy.orm import validates

from compose_build_service import db
from compose_build_service.errors import ProgrammingError


# Just like koji.BUILD_STATES, except our own codes for repository builds.
BUILD_STATES = {
    # The record exists, nothing was asked of the CI system yet.  It stays
    # here until all of its tracked dependencies are complete.
    "pending": 0,
    # A build was requested, the CI system has not told us its build id.
    "requested": 1,
    # The CI system accepted the request and we know which build runs it.
    "building": 2,
    # The build notified us that it finished.  Terminal.
    "complete": 3,
}

INVERSE_BUILD_STATES = {v: k for k, v in BUILD_STATES.items()}

# Fields which, once set, are never cleared or changed to something else.
MONOTONIC_FIELDS = ("build_complete", "build_request_id", "build_id")


class Job(db.Model):
    __tablename__ = "jobs"
    id = db.Column(db.String, primary_key=True)
    root = db.Column(db.String, nullable=False)
    branch = db.Column(db.String, nullable=False)
    time_submitted = db.Column(db.DateTime, nullable=False)

    repository_builds = db.relationship(
        'RepositoryBuild', backref='job', lazy='selectin',
        order_by='RepositoryBuild.component', cascade="all, delete-orphan")

    @property
    def repositories(self):
        """ The records of this job, keyed by component. """
        return {build.component: build for build in self.repository_builds}

    @property
    def done(self):
        return all(build.build_complete for build in self.repository_builds)

    def json(self):
        return {
            'id': self.id,
            'root': self.root,
            'branch': self.branch,
            'state': 'done' if self.done else 'building',
            'time_submitted': _utc_datetime_to_iso(self.time_submitted),
            'repositories': {
                build.component: build.json() for build in self.repository_builds
            },
        }

    def __repr__(self):
        return "<Job %s, root %s, branch %s, %d repositories>" % (
            self.id, self.root, self.branch, len(self.repository_builds))


class RepositoryBuild(db.Model):
    """ The state of one component within a job. """
    __tablename__ = "repository_builds"
    __table_args__ = (
        db.UniqueConstraint('job_id', 'component', name='uq_job_component'),
    )
    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.String, db.ForeignKey('jobs.id'), nullable=False)
    component = db.Column(db.String, nullable=False)
    # This may be the default branch when the requested one doesn't exist.
    branch = db.Column(db.String, nullable=False)
    commit = db.Column(db.String, nullable=False)
    build_complete = db.Column(db.Boolean, nullable=False, default=False)
    # Set once we asked the CI system for a build.  Never cleared, this is
    # what makes triggering idempotent.
    build_request_id = db.Column(db.String)
    # Set once the CI system tells us which build serves the request.
    build_id = db.Column(db.String)
    time_modified = db.Column(db.DateTime)
    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def state(self):
        if self.build_complete:
            return BUILD_STATES["complete"]
        if self.build_id is not None:
            return BUILD_STATES["building"]
        if self.build_request_id is not None:
            return BUILD_STATES["requested"]
        return BUILD_STATES["pending"]

    @validates(*MONOTONIC_FIELDS)
    def validate_monotonic(self, key, value):
        current = getattr(self, key)
        if key == "build_complete":
            if current and not value:
                raise ProgrammingError(
                    "%r: build_complete cannot be unset" % self)
            return bool(value)

        if value is not None:
            value = str(value)
        if current is not None and current != value:
            raise ProgrammingError(
                "%r: %s is already %r, refusing to set %r"
                % (self, key, current, value))
        if key == "build_id" and value is not None and self.build_request_id is None:
            raise ProgrammingError(
                "%r: build_id cannot be set before build_request_id" % self)
        return value

    def json(self):
        return {
            'branch': self.branch,
            'commit': self.commit,
            'buildComplete': bool(self.build_complete),
            'buildRequestId': self.build_request_id,
            'buildId': self.build_id,
            'state': self.state,
            'state_name': INVERSE_BUILD_STATES[self.state],
        }

    def __repr__(self):
        return "<RepositoryBuild %s, job %s, state %r, request %r, build %r>" % (
            self.component, self.job_id, INVERSE_BUILD_STATES[self.state],
            self.build_request_id, self.build_id)


def _utc_datetime_to_iso(datetime_object):
    """
    Takes a UTC datetime object and returns an ISO formatted string
    :param datetime_object: datetime.datetime
    :return: string with datetime in ISO format
    """
    if datetime_object:
        return datetime_object.strftime("%Y-%m-%dT%H:%M:%SZ")

    return None


def utcnow():
    return datetime.utcnow()
