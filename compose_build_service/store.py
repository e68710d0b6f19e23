# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Persistence of jobs.

A job is written as a whole exactly once, when it is created.  From then on
every change is a single field of a single repository record.  Each record
row carries its own version counter, so two requests touching different
components of the same job never overwrite each other, and two requests
touching the same record are detected instead of silently losing a write.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from compose_build_service import models
from compose_build_service.errors import (
    ConcurrencyConflictError, NotFound, ProgrammingError)

log = logging.getLogger(__name__)


class JobStore(object):
    """ Job record store over an SQLAlchemy session. """

    def __init__(self, session):
        self.session = session

    def exists(self, job_id):
        return self.session.query(models.Job.id).filter_by(id=job_id).first() is not None

    def create(self, job):
        """ Writes a new job together with all of its repository records.

        :raises ConcurrencyConflictError: if a job with the same id exists
        """
        self.session.add(job)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise ConcurrencyConflictError("Job %s already exists" % job.id)
        log.debug("[%s] stored %r", job.id, job)
        return job

    def get(self, job_id):
        """ Returns the job as currently stored.

        :raises NotFound: if there is no such job
        """
        job = self.session.query(models.Job)\
            .populate_existing()\
            .filter_by(id=job_id)\
            .first()
        if not job:
            raise NotFound("No such job found: %s" % job_id)
        return job

    def get_record(self, job_id, component):
        """ Returns one repository record as currently stored.

        :raises NotFound: if the job doesn't track the component
        """
        record = self.session.query(models.RepositoryBuild)\
            .populate_existing()\
            .filter_by(job_id=job_id, component=component)\
            .first()
        if not record:
            if not self.exists(job_id):
                raise NotFound("No such job found: %s" % job_id)
            raise NotFound("Job %s does not track %s" % (job_id, component))
        return record

    def update_field(self, job_id, component, field, value):
        """ Sets a single field of one repository record and commits.

        Writing the value which is already stored is a no-op.

        :raises NotFound: if the job or the component doesn't exist
        :raises ProgrammingError: on an attempt to clear or change a field
            which is already set
        :raises ConcurrencyConflictError: if the record was changed by
            somebody else since it was read
        :return: the updated job
        """
        if field not in models.MONOTONIC_FIELDS:
            raise ProgrammingError("%s is not an updatable field" % field)

        record = self.get_record(job_id, component)
        current = getattr(record, field)
        if current == value or (current is not None and current == str(value)):
            return record.job

        setattr(record, field, value)
        record.time_modified = models.utcnow()
        try:
            self.session.commit()
        except StaleDataError:
            self.session.rollback()
            raise ConcurrencyConflictError(
                "[%s] %s of %s was modified concurrently" % (job_id, field, component))
        log.debug("[%s] set %s of %s to %r", job_id, field, component, value)
        return record.job
