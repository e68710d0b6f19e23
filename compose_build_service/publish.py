# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""Publishing of the commits a composed build was resolved to.

Component builds fetch compose/build/<job id>/commits/<component> to learn
which commit of each of their dependencies they are supposed to build
against.  Publishing is best-effort: a failure is logged and the job goes on.
"""

import logging
import os

import requests

from compose_build_service.utils import requests_session

log = logging.getLogger(__name__)


def commit_key(job_id, component):
    return "compose/build/%s/commits/%s" % (job_id, component)


class Publisher(object):
    """ Does not publish anything. """

    backend = "none"

    @classmethod
    def create(cls, config):
        if config.publish_backend == "file":
            return FilePublisher(config.publish_dir)
        elif config.publish_backend == "http":
            return HTTPPublisher(config.publish_url, config.net_timeout)
        elif config.publish_backend == "none":
            return cls()
        else:
            raise ValueError("Publish backend='%s' not recognized" % config.publish_backend)

    def _put(self, key, body):
        pass

    def publish_commits(self, job):
        """ Publishes the resolved commit of every component of the job.

        :return: the list of components whose commit failed to publish
        """
        failed = []
        for build in job.repository_builds:
            key = commit_key(job.id, build.component)
            try:
                self._put(key, build.commit)
            except (OSError, requests.RequestException) as e:
                log.warning("[%s] failed to publish %s: %s", job.id, key, e)
                failed.append(build.component)
        return failed


class FilePublisher(Publisher):
    """ Writes the commits below a local directory. """

    backend = "file"

    def __init__(self, directory):
        if not directory:
            raise ValueError("The file publish backend needs publish_dir")
        self.directory = directory

    def _put(self, key, body):
        path = os.path.join(self.directory, key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:
            f.write(body)


class HTTPPublisher(Publisher):
    """ PUTs the commits to an object store reachable over HTTP. """

    backend = "http"

    def __init__(self, base_url, timeout):
        if not base_url:
            raise ValueError("The http publish backend needs publish_url")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _put(self, key, body):
        rv = requests_session.put(
            "%s/%s" % (self.base_url, key), data=body.encode("utf-8"),
            headers={"Content-Type": "text/plain", "x-amz-acl": "public-read"},
            timeout=self.timeout)
        rv.raise_for_status()
