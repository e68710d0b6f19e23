# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""Generic component build functions."""

from abc import ABCMeta, abstractmethod
import logging
from urllib.parse import quote

import requests

from compose_build_service.errors import StatusQueryError, TriggerError
from compose_build_service.utils import requests_session

log = logging.getLogger(__name__)


class GenericBuilder(metaclass=ABCMeta):
    """
    External Api for builders

    Example usage:
        builder = GenericBuilder.create(conf)
        request_id = builder.build("pulumi-aws", "70fa7516b837...", "master",
                                   "1528302716000")
        ...
        # E.g. on some later request ... find out which build serves it
        builder.get_build_id("pulumi-aws", request_id)

    Neither call retries on failure, the scheduler does that by calling them
    again later.  build() must be safe to call concurrently for different
    components.
    """

    backend = "generic"

    @classmethod
    def create(cls, config):
        """
        :param config: instance of compose_build_service.config.Config
        """
        if config.system == "travis":
            return TravisBuilder(config)
        else:
            raise ValueError("Builder backend='%s' not recognized" % config.system)

    @abstractmethod
    def build(self, component, commit, branch, job_id):
        """
        :param component: the component (repository) to build
        :param commit: the commit to build, as resolved for the job
        :param branch: the branch the commit was resolved from
        :param job_id: the composed build job the build belongs to
        :return: an identifier of the build request
        :raises TriggerError: if the CI system didn't accept the request
        """
        raise NotImplementedError()

    @abstractmethod
    def get_build_id(self, component, request_id):
        """
        :param component: the component the build was requested for
        :param request_id: what build() returned
        :return: the id of the build serving the request, or None if the CI
                 system didn't start one yet
        :raises StatusQueryError: if the CI system couldn't be asked
        """
        raise NotImplementedError()


class TravisBuilder(GenericBuilder):
    """ Travis CI specific builder class """

    backend = "travis"

    def __init__(self, config):
        self.api_url = config.travis_api_url.rstrip("/")
        self.owner = config.github_owner
        self.token = config.travis_token
        self.compose_script = config.compose_script
        self.timeout = config.net_timeout

    def __repr__(self):
        return "<TravisBuilder owner: %s>" % self.owner

    @property
    def headers(self):
        return {
            "Content-Type": "application/json",
            "Travis-API-Version": "3",
            "Authorization": "token %s" % self.token,
        }

    def _repo_url(self, component):
        slug = quote("%s/%s" % (self.owner, component), safe="")
        return "%s/repo/%s" % (self.api_url, slug)

    def build(self, component, commit, branch, job_id):
        body = {
            "request": {
                "config": {
                    "merge_mode": "deep_merge",
                    "env": {
                        "global": {
                            "COMPOSE_BUILD_SHA": commit,
                            "COMPOSE_BUILD_ID": job_id,
                        }
                    },
                    "script": "%s %s" % (self.compose_script, job_id),
                },
                "message": "Composed Build %s" % job_id,
                "branch": branch,
            }
        }

        try:
            rv = requests_session.post(
                self._repo_url(component) + "/requests", json=body,
                headers=self.headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise TriggerError("Failed to reach Travis CI for %s: %s" % (component, e))

        if not rv.ok:
            raise TriggerError("Travis CI refused the build of %s: %d %s" % (
                component, rv.status_code, rv.text))

        try:
            data = rv.json()
            request_id = data["request"]["id"]
        except (ValueError, KeyError, TypeError):
            raise TriggerError("Unexpected response from Travis CI for %s" % component)

        remaining = data.get("remaining_requests")
        log.info("[%s] launched travis build for %s with id=%s (rate limit: %s remaining)",
                 job_id, component, request_id,
                 remaining - 1 if isinstance(remaining, int) else "?")
        return str(request_id)

    def get_build_id(self, component, request_id):
        try:
            rv = requests_session.get(
                "%s/request/%s" % (self._repo_url(component), request_id),
                headers=self.headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise StatusQueryError("Failed to reach Travis CI for %s: %s" % (component, e))

        if not rv.ok:
            raise StatusQueryError("Travis CI failed to report request %s of %s: %d" % (
                request_id, component, rv.status_code))

        try:
            builds = rv.json().get("builds")
            if not builds:
                return None
            return str(builds[0]["id"])
        except (ValueError, AttributeError, KeyError, TypeError):
            raise StatusQueryError("Unexpected response from Travis CI for %s" % component)
