# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""SCM handler functions.

Resolve the branch a composed build was requested for to a concrete commit
of every component, falling back to the default branch for components which
don't have that branch.
"""

from abc import ABCMeta, abstractmethod
import logging
import subprocess as sp

import requests

from compose_build_service.errors import ResolutionError
from compose_build_service.utils import requests_session

log = logging.getLogger(__name__)


class CommitResolver(metaclass=ABCMeta):
    """
    External Api for commit resolvers

    Example usage:
        resolver = CommitResolver.create(conf)
        resolver.resolve("pulumi-aws", "feature/x")
        # {'branch': 'master', 'commit': '5481faa2...'} if feature/x
        # doesn't exist in pulumi-aws
    """

    backend = "generic"

    def __init__(self, config):
        self.default_branch = config.default_branch
        self.timeout = config.net_timeout

    @classmethod
    def create(cls, config):
        """
        :param config: instance of compose_build_service.config.Config
        """
        if config.resolver == "github":
            return GitHubResolver(config)
        elif config.resolver == "git":
            return GitResolver(config)
        else:
            raise ValueError("Resolver backend='%s' not recognized" % config.resolver)

    @abstractmethod
    def get_latest(self, component, branch):
        """
        :param component: the component (repository) name
        :param branch: the branch name
        :return: the commit hash at the head of the branch, or None when the
                 branch doesn't exist
        :raises ResolutionError: when the SCM couldn't be asked
        """
        raise NotImplementedError()

    def resolve(self, component, branch):
        """ Returns {'branch': ..., 'commit': ...} for the component.

        The returned branch is the default branch when the requested one
        doesn't exist in the component's repository.

        :raises ResolutionError: when neither branch exists
        """
        candidates = [branch]
        if self.default_branch and self.default_branch != branch:
            candidates.append(self.default_branch)

        for candidate in candidates:
            commit = self.get_latest(component, candidate)
            if commit:
                if candidate != branch:
                    log.info("%s has no branch %s, using %s at %s",
                             component, branch, candidate, commit)
                else:
                    log.debug("%s branch %s is at %s", component, candidate, commit)
                return {"branch": candidate, "commit": commit}

        raise ResolutionError("Neither branch %s nor %s exist in %s" % (
            branch, self.default_branch, component))


class GitHubResolver(CommitResolver):
    """ Asks the GitHub git data API for branch heads. """

    backend = "github"

    def __init__(self, config):
        super(GitHubResolver, self).__init__(config)
        self.api_url = config.github_api_url.rstrip("/")
        self.owner = config.github_owner
        self.token = config.github_token

    def __repr__(self):
        return "<GitHubResolver owner: %s>" % self.owner

    def get_latest(self, component, branch):
        url = "%s/repos/%s/%s/git/ref/heads/%s" % (
            self.api_url, self.owner, component, branch)
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = "token %s" % self.token

        try:
            rv = requests_session.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            log.exception("Connection to GitHub failed when resolving %s:%s", component, branch)
            raise ResolutionError("Failed to resolve %s:%s: %s" % (component, branch, e))

        if rv.status_code == 404:
            return None
        if not rv.ok:
            log.error("GitHub answered %d when resolving %s:%s: %s",
                      rv.status_code, component, branch, rv.text)
            raise ResolutionError("Bad response from GitHub for %s:%s: %d" % (
                component, branch, rv.status_code))

        try:
            return rv.json()["object"]["sha"]
        except (ValueError, KeyError, TypeError):
            raise ResolutionError("Unexpected response from GitHub for %s:%s" % (
                component, branch))


class GitResolver(CommitResolver):
    """ Runs git ls-remote against the component's repository. """

    backend = "git"

    def __init__(self, config):
        super(GitResolver, self).__init__(config)
        self.url_prefix = config.git_url_prefix

    def __repr__(self):
        return "<GitResolver prefix: %s>" % self.url_prefix

    def get_latest(self, component, branch):
        repository = self.url_prefix + component
        # The ref is passed as its own argument, so no shell ever sees it.
        cmd = ["git", "ls-remote", "--heads", repository, "refs/heads/" + branch]
        try:
            proc = sp.Popen(cmd, stdout=sp.PIPE, stderr=sp.PIPE)
            stdout, stderr = proc.communicate(timeout=self.timeout)
        except sp.TimeoutExpired:
            proc.kill()
            proc.communicate()
            raise ResolutionError("Timed out on %r" % cmd)
        except OSError as e:
            raise ResolutionError("Failed to run %r: %s" % (cmd, e))

        if proc.returncode != 0:
            raise ResolutionError("Failed on %r, retcode %r, out %r, err %r" % (
                cmd, proc.returncode, stdout, stderr))

        for line in stdout.decode("utf-8").splitlines():
            commit, _, ref = line.partition("\t")
            if ref.strip() == "refs/heads/" + branch:
                return commit.strip()
        return None
