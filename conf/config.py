# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
from os import environ, path

confdir = path.abspath(path.dirname(__file__))
# use parent dir as dbdir else fallback to current dir
dbdir = path.abspath(path.join(confdir, "..")) if confdir.endswith("conf") else confdir


class BaseConfiguration(object):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = "sqlite:///{0}".format(path.join(dbdir, "compose_build_service.db"))
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Where we should run when running "manage.py run" directly.
    HOST = "0.0.0.0"
    PORT = 5000

    SYSTEM = "travis"
    RESOLVER = "github"

    # component -> components it needs built first
    DEPENDENCIES = {
        "pulumi": [],
        "pulumi-terraform": ["pulumi"],
        "pulumi-aws": ["pulumi", "pulumi-terraform"],
        "pulumi-aws-infra": ["pulumi", "pulumi-aws"],
        "pulumi-aws-serverless": ["pulumi", "pulumi-aws"],
        "pulumi-cloud": ["pulumi", "pulumi-aws", "pulumi-aws-infra"],
        "home": ["pulumi", "pulumi-aws", "pulumi-cloud"],
    }

    GITHUB_OWNER = "pulumi"
    DEFAULT_BRANCH = "master"
    COMPOSE_SCRIPT = "../scripts/compose/run-compose"

    PUBLISH_BACKEND = "none"

    LOG_BACKEND = "console"
    LOG_LEVEL = "info"


class TestConfiguration(BaseConfiguration):
    LOG_LEVEL = "debug"
    SQLALCHEMY_DATABASE_URI = environ.get(
        "DATABASE_URI", "sqlite:///{0}".format(path.join(dbdir, "cbstest.db")))
    DEBUG = True
    TESTING = True
    SERVER_NAME = "localhost"

    DEPENDENCIES = {
        "A": [],
        "B": ["A"],
        "C": ["A"],
        "D": ["B", "C"],
        "E": [],
    }

    GITHUB_OWNER = "example"
    GITHUB_TOKEN = "github-test-token"
    TRAVIS_TOKEN = "travis-test-token"

    # Global network-related values, in seconds
    NET_TIMEOUT = 3
    CONFLICT_RETRIES = 3


class ProdConfiguration(BaseConfiguration):
    PUBLISH_BACKEND = "http"
    PUBLISH_URL = "https://s3.amazonaws.com/public.eng.pulumi.com"


class DevConfiguration(BaseConfiguration):
    DEBUG = True
    LOG_LEVEL = "debug"
    RESOLVER = "git"
    PUBLISH_BACKEND = "file"
    PUBLISH_DIR = path.join(dbdir, "publish")
