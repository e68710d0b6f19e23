# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
import os

from mock import MagicMock, patch
import pytest
import requests

from compose_build_service.config import Config
from compose_build_service.publish import (
    FilePublisher, HTTPPublisher, Publisher, commit_key)
from tests import make_job


def test_commit_key():
    assert commit_key("1528302716000", "pulumi-aws") == \
        "compose/build/1528302716000/commits/pulumi-aws"


@pytest.mark.parametrize("backend, extra, cls", [
    ("none", {}, Publisher),
    ("file", {"publish_dir": "/tmp/compose"}, FilePublisher),
    ("http", {"publish_url": "https://s3.example.com/bucket"}, HTTPPublisher),
])
def test_create(backend, extra, cls):
    config = Config()
    config.set_item("publish_backend", backend)
    for key, value in extra.items():
        config.set_item(key, value)
    assert type(Publisher.create(config)) is cls


def test_create_needs_a_location():
    config = Config()
    config.set_item("publish_backend", "http")
    with pytest.raises(ValueError):
        Publisher.create(config)


def test_none_publishes_nothing(db_session):
    job = make_job(db_session, {"A": {}})
    assert Publisher().publish_commits(job) == []


def test_file(db_session, tmp_path):
    job = make_job(db_session, {"A": {}, "B": {"commit": "b1"}})

    failed = FilePublisher(str(tmp_path)).publish_commits(job)

    assert failed == []
    with open(os.path.join(str(tmp_path), "compose/build/1000/commits/B")) as f:
        assert f.read() == "b1"


@patch("compose_build_service.publish.requests_session")
def test_http(session, db_session):
    job = make_job(db_session, {"A": {}, "B": {}})
    ok = MagicMock()
    bad = MagicMock()
    bad.raise_for_status.side_effect = requests.HTTPError("403 Forbidden")
    session.put.side_effect = [ok, bad]

    failed = HTTPPublisher("https://s3.example.com/bucket/", 5).publish_commits(job)

    assert failed == ["B"]
    args, kwargs = session.put.call_args_list[0]
    assert args[0] == "https://s3.example.com/bucket/compose/build/1000/commits/A"
    assert kwargs["data"] == b"a-sha"
    assert kwargs["headers"]["x-amz-acl"] == "public-read"
    assert kwargs["timeout"] == 5
