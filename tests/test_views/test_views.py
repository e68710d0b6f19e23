# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
import json
import unittest

from mock import patch

from compose_build_service import db
from compose_build_service.builder import GenericBuilder
from compose_build_service.errors import ConcurrencyConflictError
from compose_build_service.scm import CommitResolver
from compose_build_service.store import JobStore
from tests import FakeBuilder, FakeResolver, app, init_data, make_job

API = "/compose-build-service/1"

HEADS = {
    "A": {"master": "a0", "feature": "a1"},
    "B": {"master": "b0"},
    "C": {"master": "c0"},
    "D": {"master": "d0"},
    "E": {"master": "e0"},
}


class TestViews(unittest.TestCase):

    def setUp(self):
        self.client = app.test_client()
        init_data()
        self.builder = FakeBuilder()
        self.resolver = FakeResolver(HEADS)
        patched_builder = patch.object(GenericBuilder, "create", return_value=self.builder)
        patched_resolver = patch.object(CommitResolver, "create", return_value=self.resolver)
        patched_builder.start()
        patched_resolver.start()
        self.addCleanup(patched_builder.stop)
        self.addCleanup(patched_resolver.stop)

    def _submit(self, repo="A", branch="master"):
        return self.client.post(API + "/jobs/", data=json.dumps(
            {"repo": repo, "branch": branch}))

    def test_submit_job(self):
        rv = self._submit()
        data = json.loads(rv.data)

        self.assertEqual(rv.status_code, 201)
        self.assertEqual(data["root"], "A")
        self.assertEqual(data["branch"], "master")
        self.assertEqual(data["state"], "building")
        self.assertEqual(sorted(data["repositories"]), ["A", "B", "C", "D"])
        self.assertEqual(data["repositories"]["A"]["state_name"], "requested")
        self.assertEqual(data["repositories"]["A"]["buildRequestId"], "req-A-1")
        self.assertEqual(data["repositories"]["D"]["state_name"], "pending")
        self.assertEqual(data["repositories"]["D"]["commit"], "d0")
        self.assertNotIn("trigger_failures", data)
        self.assertTrue(JobStore(db.session).exists(data["id"]))

    def test_submit_job_falls_back_to_default_branch(self):
        rv = self._submit(branch="feature")
        data = json.loads(rv.data)

        self.assertEqual(rv.status_code, 201)
        self.assertEqual(data["repositories"]["A"]["branch"], "feature")
        self.assertEqual(data["repositories"]["A"]["commit"], "a1")
        self.assertEqual(data["repositories"]["B"]["branch"], "master")

    def test_submit_job_missing_branch(self):
        rv = self.client.post(API + "/jobs/", data=json.dumps({"repo": "A"}))
        data = json.loads(rv.data)

        self.assertEqual(rv.status_code, 400)
        self.assertEqual(data["status"], 400)
        self.assertEqual(data["error"], "Bad Request")
        self.assertEqual(data["message"], "Missing branch or repo in request")

    def test_submit_job_invalid_json(self):
        rv = self.client.post(API + "/jobs/", data="{not json")
        self.assertEqual(rv.status_code, 400)
        self.assertEqual(json.loads(rv.data)["message"], "Invalid JSON submitted")

        rv = self.client.post(API + "/jobs/", data=json.dumps(["A", "master"]))
        self.assertEqual(rv.status_code, 400)

    def test_submit_job_unknown_repo(self):
        rv = self._submit(repo="Z")
        self.assertEqual(rv.status_code, 400)
        self.assertEqual(json.loads(rv.data)["message"], "Unknown repository: Z")

    def test_submit_job_unresolvable(self):
        self.resolver.heads = {"E": {"develop": "e2"}}

        rv = self._submit(repo="E", branch="feature")

        self.assertEqual(rv.status_code, 422)
        self.assertEqual(json.loads(rv.data)["error"], "Unprocessable Entity")
        self.assertEqual(json.loads(self.client.get(API + "/jobs/").data)["items"], [])

    def test_submit_job_trigger_failure(self):
        self.builder.refuse.add("A")

        rv = self._submit()
        data = json.loads(rv.data)

        self.assertEqual(rv.status_code, 201)
        self.assertEqual(list(data["trigger_failures"]), ["A"])
        self.assertEqual(data["repositories"]["A"]["state_name"], "pending")

        self.builder.refuse.clear()
        rv = self.client.post(API + "/jobs/%s/advance" % data["id"])
        data = json.loads(rv.data)

        self.assertEqual(rv.status_code, 200)
        self.assertEqual(data["repositories"]["A"]["state_name"], "requested")
        self.assertEqual(self.builder.triggered, ["A"])

    def test_advance_is_idempotent(self):
        job_id = json.loads(self._submit().data)["id"]

        rv = self.client.post(API + "/jobs/%s/advance" % job_id)

        self.assertEqual(rv.status_code, 200)
        self.assertEqual(self.builder.triggered, ["A"])

    def test_query_job(self):
        make_job(db.session, {
            "A": {"build_request_id": "req-a"},
            "B": {},
        })
        self.builder.build_ids["A"] = "77"

        rv = self.client.get(API + "/jobs/1000")
        data = json.loads(rv.data)

        self.assertEqual(rv.status_code, 200)
        self.assertEqual(data["id"], "1000")
        self.assertEqual(data["repositories"]["A"]["buildId"], "77")
        self.assertEqual(data["repositories"]["A"]["state_name"], "building")
        self.assertEqual(data["repositories"]["B"]["buildId"], None)
        self.assertEqual(self.builder.requests, [])

    def test_query_job_ci_unreachable(self):
        make_job(db.session, {"A": {"build_request_id": "req-a"}})
        self.builder.unreachable.add("A")

        rv = self.client.get(API + "/jobs/1000")

        self.assertEqual(rv.status_code, 200)
        self.assertEqual(json.loads(rv.data)["repositories"]["A"]["buildId"], None)

    def test_query_job_not_found(self):
        rv = self.client.get(API + "/jobs/404")
        data = json.loads(rv.data)

        self.assertEqual(rv.status_code, 404)
        self.assertEqual(data["error"], "Not Found")

    def test_list_jobs(self):
        make_job(db.session, {"A": {"build_request_id": "1", "build_complete": True}},
                 job_id="1000")
        make_job(db.session, {"E": {}}, job_id="1001", root="E")

        rv = self.client.get(API + "/jobs/?per_page=1")
        data = json.loads(rv.data)

        self.assertEqual(rv.status_code, 200)
        self.assertEqual(data["meta"]["total"], 2)
        self.assertEqual(data["meta"]["pages"], 2)
        self.assertIn("next", data["meta"])
        self.assertEqual(data["items"], [
            {"id": "1001", "root": "E", "branch": "master", "state": "building"}])

        rv = self.client.get(API + "/jobs/?page=2&per_page=1&verbose=true")
        data = json.loads(rv.data)
        self.assertEqual(data["items"][0]["id"], "1000")
        self.assertEqual(data["items"][0]["state"], "done")
        self.assertIn("repositories", data["items"][0])

    def test_build_complete(self):
        job_id = json.loads(self._submit().data)["id"]

        rv = self.client.post(API + "/jobs/%s/build-complete/A" % job_id)
        data = json.loads(rv.data)

        self.assertEqual(rv.status_code, 200)
        self.assertTrue(data["repositories"]["A"]["buildComplete"])
        self.assertEqual(data["repositories"]["B"]["state_name"], "requested")
        self.assertEqual(data["repositories"]["C"]["state_name"], "requested")
        self.assertEqual(data["repositories"]["D"]["state_name"], "pending")
        self.assertEqual(sorted(self.builder.triggered), ["A", "B", "C"])

    def test_build_complete_whole_job(self):
        job_id = json.loads(self._submit().data)["id"]
        for component in ("A", "B", "C", "D"):
            rv = self.client.post(API + "/jobs/%s/build-complete/%s" % (job_id, component))
            self.assertEqual(rv.status_code, 200)

        data = json.loads(rv.data)
        self.assertEqual(data["state"], "done")
        self.assertEqual(sorted(self.builder.triggered), ["A", "B", "C", "D"])

    def test_build_complete_unknown_component(self):
        make_job(db.session, {"A": {}})

        rv = self.client.post(API + "/jobs/1000/build-complete/B")
        self.assertEqual(rv.status_code, 404)
        rv = self.client.post(API + "/jobs/404/build-complete/A")
        self.assertEqual(rv.status_code, 404)

    @patch("compose_build_service.views.mark_build_complete",
           side_effect=ConcurrencyConflictError("[1000] build_complete of A was modified"))
    def test_build_complete_conflict(self, mark_build_complete):
        make_job(db.session, {"A": {}})

        rv = self.client.post(API + "/jobs/1000/build-complete/A")

        self.assertEqual(rv.status_code, 503)
        self.assertEqual(json.loads(rv.data)["error"], "Service Unavailable")

    def test_components(self):
        rv = self.client.get(API + "/components/")
        data = json.loads(rv.data)

        self.assertEqual(rv.status_code, 200)
        self.assertEqual(data["D"], {"dependencies": ["B", "C"], "downstream": []})
        self.assertEqual(data["A"]["downstream"], ["B", "C", "D"])
