# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" The composed build orchestrator, API.
This is the implementation of the orchestrator's public RESTful API.
"""

import json

from flask import request, jsonify
from flask.views import MethodView

from compose_build_service import app, conf, db, dependency_graph, log, models
from compose_build_service.builder import GenericBuilder
from compose_build_service.errors import ValidationError
from compose_build_service.publish import Publisher
from compose_build_service.scheduler.batches import advance, mark_build_complete
from compose_build_service.scheduler.jobs import create_job
from compose_build_service.scheduler.reconcile import reconcile
from compose_build_service.scm import CommitResolver
from compose_build_service.store import JobStore
from compose_build_service.utils import pagination_metadata

api_routes = {
    'jobs': {
        'url': '/compose-build-service/1/jobs/',
        'options': {
            'methods': ['GET'],
            'defaults': {'id': None},
        }
    },
    'job': {
        'url': '/compose-build-service/1/jobs/<id>',
        'options': {
            'methods': ['GET'],
        }
    },
    'job_submit': {
        'url': '/compose-build-service/1/jobs/',
        'options': {
            'methods': ['POST'],
        }
    },
    'job_build_complete': {
        'url': '/compose-build-service/1/jobs/<id>/build-complete/<component>',
        'options': {
            'methods': ['POST'],
        }
    },
    'job_advance': {
        'url': '/compose-build-service/1/jobs/<id>/advance',
        'options': {
            'methods': ['POST'],
        }
    },
    'components': {
        'url': '/compose-build-service/1/components/',
        'options': {
            'methods': ['GET'],
        }
    },
}


def _get_json_body():
    try:
        r = json.loads(request.get_data().decode("utf-8"))
    except ValueError:
        log.error('Invalid JSON submitted')
        raise ValidationError('Invalid JSON submitted')
    if not isinstance(r, dict):
        raise ValidationError('The request body must be a JSON object')
    return r


class JobAPI(MethodView):

    def get(self, id):
        if id is None:
            # Lists all tracked jobs
            page = request.args.get('page', 1, type=int)
            per_page = request.args.get('per_page', 10, type=int)
            p_query = models.Job.query\
                .order_by(models.Job.time_submitted.desc(), models.Job.id.desc())\
                .paginate(page=page, per_page=per_page, error_out=False)

            json_data = {
                'meta': pagination_metadata(p_query)
            }

            verbose_flag = request.args.get('verbose', 'false')

            if verbose_flag.lower() == 'true' or verbose_flag == '1':
                json_data['items'] = [item.json() for item in p_query.items]
            else:
                json_data['items'] = [
                    {'id': item.id, 'root': item.root, 'branch': item.branch,
                     'state': item.json()['state']}
                    for item in p_query.items]

            return jsonify(json_data), 200

        # Details of one job, with the build ids learned so far
        job = JobStore(db.session).get(id)
        job = reconcile(conf, db.session, GenericBuilder.create(conf), job)
        return jsonify(job.json()), 200

    def post(self):
        r = _get_json_body()

        for key in ('repo', 'branch'):
            if not isinstance(r.get(key), str) or not r.get(key):
                log.error('Missing %s', key)
                raise ValidationError('Missing branch or repo in request')

        result = create_job(
            conf, db.session, dependency_graph,
            CommitResolver.create(conf),
            GenericBuilder.create(conf),
            Publisher.create(conf),
            r['repo'], r['branch'])

        log.info("Submitted composed build %s of %s:%s", result.job.id, r['repo'], r['branch'])
        return jsonify(result.json()), 201


class JobBuildCompleteAPI(MethodView):

    def post(self, id, component):
        result = mark_build_complete(
            conf, db.session, dependency_graph, GenericBuilder.create(conf), id, component)
        return jsonify(result.json()), 200


class JobAdvanceAPI(MethodView):
    """ Launches again whatever failed to launch before. """

    def post(self, id):
        job = JobStore(db.session).get(id)
        result = advance(conf, db.session, dependency_graph, GenericBuilder.create(conf), job)
        return jsonify(result.json()), 200


class ComponentAPI(MethodView):

    def get(self):
        return jsonify(dependency_graph.json()), 200


def register_api_v1():
    """ Registers version 1 of the compose build service API. """
    job_view = JobAPI.as_view('jobs')
    build_complete_view = JobBuildCompleteAPI.as_view('job_build_complete')
    advance_view = JobAdvanceAPI.as_view('job_advance')
    component_view = ComponentAPI.as_view('components')
    for key, val in api_routes.items():
        if key.startswith('job_build_complete'):
            view_func = build_complete_view
        elif key.startswith('job_advance'):
            view_func = advance_view
        elif key.startswith('job'):
            view_func = job_view
        elif key.startswith('components'):
            view_func = component_view
        else:
            raise NotImplementedError("Unhandled api key.")

        app.add_url_rule(val['url'],
                         endpoint=key,
                         view_func=view_func,
                         **val['options'])


register_api_v1()
