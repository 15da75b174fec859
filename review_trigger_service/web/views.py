# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" The diagnostics API.

It only reads the state of the service: what the execution memory is
waiting for and how many commands are waiting to be sent.
"""

from flask import Blueprint, current_app, jsonify
from flask.views import MethodView

from review_trigger_service import api_version, version
from review_trigger_service.errors import NotFound
from review_trigger_service.web import EXTENSION_NAME

api_v1 = Blueprint("api_v1", __name__)

api_routes = {
    "memory": "/review-trigger/%d/memory/" % api_version,
    "memory_event": "/review-trigger/%d/memory/<event_id>" % api_version,
    "queue": "/review-trigger/%d/queue/" % api_version,
    "about": "/review-trigger/%d/about/" % api_version,
}


def _service():
    return current_app.extensions[EXTENSION_NAME]


class MemoryAPI(MethodView):

    def get(self, event_id):
        items = _service().memory.report()
        if event_id is None:
            return jsonify({"items": items, "meta": {"total": len(items)}}), 200

        for item in items:
            if item["event"]["id"] == event_id:
                return jsonify(item), 200
        raise NotFound("No event with id %s is tracked." % event_id)


class QueueAPI(MethodView):

    def get(self):
        command_queue = _service().command_queue
        return jsonify({
            "size": command_queue.size(),
            "running": command_queue.running,
        }), 200


class AboutAPI(MethodView):

    def get(self):
        conf = _service().conf
        return jsonify({
            "version": version,
            "api_version": api_version,
            "channel": conf.channel,
            "silent_mode": conf.silent_mode,
            "silent_start_mode": conf.silent_start_mode,
        }), 200


memory_view = MemoryAPI.as_view("memory")
api_v1.add_url_rule(api_routes["memory"], defaults={"event_id": None},
                    view_func=memory_view, methods=["GET"])
api_v1.add_url_rule(api_routes["memory_event"], view_func=memory_view, methods=["GET"])
api_v1.add_url_rule(api_routes["queue"], view_func=QueueAPI.as_view("queue"),
                    methods=["GET"])
api_v1.add_url_rule(api_routes["about"], view_func=AboutAPI.as_view("about"),
                    methods=["GET"])
