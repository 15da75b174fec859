# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT

import json

import pytest

from review_trigger_service.web import create_app
from tests import make_event


@pytest.fixture()
def client(service):
    app = create_app(service)
    app.config["TESTING"] = True
    return app.test_client()


class TestViews:

    def test_memory_empty(self, client):
        rv = client.get("/review-trigger/1/memory/")
        data = json.loads(rv.data)
        assert rv.status_code == 200
        assert data == {"items": [], "meta": {"total": 0}}

    def test_memory(self, client, service):
        event = make_event()
        imprint = service.memory.begin_scan(event)
        service.memory.add_execution(imprint, "job-a")

        rv = client.get("/review-trigger/1/memory/")
        data = json.loads(rv.data)
        assert data["meta"]["total"] == 1
        item = data["items"][0]
        assert item["event"]["id"] == event.event_id
        assert item["scan_complete"] is False
        assert item["executions"][0]["project"] == "job-a"
        assert item["executions"][0]["state_name"] == "created"

        rv = client.get("/review-trigger/1/memory/%s" % event.event_id)
        assert rv.status_code == 200
        assert json.loads(rv.data)["event"]["change"] == "12345"

    def test_memory_unknown_event(self, client):
        rv = client.get("/review-trigger/1/memory/deadbeef")
        data = json.loads(rv.data)
        assert rv.status_code == 404
        assert data["status"] == 404
        assert data["error"] == "Not Found"

    def test_queue(self, client):
        rv = client.get("/review-trigger/1/queue/")
        data = json.loads(rv.data)
        assert rv.status_code == 200
        assert data == {"size": 0, "running": True}

    def test_about(self, client):
        rv = client.get("/review-trigger/1/about/")
        data = json.loads(rv.data)
        assert data["api_version"] == 1
        assert data["channel"] == "mock"
        assert "version" in data
