# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT

import threading

from review_trigger_service.config import init_config
from review_trigger_service.lifecycle import LifecycleListener
from review_trigger_service.models import TriggerEvent


def make_conf(**overrides):
    """ The TestConfiguration of conf/config.py, with overrides applied. """
    conf, _ = init_config()
    for key, value in overrides.items():
        conf.set_item(key, value)
    return conf


def make_event(kind="patchset-created", project="tools/review", **kwargs):
    values = {
        "branch": "master",
        "change_number": 12345,
        "patchset_number": 3,
        "change_id": "I0123456789abcdef0123456789abcdef01234567",
        "patchset_revision": "9f4e2c1b3a5d7e8f9a0b1c2d3e4f5a6b7c8d9e0f",
    }
    values.update(kwargs)
    return TriggerEvent(kind, project, **values)


def run_execution(memory, execution_id, result, build_url=None, **kwargs):
    """ Walk an execution through started to completed. """
    memory.mark_started(execution_id, build_url or "https://ci.example.local/job/%s/" % execution_id)
    memory.mark_completed(execution_id, result, **kwargs)


class RecordingListener(LifecycleListener):
    """ Remembers every transition it is notified of, in order. """

    def __init__(self):
        self.calls = []
        self._lock = threading.Lock()

    def _record(self, transition, event, payload=None):
        with self._lock:
            self.calls.append((transition, event, payload))

    def transitions(self, name=None):
        with self._lock:
            return [c for c in self.calls if name is None or c[0] == name]

    def on_scan_starting(self, event):
        self._record("scan_starting", event)

    def on_scan_done(self, event):
        self._record("scan_done", event)

    def on_execution_triggered(self, event, execution):
        self._record("execution_triggered", event, execution)

    def on_execution_started(self, event, execution):
        self._record("execution_started", event, execution)

    def on_execution_completed(self, event, execution):
        self._record("execution_completed", event, execution)

    def on_all_completed(self, event, verdict):
        self._record("all_completed", event, verdict)


class RecordingDispatcher(object):
    def __init__(self):
        self.started = []
        self.completed = []
        self._lock = threading.Lock()

    def queue_build_started(self, event, execution, stats):
        with self._lock:
            self.started.append((event, execution, str(stats)))

    def queue_build_completed(self, imprint, verdict):
        with self._lock:
            self.completed.append((imprint, verdict))
