# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" In-memory model of the events and the executions they trigger. """

import threading
import time
import uuid


# Kinds of inbound events handled by the service. The values are the
# names the code review server uses in its event stream.
EVENT_KINDS = (
    "patchset-created",
    "comment-added",
    "change-merged",
    "change-abandoned",
    "change-restored",
    "draft-published",
    "ref-updated",
    "manual-patchset-created",
)

# Events whose outcome is voted on
SCORABLE_EVENT_KINDS = (
    "patchset-created",
    "comment-added",
    "draft-published",
    "manual-patchset-created",
)

EXECUTION_STATES = {
    # Registered by the matcher, not yet picked up by the host scheduler
    "created": 0,
    # The host scheduler has started running it
    "started": 1,
    # Finished, the result is set. No further transition is allowed.
    "completed": 2,
}

INVERSE_EXECUTION_STATES = {v: k for k, v in EXECUTION_STATES.items()}

RESULTS = ("success", "unstable", "failure", "not_built", "aborted")

# Higher is worse, used to list the worst results first
RESULT_SEVERITY = {
    "success": 0,
    "unstable": 1,
    "not_built": 2,
    "aborted": 3,
    "failure": 4,
}


class TriggerEvent(object):
    """ An event received from the code review server.

    Events are immutable and compared by identity of their ``event_id``,
    so that every received event is tracked on its own even when two of
    them point at the same patchset.
    """

    __slots__ = ("_kind", "_project", "_branch", "_topic", "_change_id",
                 "_change_number", "_patchset_number", "_patchset_revision",
                 "_provider", "_received_on", "_event_id")

    def __init__(self, kind, project, branch=None, change_number=None,
                 patchset_number=None, change_id=None, patchset_revision=None,
                 topic=None, provider=None, received_on=None, event_id=None):
        if kind not in EVENT_KINDS:
            raise ValueError("Unknown event kind %r" % kind)
        self._kind = kind
        self._project = project
        self._branch = branch
        self._topic = topic
        self._change_id = change_id
        self._change_number = None if change_number is None else str(change_number)
        self._patchset_number = None if patchset_number is None else str(patchset_number)
        self._patchset_revision = patchset_revision
        self._provider = provider
        self._received_on = received_on if received_on is not None else time.time()
        self._event_id = event_id or uuid.uuid4().hex

    kind = property(lambda self: self._kind)
    project = property(lambda self: self._project)
    branch = property(lambda self: self._branch)
    topic = property(lambda self: self._topic)
    change_id = property(lambda self: self._change_id)
    change_number = property(lambda self: self._change_number)
    patchset_number = property(lambda self: self._patchset_number)
    patchset_revision = property(lambda self: self._patchset_revision)
    provider = property(lambda self: self._provider)
    received_on = property(lambda self: self._received_on)
    event_id = property(lambda self: self._event_id)

    @property
    def scorable(self):
        return self._kind in SCORABLE_EVENT_KINDS

    @property
    def change_based(self):
        """ Whether the event points at a patchset that can be reviewed. """
        return (self._kind != "ref-updated" and self._change_number is not None
                and self._patchset_number is not None)

    @property
    def refspec(self):
        """ The ref the patchset is stored under, e.g. refs/changes/45/12345/3 """
        if self._change_number is None or self._patchset_number is None:
            return None
        return "refs/changes/%s/%s/%s" % (
            self._change_number[-2:].zfill(2), self._change_number, self._patchset_number)

    def __eq__(self, other):
        if not isinstance(other, TriggerEvent):
            return NotImplemented
        return self._event_id == other._event_id

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        return hash(self._event_id)

    def __repr__(self):
        return "<TriggerEvent %s %s change=%s patchset=%s id=%s>" % (
            self._kind, self._project, self._change_number, self._patchset_number,
            self._event_id)

    def json(self):
        return {
            "id": self._event_id,
            "kind": self._kind,
            "project": self._project,
            "branch": self._branch,
            "topic": self._topic,
            "change_id": self._change_id,
            "change": self._change_number,
            "patchset": self._patchset_number,
            "revision": self._patchset_revision,
            "provider": self._provider,
            "received_on": self._received_on,
        }


class Execution(object):
    """ One unit of build work triggered for one project by one event.

    State changes are made by the ExecutionMemory while it holds the lock
    of the owning MemoryImprint.
    """

    def __init__(self, event, project, custom_url=None, skip_vote=()):
        self.id = uuid.uuid4().hex
        self.event = event
        self.project = project
        # Results that do not count towards the verdict and the votes
        self.skip_vote = frozenset(skip_vote)
        self.state = EXECUTION_STATES["created"]
        self.result = None
        self.build_url = None
        self.custom_url = custom_url
        self.unsuccessful_message = None
        self.cancelled = False
        self.time_triggered = time.time()
        self.time_started = None
        self.time_completed = None

    @property
    def state_name(self):
        return INVERSE_EXECUTION_STATES[self.state]

    @property
    def completed(self):
        return self.state == EXECUTION_STATES["completed"]

    @property
    def vote_skipped(self):
        """ Whether the result of this execution is left out of the vote.

        Cancelled executions never ran and are never skipped.
        """
        return not self.cancelled and self.result in self.skip_vote

    def __repr__(self):
        return "<Execution %s %s, state %r, result %r>" % (
            self.id, self.project, self.state_name, self.result)

    def json(self):
        return {
            "id": self.id,
            "project": self.project,
            "state": self.state,
            "state_name": self.state_name,
            "result": self.result,
            "build_url": self.build_url,
            "custom_url": self.custom_url,
            "unsuccessful_message": self.unsuccessful_message,
            "cancelled": self.cancelled,
            "skip_vote": sorted(self.skip_vote),
            "time_triggered": self.time_triggered,
            "time_started": self.time_started,
            "time_completed": self.time_completed,
        }


class BuildsStartedStats(object):
    def __init__(self, event, total, started):
        self.event = event
        self.total = total
        self.started = started

    def __str__(self):
        return self.with_offset(0)

    def with_offset(self, offset):
        return "(%d/%d)" % (self.started - offset, self.total)


class MemoryImprint(object):
    """ Holder of all the executions triggered by one event.

    Executions can only be appended until the scan is done; afterwards
    only their state changes. All access goes through ``lock``.
    """

    def __init__(self, event):
        self.event = event
        self.executions = []
        self.scan_complete = False
        self.completion_fired = False
        self.lock = threading.RLock()

    def get_execution(self, project):
        for execution in self.executions:
            if execution.project == project:
                return execution
        return None

    def all_completed(self):
        with self.lock:
            return self.scan_complete and all(e.completed for e in self.executions)

    def all_started(self):
        with self.lock:
            return all(e.state != EXECUTION_STATES["created"] for e in self.executions)

    def builds_started_stats(self):
        with self.lock:
            started = len([e for e in self.executions
                           if e.state != EXECUTION_STATES["created"] and not e.cancelled])
            return BuildsStartedStats(self.event, len(self.executions), started)

    def status_report(self):
        """ Returns a string describing the executions of this imprint,
        good for logging. """
        lines = []
        with self.lock:
            for execution in self.executions:
                lines.append("  Project/Build: [%s]: [%s: %s] Completed: %s" % (
                    execution.project,
                    execution.build_url or "XX",
                    execution.result,
                    execution.completed,
                ))
        return "\n".join(lines)

    def __repr__(self):
        return "<MemoryImprint %r, %d executions, scan complete %r>" % (
            self.event, len(self.executions), self.scan_complete)

    def json(self):
        with self.lock:
            return {
                "event": self.event.json(),
                "scan_complete": self.scan_complete,
                "executions": [e.json() for e in self.executions],
            }
