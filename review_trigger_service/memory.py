# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Keeps track of the executions every event triggered until all of them
are completed.

The matcher opens a scan for an event, adds one execution per project it
triggers and closes the scan. The host scheduler then reports every
execution as started and completed, each from its own thread. When the
last execution of a closed scan completes, the results are aggregated
into one verdict, the dispatcher is handed the imprint and the imprint is
forgotten.

Locking: ``ExecutionMemory._lock`` only guards the lookup tables. Every
state change of an imprint, including the lifecycle notifications it
causes, happens while holding the imprint's own lock. The imprint lock
is always taken before the memory lock, never the other way around.
"""

import logging
import threading
import time

from review_trigger_service import lifecycle
from review_trigger_service.aggregator import aggregate
from review_trigger_service.errors import (
    AlreadyScanning, ScanClosed, InvalidTransition, UnknownExecution)
from review_trigger_service.models import (
    EXECUTION_STATES, RESULTS, Execution, MemoryImprint)

log = logging.getLogger(__name__)


class ExecutionMemory(object):

    def __init__(self, notifier, dispatcher=None):
        """
        :param LifecycleNotifier notifier: receives every transition
        :param dispatcher: object with ``queue_build_started`` and
            ``queue_build_completed`` methods, or None to never dispatch
        """
        self.notifier = notifier
        self.dispatcher = dispatcher
        self._imprints = {}
        self._executions = {}
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._imprints)

    def begin_scan(self, event):
        """ Start tracking the executions triggered by ``event``.

        :return: the MemoryImprint to pass to add_execution and finish_scan
        :raises AlreadyScanning: if the event is already tracked
        """
        imprint = MemoryImprint(event)
        with imprint.lock:
            with self._lock:
                if event in self._imprints:
                    raise AlreadyScanning("%r is already being tracked" % event)
                self._imprints[event] = imprint
            self.notifier.publish(lifecycle.SCAN_STARTING, event)
        return imprint

    def add_execution(self, imprint, project, custom_url=None, skip_vote=None):
        """ Remember that ``project`` was triggered for the imprint's event.

        :param skip_vote: results of this project that do not count towards
            the verdict and the votes, e.g. ``["unstable"]``
        :return: the id of the new execution
        :raises ScanClosed: if finish_scan was already called
        :raises ValueError: if skip_vote names an unknown result
        """
        skip_vote = frozenset(skip_vote or ())
        unknown = skip_vote.difference(RESULTS)
        if unknown:
            raise ValueError("Unknown results to skip: %s" % ", ".join(sorted(unknown)))
        with imprint.lock:
            if imprint.scan_complete or not self._is_current(imprint):
                raise ScanClosed("The scan of %r is already done" % imprint.event)
            execution = Execution(
                imprint.event, project, custom_url=custom_url, skip_vote=skip_vote)
            imprint.executions.append(execution)
            with self._lock:
                self._executions[execution.id] = (imprint, execution)
            self.notifier.publish(lifecycle.EXECUTION_TRIGGERED, imprint.event, execution)
        return execution.id

    def finish_scan(self, imprint):
        """ Mark that no more executions will be added for the imprint's event.

        An event that triggered nothing is forgotten right away, without
        any dispatch.
        """
        with imprint.lock:
            if imprint.scan_complete:
                raise ScanClosed("The scan of %r is already done" % imprint.event)
            imprint.scan_complete = True
            self.notifier.publish(lifecycle.SCAN_DONE, imprint.event)

            if not imprint.executions:
                log.debug("Nothing was triggered by %r, forgetting it", imprint.event)
                self._evict(imprint)
                return

            self._check_all_completed(imprint)

    def mark_started(self, execution_id, build_url=None):
        imprint, execution = self._lookup(execution_id)
        with imprint.lock:
            if execution.state != EXECUTION_STATES["created"]:
                raise InvalidTransition("Cannot start %r, it is %s" % (
                    execution, execution.state_name))
            execution.state = EXECUTION_STATES["started"]
            execution.time_started = time.time()
            if build_url:
                execution.build_url = build_url
            self.notifier.publish(lifecycle.EXECUTION_STARTED, imprint.event, execution)

            if self.dispatcher is not None:
                stats = imprint.builds_started_stats()
                try:
                    self.dispatcher.queue_build_started(imprint.event, execution, stats)
                except Exception:
                    log.exception("Failed to queue the build started command for %r",
                                  execution)
            log.info("MemoryStatus:\n%s", imprint.status_report())

    def mark_completed(self, execution_id, result, unsuccessful_message=None):
        if result not in RESULTS:
            raise ValueError("Unknown execution result %r" % result)
        imprint, execution = self._lookup(execution_id)
        with imprint.lock:
            if execution.state != EXECUTION_STATES["started"]:
                raise InvalidTransition("Cannot complete %r, it is %s" % (
                    execution, execution.state_name))
            execution.state = EXECUTION_STATES["completed"]
            execution.result = result
            execution.time_completed = time.time()
            if unsuccessful_message:
                execution.unsuccessful_message = unsuccessful_message
            self.notifier.publish(lifecycle.EXECUTION_COMPLETED, imprint.event, execution)

            self._check_all_completed(imprint)

    def mark_cancelled(self, execution_id):
        """ The execution was dropped by the host scheduler before it ran. """
        imprint, execution = self._lookup(execution_id)
        with imprint.lock:
            if execution.state != EXECUTION_STATES["created"]:
                raise InvalidTransition("Cannot cancel %r, it is %s" % (
                    execution, execution.state_name))
            execution.state = EXECUTION_STATES["completed"]
            execution.result = "not_built"
            execution.cancelled = True
            execution.time_completed = time.time()
            self.notifier.publish(lifecycle.EXECUTION_COMPLETED, imprint.event, execution)

            self._check_all_completed(imprint)

    def set_custom_url(self, execution_id, custom_url):
        imprint, execution = self._lookup(execution_id)
        with imprint.lock:
            self._check_not_completed(execution, "change the URL of")
            log.debug("Recording custom URL for %r: %s", execution, custom_url)
            execution.custom_url = custom_url

    def set_unsuccessful_message(self, execution_id, message):
        """ Record why the execution failed. Use the ``unsuccessful_message``
        argument of mark_completed to set it together with the result. """
        imprint, execution = self._lookup(execution_id)
        with imprint.lock:
            self._check_not_completed(execution, "change the message of")
            log.debug("Recording unsuccessful message for %r: %s", execution, message)
            execution.unsuccessful_message = message

    @staticmethod
    def _check_not_completed(execution, action):
        if execution.completed:
            raise InvalidTransition("Cannot %s %r, it is completed" % (action, execution))

    def get_imprint(self, event):
        with self._lock:
            return self._imprints.get(event)

    def is_tracked(self, event):
        return self.get_imprint(event) is not None

    def is_triggered(self, event, project):
        imprint = self.get_imprint(event)
        if imprint is None:
            return False
        with imprint.lock:
            return imprint.get_execution(project) is not None

    def is_building(self, event, project):
        """ A triggered project counts as building until its execution is
        completed, even if the host scheduler has not started it yet. """
        imprint = self.get_imprint(event)
        if imprint is None:
            return False
        with imprint.lock:
            execution = imprint.get_execution(project)
            return execution is not None and not execution.completed

    def builds_started_stats(self, event):
        imprint = self.get_imprint(event)
        if imprint is None:
            return None
        return imprint.builds_started_stats()

    def status_report(self, event):
        imprint = self.get_imprint(event)
        if imprint is None:
            return None
        return imprint.status_report()

    def report(self):
        """ A snapshot of everything currently tracked. """
        with self._lock:
            imprints = list(self._imprints.values())
        return [imprint.json() for imprint in imprints]

    def forget(self, event):
        imprint = self.get_imprint(event)
        if imprint is not None:
            self._evict(imprint)

    def _lookup(self, execution_id):
        with self._lock:
            try:
                return self._executions[execution_id]
            except KeyError:
                raise UnknownExecution("No execution with id %r is tracked" % execution_id)

    def _is_current(self, imprint):
        with self._lock:
            return self._imprints.get(imprint.event) is imprint

    def _evict(self, imprint):
        with self._lock:
            if self._imprints.get(imprint.event) is imprint:
                del self._imprints[imprint.event]
            for execution in imprint.executions:
                self._executions.pop(execution.id, None)

    def _check_all_completed(self, imprint):
        # Must be called with imprint.lock held, so checking and setting
        # completion_fired is one step for all racing completions.
        if imprint.completion_fired:
            return
        if not imprint.all_completed():
            log.info("Waiting for more builds to complete for %r. Status:\n%s",
                     imprint.event, imprint.status_report())
            return

        imprint.completion_fired = True
        try:
            verdict = aggregate(imprint)
            log.info("All builds are completed for %r, verdict %s", imprint.event, verdict)
            self.notifier.publish(lifecycle.ALL_COMPLETED, imprint.event, verdict)
            if self.dispatcher is not None:
                try:
                    self.dispatcher.queue_build_completed(imprint, verdict)
                except Exception:
                    log.exception("Failed to queue the build completed command for %r",
                                  imprint.event)
        finally:
            self._evict(imprint)
