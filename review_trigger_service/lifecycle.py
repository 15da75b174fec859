# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Publish/subscribe of the transitions an event goes through while its
executions are correlated. """

import logging
import threading

from review_trigger_service import messaging

log = logging.getLogger(__name__)

SCAN_STARTING = "scan_starting"
SCAN_DONE = "scan_done"
EXECUTION_TRIGGERED = "execution_triggered"
EXECUTION_STARTED = "execution_started"
EXECUTION_COMPLETED = "execution_completed"
ALL_COMPLETED = "all_completed"

TRANSITIONS = (
    SCAN_STARTING,
    SCAN_DONE,
    EXECUTION_TRIGGERED,
    EXECUTION_STARTED,
    EXECUTION_COMPLETED,
    ALL_COMPLETED,
)


class LifecycleListener(object):
    """ Base class for the listeners. Override the transitions of interest.

    Transitions without a payload are called with the event only, the
    others with the event and the Execution or the verdict.
    """

    def on_scan_starting(self, event):
        pass

    def on_scan_done(self, event):
        pass

    def on_execution_triggered(self, event, execution):
        pass

    def on_execution_started(self, event, execution):
        pass

    def on_execution_completed(self, event, execution):
        pass

    def on_all_completed(self, event, verdict):
        pass


class LifecycleNotifier(object):
    """ Registry of LifecycleListener instances.

    Listeners are called synchronously, on the publishing thread, in the
    order they were registered.
    """

    _payloadless = (SCAN_STARTING, SCAN_DONE)

    def __init__(self):
        self._listeners = []
        self._lock = threading.Lock()

    def register(self, listener):
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unregister(self, listener):
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listeners(self):
        with self._lock:
            return list(self._listeners)

    def publish(self, transition, event, payload=None):
        if transition not in TRANSITIONS:
            raise ValueError("Unknown lifecycle transition %r" % transition)

        # Work on a copy so listeners can (un)register while being called
        for listener in self.listeners:
            handler = getattr(listener, "on_" + transition, None)
            if handler is None:
                log.debug("Listener %r does not handle %s", listener, transition)
                continue
            try:
                if transition in self._payloadless:
                    handler(event)
                else:
                    handler(event, payload)
            except Exception:
                log.exception("Listener %r failed while handling %s of %r",
                              listener, transition, event)


class LoggingListener(LifecycleListener):
    """ Logs every transition. """

    def on_scan_starting(self, event):
        log.debug("Trigger scan starting for %r", event)

    def on_scan_done(self, event):
        log.debug("Trigger scan done for %r", event)

    def on_execution_triggered(self, event, execution):
        log.info("Project [%s] triggered by: [%r]", execution.project, event)

    def on_execution_started(self, event, execution):
        log.info("Build [%s] of project [%s] started for: [%r]",
                 execution.build_url, execution.project, event)

    def on_execution_completed(self, event, execution):
        log.info("Build [%s] of project [%s] completed with %s for: [%r]",
                 execution.build_url, execution.project, execution.result, event)

    def on_all_completed(self, event, verdict):
        log.info("All builds completed for [%r], verdict %s", event, verdict)


class MessagingListener(LifecycleListener):
    """ Announces every transition on the message bus.

    Listeners run while the ExecutionMemory holds the imprint lock, so
    every transition of the event waits for the bus. With fedmsg that is
    a network send, keep ``publish_lifecycle_messages`` off where the
    scheduler threads must not block on the bus.
    """

    def __init__(self, conf):
        self.backend = conf.messaging
        self.topic_prefix = conf.messaging_topic_prefix

    def _publish(self, transition, event, **extra):
        msg = {"event": event.json()}
        msg.update(extra)
        messaging.publish(
            topic="%s.%s" % (self.topic_prefix, transition), msg=msg, backend=self.backend)

    def on_scan_starting(self, event):
        self._publish(SCAN_STARTING, event)

    def on_scan_done(self, event):
        self._publish(SCAN_DONE, event)

    def on_execution_triggered(self, event, execution):
        self._publish(EXECUTION_TRIGGERED, event, execution=execution.json())

    def on_execution_started(self, event, execution):
        self._publish(EXECUTION_STARTED, event, execution=execution.json())

    def on_execution_completed(self, event, execution):
        self._publish(EXECUTION_COMPLETED, event, execution=execution.json())

    def on_all_completed(self, event, verdict):
        self._publish(ALL_COMPLETED, event, verdict=verdict)
