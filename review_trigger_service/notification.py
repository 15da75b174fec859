# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Turns execution state changes into jobs for the CommandQueue. """

import logging

from review_trigger_service.jobs import BuildStartedCommandJob, BuildCompletedCommandJob

log = logging.getLogger(__name__)


class NotificationDispatcher(object):
    """ Submits the build started and build completed commands.

    Nothing is sent for events without a change, such as ref updates,
    there is no patchset to comment on.
    """

    def __init__(self, conf, expander, command_queue):
        self.conf = conf
        self.expander = expander
        self.command_queue = command_queue

    def queue_build_started(self, event, execution, stats):
        if self.conf.silent_mode or self.conf.silent_start_mode:
            log.debug("Silent mode, not announcing the start of %r", execution)
            return None
        if not event.change_based:
            log.debug("%r has no change, not announcing the start of %r", event, execution)
            return None
        job = BuildStartedCommandJob(self.expander, event, execution, stats)
        self.command_queue.submit(job)
        return job

    def queue_build_completed(self, imprint, verdict):
        if self.conf.silent_mode:
            log.info("Silent mode, not reporting %s for %r", verdict, imprint.event)
            return None
        if not imprint.event.change_based:
            log.info("%r has no change, not reporting %s", imprint.event, verdict)
            return None
        job = BuildCompletedCommandJob(self.expander, imprint, verdict)
        self.command_queue.submit(job)
        return job
