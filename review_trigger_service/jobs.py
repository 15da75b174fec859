# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Jobs submitted to the CommandQueue.

Every job renders its command when it is created, so that later changes
to the executions it describes cannot change what is sent.
"""

import logging
import time

log = logging.getLogger(__name__)


class CommandJob(object):
    """ One command to send through the command channel. """

    def __init__(self, command, description=None):
        self.command = command
        self.description = description or command
        self.submitted_on = time.time()
        self.attempts = 0

    def __repr__(self):
        return "<%s %r, %d attempts>" % (
            self.__class__.__name__, self.description, self.attempts)

    def run(self, sender):
        """ Send the command.

        :param sender: object with a ``send_command(command)`` method
            returning whether the command was sent, the CommandQueue
        :return: True if the command was sent
        """
        self.attempts += 1
        if not self.command:
            log.error("Nothing to send for %r", self)
            return False
        return bool(sender.send_command(self.command))


class BuildStartedCommandJob(CommandJob):
    def __init__(self, expander, event, execution, stats):
        self.event = event
        command = expander.build_started_command(event, execution, stats)
        super(BuildStartedCommandJob, self).__init__(
            command, "build started %s for %r" % (execution.project, event))


class BuildCompletedCommandJob(CommandJob):
    def __init__(self, expander, imprint, verdict):
        self.event = imprint.event
        self.verdict = verdict
        command = expander.build_completed_command(imprint, verdict)
        super(BuildCompletedCommandJob, self).__init__(
            command, "builds completed (%s) for %r" % (verdict, imprint.event))
