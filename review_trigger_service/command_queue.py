# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Serialized sending of commands to the code review server.

One worker thread takes jobs off a FIFO queue and runs them one after the
other, so at most one command is in flight at any time.
"""

import logging
import queue
import threading
import time

log = logging.getLogger(__name__)


class STOP_WORK(object):
    """ A sentinel value, indicating that work should be stopped. """
    pass


class CommandQueue(object):

    def __init__(self, conf, channel, credential_provider):
        """
        :param conf: the Config instance
        :param GenericChannel channel: the channel commands are sent through
        :param CredentialProvider credential_provider: scopes the credential
            of every channel call
        """
        self.channel = channel
        self.credential_provider = credential_provider
        self.warning_threshold = conf.send_queue_size_warning_threshold
        self.shutdown_timeout = conf.send_queue_shutdown_timeout
        self.retries = conf.send_command_retries
        self.retry_interval = conf.send_command_retry_interval
        self._queue = queue.Queue()
        self._worker = None
        self._lock = threading.Lock()

    @property
    def running(self):
        return self._worker is not None and self._worker.is_alive()

    def start(self):
        with self._lock:
            if self.running:
                return
            self._worker = threading.Thread(
                target=self._work, name="command-queue-worker", daemon=True)
            self._worker.start()
        log.info("Command queue started")

    def submit(self, job):
        """ Queue a job, never waits for it to run. """
        self._queue.put(job)
        size = self.size()
        if size >= self.warning_threshold:
            log.warning("The command queue holds %d jobs, is the server reachable?", size)
        else:
            log.debug("Queued %r, %d jobs waiting", job, size)

    def size(self):
        return self._queue.qsize()

    def shutdown(self, timeout=None):
        """ Stop the worker once the jobs queued so far are done.

        :param timeout: seconds to wait for the worker, defaults to the
            send_queue_shutdown_timeout configuration
        :return: True if the worker stopped in time
        """
        if timeout is None:
            timeout = self.shutdown_timeout
        with self._lock:
            worker = self._worker
            if worker is None:
                return True
            self._queue.put(STOP_WORK)
        worker.join(timeout)
        if worker.is_alive():
            log.warning("The command queue did not stop within %ss, %d jobs left",
                        timeout, self.size())
            return False
        with self._lock:
            self._worker = None
        log.info("Command queue stopped")
        return True

    def _work(self):
        while True:
            job = self._queue.get()
            try:
                if job is STOP_WORK:
                    log.info("Command queue received STOP_WORK, shutting down...")
                    break
                self._run_job(job)
            finally:
                self._queue.task_done()

    def _run_job(self, job):
        attempts = 1 + self.retries
        for attempt in range(1, attempts + 1):
            try:
                if job.run(self):
                    log.debug("Sent %r", job)
                    return
            except Exception:
                log.exception("Failed while running %r", job)
            if attempt < attempts:
                log.info("Retrying %r, attempt %d of %d", job, attempt + 1, attempts)
                if self.retry_interval:
                    time.sleep(self.retry_interval)
        log.error("Giving up on %r after %d attempts", job, attempts)

    def send_command(self, command):
        """ Send one command through the channel.

        :return: True if the command was sent
        """
        return self.send_command_with_output(command) is not None

    def send_command_with_output(self, command):
        """ Send one command through the channel.

        :return: the command output, or None if it could not be sent
        """
        try:
            with self.credential_provider.scoped() as credential:
                output = self.channel.send(command, credential)
        except Exception:
            log.exception("Could not send %r", command)
            return None
        return output if output is not None else ""
