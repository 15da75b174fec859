# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Backends sending commands to the code review server.

Only the CommandQueue worker calls ``send``, so a backend never has two
commands in flight.
"""

import logging
import subprocess as sp
import threading
import time
from abc import ABCMeta, abstractmethod

from review_trigger_service.errors import ChannelError, ConfigurationError

log = logging.getLogger(__name__)


class GenericChannel(metaclass=ABCMeta):
    """ External API of the command channels. """

    backend = "generic"
    backends = {}

    @classmethod
    def register_backend_class(cls, backend_class):
        GenericChannel.backends[backend_class.backend] = backend_class

    @classmethod
    def create(cls, conf):
        """ Instantiate the backend selected by ``conf.channel``.

        :raises ConfigurationError: if no such backend is registered
        """
        try:
            backend_class = GenericChannel.backends[conf.channel]
        except KeyError:
            raise ConfigurationError("Command channel %r is not supported" % conf.channel)
        return backend_class(conf)

    @abstractmethod
    def send(self, command, credential):
        """
        :param str command: the command line to run on the server
        :param Credential credential: who to run it as
        :return: the output of the command
        :raises ChannelError: if the command could not be run
        """
        raise NotImplementedError()


class SshChannel(GenericChannel):
    """ Runs commands with the ssh client. """

    backend = "ssh"

    def __init__(self, conf):
        if not conf.gerrit_hostname:
            raise ConfigurationError("gerrit_hostname is required by the ssh channel")
        self.hostname = conf.gerrit_hostname
        self.port = conf.gerrit_ssh_port
        self.connect_timeout = conf.ssh_connect_timeout

    def build_cmd(self, command, credential):
        cmd = [
            "ssh",
            "-p", str(self.port),
            "-o", "BatchMode=yes",
            "-o", "ConnectTimeout=%d" % self.connect_timeout,
        ]
        if credential.key_file:
            cmd += ["-i", credential.key_file]
        cmd += ["%s@%s" % (credential.username, self.hostname), command]
        return cmd

    def send(self, command, credential):
        cmd = self.build_cmd(command, credential)
        try:
            proc = sp.Popen(cmd, stdout=sp.PIPE, stderr=sp.PIPE)
        except OSError as e:
            raise ChannelError("Unable to run ssh: %s" % e)
        stdout, stderr = proc.communicate()
        stdout = stdout.decode("utf-8", "replace")
        stderr = stderr.decode("utf-8", "replace")
        if stderr:
            log.warning(stderr)
        if proc.returncode != 0:
            raise ChannelError("Failed on %r, retcode %r, out %r, err %r" % (
                command, proc.returncode, stdout, stderr))
        return stdout


class MockChannel(GenericChannel):
    """ Keeps the commands in memory instead of sending them.

    ``sent`` holds a ``(command, entered, left)`` tuple per call. Commands
    listed in ``failing`` raise ChannelError.
    """

    backend = "mock"

    def __init__(self, conf=None, delay=0):
        self.delay = delay
        self.failing = set()
        self.sent = []
        self._lock = threading.Lock()

    @property
    def commands(self):
        with self._lock:
            return [command for command, _, _ in self.sent]

    def send(self, command, credential):
        entered = time.time()
        if self.delay:
            time.sleep(self.delay)
        left = time.time()
        with self._lock:
            self.sent.append((command, entered, left))
        if command in self.failing:
            raise ChannelError("Mock failure of %r" % command)
        log.info("Mock channel sent %r as %s", command, credential.username)
        return ""


GenericChannel.register_backend_class(SshChannel)
GenericChannel.register_backend_class(MockChannel)
