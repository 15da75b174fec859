# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""Credentials used to authenticate on the command channel"""

import contextlib
import logging
import os

from review_trigger_service.errors import ConfigurationError

log = logging.getLogger(__name__)


class Credential(object):
    """ Who commands are sent as, and the key proving it. """

    def __init__(self, username, key_file=None):
        self.username = username
        self.key_file = key_file

    def __repr__(self):
        return "<Credential %s key=%s>" % (self.username, self.key_file)


class CredentialProvider(object):
    """ Hands out a Credential for the duration of one channel call.

    :param conf: the Config instance
    :param bool require_key: fail when the private key is missing, the
        ssh channel cannot authenticate without it
    """

    def __init__(self, conf, require_key=True):
        self.username = conf.gerrit_username
        self.key_file = os.path.expanduser(conf.gerrit_auth_key_file) \
            if conf.gerrit_auth_key_file else None
        self.require_key = require_key

    def validate(self):
        if not self.username:
            raise ConfigurationError("gerrit_username is not set")
        if self.require_key and not (self.key_file and os.path.exists(self.key_file)):
            raise ConfigurationError(
                "The private key %r does not exist" % self.key_file)

    @contextlib.contextmanager
    def scoped(self):
        """ Yield a Credential, dropping it once the call is done. """
        self.validate()
        credential = Credential(self.username, self.key_file)
        log.debug("Acquired %r", credential)
        try:
            yield credential
        finally:
            log.debug("Released %r", credential)
