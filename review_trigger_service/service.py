# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Wires the components of the service together. """

import logging

from review_trigger_service import lifecycle
from review_trigger_service.auth import CredentialProvider
from review_trigger_service.channel import GenericChannel
from review_trigger_service.command_queue import CommandQueue
from review_trigger_service.dynamic_config import DynamicConfigurationCache, DynamicUrlFetcher
from review_trigger_service.expander import ParameterExpander
from review_trigger_service.memory import ExecutionMemory
from review_trigger_service.messaging import _messaging_backends
from review_trigger_service.notification import NotificationDispatcher
from review_trigger_service.errors import ConfigurationError

log = logging.getLogger(__name__)


class ReviewTriggerService(object):
    """ The execution memory, the command queue and what connects them.

    :param conf: the Config instance
    :param GenericChannel channel: overrides the channel selected by
        ``conf.channel``
    :raises ConfigurationError: if the configuration is not usable
    """

    def __init__(self, conf, channel=None):
        self.conf = conf
        if conf.publish_lifecycle_messages and conf.messaging not in _messaging_backends:
            raise ConfigurationError("Unsupported messaging system %r" % conf.messaging)

        self.channel = channel if channel is not None else GenericChannel.create(conf)
        self.credentials = CredentialProvider(conf, require_key=conf.channel == "ssh")
        if self.credentials.require_key:
            self.credentials.validate()
        self.command_queue = CommandQueue(conf, self.channel, self.credentials)
        self.expander = ParameterExpander(conf)
        self.dispatcher = NotificationDispatcher(conf, self.expander, self.command_queue)

        self.notifier = lifecycle.LifecycleNotifier()
        self.notifier.register(lifecycle.LoggingListener())
        if conf.publish_lifecycle_messages:
            self.notifier.register(lifecycle.MessagingListener(conf))
        self.memory = ExecutionMemory(self.notifier, self.dispatcher)

        self.dynamic_config = DynamicConfigurationCache(
            lambda: self.conf.dynamic_config_refresh_intervals)
        self.fetcher = DynamicUrlFetcher()

    def start(self):
        log.info("Starting the review trigger service")
        self.command_queue.start()

    def stop(self, timeout=None):
        log.info("Stopping the review trigger service")
        return self.command_queue.shutdown(timeout)

    def fetch_dynamic_config(self, url):
        """ The projects of the trigger configuration published at url. """
        return self.dynamic_config.fetch(url, self.fetcher)
