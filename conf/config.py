# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
from os import environ


class BaseConfiguration(object):
    DEBUG = False
    # Where we should run when running "review_trigger_service run" directly.
    HOST = "0.0.0.0"
    PORT = 5000

    LOG_BACKEND = "console"
    LOG_LEVEL = "info"

    MESSAGING = "fedmsg"
    MESSAGING_TOPIC_PREFIX = "review_trigger"
    PUBLISH_LIFECYCLE_MESSAGES = False

    CHANNEL = "ssh"
    GERRIT_HOSTNAME = environ.get("RTS_GERRIT_HOSTNAME", "")
    GERRIT_SSH_PORT = 29418
    GERRIT_USERNAME = "jenkins"
    GERRIT_AUTH_KEY_FILE = "~/.ssh/id_rsa"

    SEND_QUEUE_SIZE_WARNING_THRESHOLD = 20
    SEND_QUEUE_SHUTDOWN_TIMEOUT = 30
    DYNAMIC_CONFIG_REFRESH_INTERVALS = [30]


class TestConfiguration(BaseConfiguration):
    LOG_LEVEL = "debug"
    DEBUG = True
    MESSAGING = "in_memory"
    PUBLISH_LIFECYCLE_MESSAGES = True
    CHANNEL = "mock"
    GERRIT_HOSTNAME = "gerrit.example.local"
    SEND_QUEUE_SHUTDOWN_TIMEOUT = 5


class ProdConfiguration(BaseConfiguration):
    SEND_COMMAND_RETRIES = 2
    SEND_COMMAND_RETRY_INTERVAL = 10


class DevConfiguration(BaseConfiguration):
    DEBUG = True
    LOG_LEVEL = "debug"
    MESSAGING = "in_memory"
    CHANNEL = "mock"
    SILENT_START_MODE = True
