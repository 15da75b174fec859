# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT

import pytest

from review_trigger_service import messaging
from review_trigger_service.channel import MockChannel
from review_trigger_service.lifecycle import LifecycleNotifier
from review_trigger_service.memory import ExecutionMemory
from review_trigger_service.service import ReviewTriggerService
from tests import make_conf, RecordingDispatcher, RecordingListener


@pytest.fixture()
def conf():
    return make_conf()


@pytest.fixture()
def listener():
    return RecordingListener()


@pytest.fixture()
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture()
def memory(listener, dispatcher):
    notifier = LifecycleNotifier()
    notifier.register(listener)
    return ExecutionMemory(notifier, dispatcher)


@pytest.fixture()
def mock_channel():
    return MockChannel()


@pytest.fixture()
def service(conf, mock_channel):
    service = ReviewTriggerService(conf, channel=mock_channel)
    service.start()
    yield service
    service.stop(timeout=5)


@pytest.fixture(autouse=True)
def clear_in_memory_messages():
    messaging.clear_in_memory_messages()
    yield
    messaging.clear_in_memory_messages()
