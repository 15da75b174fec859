# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT

import unittest

from mock import Mock, patch

from review_trigger_service import messaging


class TestMessaging(unittest.TestCase):

    def setUp(self):
        messaging.clear_in_memory_messages()

    def test_in_memory_publish(self):
        messaging.publish("review_trigger.scan_done", {"event": {"id": "abc"}}, "in_memory")
        self.assertEqual(messaging.in_memory_messages(), [{
            "topic": "review_trigger_service.review_trigger.scan_done",
            "msg": {"event": {"id": "abc"}},
        }])

        messaging.clear_in_memory_messages()
        self.assertEqual(messaging.in_memory_messages(), [])

    def test_fedmsg_publish(self):
        fedmsg = Mock()
        fedmsg_publish = fedmsg.publish
        # fedmsg is only imported when publishing
        with patch.dict("sys.modules", {"fedmsg": fedmsg}):
            messaging.publish("review_trigger.all_completed", {"verdict": "success"}, "fedmsg")
        fedmsg_publish.assert_called_once_with(
            topic="review_trigger.all_completed", msg={"verdict": "success"},
            modname="review_trigger_service")

    def test_unknown_backend(self):
        with self.assertRaises(KeyError):
            messaging.publish("review_trigger.scan_done", {}, "carrier-pigeon")
