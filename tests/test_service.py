# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT

import os
import tempfile

import pytest
from click.testing import CliRunner
from mock import patch

from review_trigger_service import messaging
from review_trigger_service.channel import MockChannel
from review_trigger_service.errors import ConfigurationError
from review_trigger_service.manage import cli
from review_trigger_service.service import ReviewTriggerService
from tests import make_conf, make_event, run_execution


def _drive(service, event, results):
    memory = service.memory
    imprint = memory.begin_scan(event)
    ids = [memory.add_execution(imprint, "job-%d" % i) for i in range(len(results))]
    memory.finish_scan(imprint)
    for i, (execution_id, result) in enumerate(zip(ids, results)):
        run_execution(memory, execution_id, result,
                      build_url="https://ci.example.local/job/job-%d/1/" % i)


class TestReviewTriggerService:

    def test_started_and_completed_commands(self, service, mock_channel):
        event = make_event()
        _drive(service, event, ["success", "unstable"])
        assert service.stop(timeout=5)

        commands = mock_channel.commands
        assert len(commands) == 3
        assert commands[0].startswith("gerrit review 12345,3 --message 'Build Started")
        assert "(1/2)" in commands[0]
        assert "(2/2)" in commands[1]
        assert commands[2].startswith("gerrit review 12345,3 --message 'Build Unstable")
        assert "--verified 0 --code-review -1" in commands[2]
        assert not service.memory.is_tracked(event)

    def test_lifecycle_messages(self, service):
        event = make_event()
        _drive(service, event, ["failure"])
        topics = [m["topic"] for m in messaging.in_memory_messages()]
        assert topics == [
            "review_trigger_service.review_trigger.%s" % t for t in (
                "scan_starting", "execution_triggered", "scan_done",
                "execution_started", "execution_completed", "all_completed")]
        assert messaging.in_memory_messages()[-1]["msg"]["verdict"] == "failure"

    def test_silent_start_mode(self, mock_channel):
        service = ReviewTriggerService(make_conf(silent_start_mode=True), channel=mock_channel)
        service.start()
        _drive(service, make_event(), ["success"])
        assert service.stop(timeout=5)
        assert len(mock_channel.commands) == 1
        assert "Build Successful" in mock_channel.commands[0]

    def test_silent_mode(self, mock_channel):
        service = ReviewTriggerService(make_conf(silent_mode=True), channel=mock_channel)
        service.start()
        event = make_event()
        _drive(service, event, ["failure"])
        assert service.stop(timeout=5)
        assert mock_channel.commands == []
        assert not service.memory.is_tracked(event)

    def test_event_without_change_is_not_reported(self, service, mock_channel):
        event = make_event(kind="ref-updated", change_number=None, patchset_number=None)
        _drive(service, event, ["success"])
        assert service.stop(timeout=5)
        assert mock_channel.commands == []
        assert not service.memory.is_tracked(event)

    def test_channel_from_config(self):
        service = ReviewTriggerService(make_conf(channel="mock"))
        assert isinstance(service.channel, MockChannel)

    def test_ssh_channel_needs_hostname(self):
        with pytest.raises(ConfigurationError):
            ReviewTriggerService(make_conf(channel="ssh", gerrit_hostname=""))

    def test_ssh_channel_needs_key(self):
        conf = make_conf(channel="ssh", gerrit_hostname="review.example.local",
                         gerrit_auth_key_file=os.path.join("/nonexistent", "id_rsa"))
        with pytest.raises(ConfigurationError):
            ReviewTriggerService(conf)

    def test_ssh_channel_with_key(self):
        with tempfile.NamedTemporaryFile() as key:
            conf = make_conf(channel="ssh", gerrit_hostname="review.example.local",
                             gerrit_auth_key_file=key.name)
            service = ReviewTriggerService(conf)
            assert service.credentials.key_file == key.name

    def test_unknown_messaging_backend(self):
        conf = make_conf()
        conf.messaging = "carrier-pigeon"
        with pytest.raises(ConfigurationError):
            ReviewTriggerService(conf)

    @patch("review_trigger_service.dynamic_config.requests_session")
    def test_fetch_dynamic_config(self, mock_requests_session, service):
        mock_requests_session.get.return_value.ok = True
        mock_requests_session.get.return_value.text = "p=tools/review\n"
        url = "https://config.example.local/triggers.txt"
        assert [p.pattern for p in service.fetch_dynamic_config(url)] == ["tools/review"]
        assert [p.pattern for p in service.fetch_dynamic_config(url)] == ["tools/review"]
        mock_requests_session.get.assert_called_once_with(url, timeout=10)


class TestCommandLine:

    def test_sendcommand(self):
        result = CliRunner().invoke(cli, ["sendcommand", "gerrit version"])
        assert result.exit_code == 0, result.output

    @patch("review_trigger_service.channel.MockChannel.send", side_effect=RuntimeError("down"))
    def test_sendcommand_failure(self, send):
        result = CliRunner().invoke(cli, ["sendcommand", "gerrit version"])
        assert result.exit_code != 0
        assert "Could not send" in result.output
