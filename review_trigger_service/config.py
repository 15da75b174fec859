# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""Configuration handler functions."""

import importlib.util
import os
import sys

from review_trigger_service import logger, messaging
from review_trigger_service.channel import GenericChannel
from review_trigger_service.errors import ConfigurationError

# Appended to every default review command so that automated votes can be
# told apart from the ones cast by humans.
TAG_VALUE = "autogenerated:review-trigger"

_review_cmd = (
    "gerrit review <CHANGE>,<PATCHSET> --message '%s' "
    "--verified <VERIFIED> --code-review <CODE_REVIEW> --tag " + TAG_VALUE
)


def _is_testing():
    return "PYTEST_CURRENT_TEST" in os.environ or any(
        name in sys.argv[0] for name in ("pytest", "py.test"))


def _load_config_module(config_file):
    spec = importlib.util.spec_from_file_location("rts_runtime_config", config_file)
    config_module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(config_module)
    return config_module


def init_config():
    """ Configure the service from the config file

    The config file is taken from RTS_CONFIG_FILE, falling back to the
    system location and then to ``conf/config.py`` of a git checkout.
    The configuration class is chosen by RTS_CONFIG_SECTION.

    :return: a tuple of the Config instance and the selected section class
    """
    here = os.path.dirname(os.path.abspath(__file__))
    candidates = [
        os.environ.get("RTS_CONFIG_FILE"),
        "/etc/review-trigger-service/config.py",
        os.path.join(here, os.pardir, "conf", "config.py"),
    ]
    config_file = next((c for c in candidates if c and os.path.exists(c)), None)
    if config_file is None:
        raise ConfigurationError("No configuration file found in %r" % candidates)

    config_module = _load_config_module(config_file)

    if "RTS_CONFIG_SECTION" in os.environ:
        config_section = os.environ["RTS_CONFIG_SECTION"]
    elif _is_testing():
        config_section = "TestConfiguration"
    elif "RTS_DEVELOPMENT" in os.environ:
        config_section = "DevConfiguration"
    else:
        config_section = "ProdConfiguration"

    try:
        config_section_obj = getattr(config_module, config_section)
    except AttributeError:
        raise ConfigurationError(
            "Configuration section %r not found in %s" % (config_section, config_file))

    return Config(config_section_obj), config_section_obj


class Config(object):
    """Class representing the service configuration."""
    _defaults = {
        "debug": {
            "type": bool,
            "default": False,
            "desc": "Debug mode"},
        "host": {
            "type": str,
            "default": "127.0.0.1",
            "desc": "Address the diagnostics API listens on."},
        "port": {
            "type": int,
            "default": 5000,
            "desc": "Port the diagnostics API listens on."},
        "log_backend": {
            "type": str,
            "default": None,
            "desc": "Log backend"},
        "log_file": {
            "type": str,
            "default": "",
            "desc": "Path to log file"},
        "log_level": {
            "type": str,
            "default": 0,
            "desc": "Log level"},
        "messaging": {
            "type": str,
            "default": "fedmsg",
            "desc": "The messaging system to use."},
        "messaging_topic_prefix": {
            "type": str,
            "default": "review_trigger",
            "desc": "Prefix of the topics lifecycle messages are published on."},
        "publish_lifecycle_messages": {
            "type": bool,
            "default": False,
            "desc": "Publish every lifecycle transition on the message bus."},
        "channel": {
            "type": str,
            "default": "ssh",
            "desc": "The command channel backend to use."},
        "gerrit_hostname": {
            "type": str,
            "default": "",
            "desc": "Host name of the code review server."},
        "gerrit_ssh_port": {
            "type": int,
            "default": 29418,
            "desc": "SSH port of the code review server."},
        "gerrit_username": {
            "type": str,
            "default": "jenkins",
            "desc": "User name commands are sent as."},
        "gerrit_auth_key_file": {
            "type": str,
            "default": "~/.ssh/id_rsa",
            "desc": "Private key used to authenticate the command channel."},
        "gerrit_front_end_url": {
            "type": str,
            "default": "",
            "desc": "Web front end of the code review server."},
        "ssh_connect_timeout": {
            "type": int,
            "default": 10,
            "desc": "Seconds to wait for the command channel to connect."},
        "silent_mode": {
            "type": bool,
            "default": False,
            "desc": "Never send anything back to the code review server."},
        "silent_start_mode": {
            "type": bool,
            "default": False,
            "desc": "Do not send the build started command."},
        "gerrit_cmd_build_started": {
            "type": str,
            "default": _review_cmd % "Build Started <BUILDURL> <STARTED_STATS>",
            "desc": "Command template sent when a build starts."},
        "gerrit_cmd_build_successful": {
            "type": str,
            "default": _review_cmd % "Build Successful <BUILDS_STATS>",
            "desc": "Command template sent when all builds succeeded."},
        "gerrit_cmd_build_failed": {
            "type": str,
            "default": _review_cmd % "Build Failed <BUILDS_STATS>",
            "desc": "Command template sent when a build failed."},
        "gerrit_cmd_build_unstable": {
            "type": str,
            "default": _review_cmd % "Build Unstable <BUILDS_STATS>",
            "desc": "Command template sent when a build was unstable."},
        "gerrit_cmd_build_not_built": {
            "type": str,
            "default": _review_cmd % "No Builds Executed <BUILDS_STATS>",
            "desc": "Command template sent when nothing was built."},
        "gerrit_cmd_build_aborted": {
            "type": str,
            "default": _review_cmd % "Build Aborted <BUILDS_STATS>",
            "desc": "Command template sent when a build was aborted."},
        "gerrit_build_started_verified_value": {
            "type": int,
            "default": 0,
            "desc": ""},
        "gerrit_build_started_code_review_value": {
            "type": int,
            "default": 0,
            "desc": ""},
        "gerrit_build_successful_verified_value": {
            "type": int,
            "default": 1,
            "desc": ""},
        "gerrit_build_successful_code_review_value": {
            "type": int,
            "default": 0,
            "desc": ""},
        "gerrit_build_failure_verified_value": {
            "type": int,
            "default": -1,
            "desc": ""},
        "gerrit_build_failure_code_review_value": {
            "type": int,
            "default": 0,
            "desc": ""},
        "gerrit_build_unstable_verified_value": {
            "type": int,
            "default": 0,
            "desc": ""},
        "gerrit_build_unstable_code_review_value": {
            "type": int,
            "default": -1,
            "desc": ""},
        "gerrit_build_not_built_verified_value": {
            "type": int,
            "default": 0,
            "desc": ""},
        "gerrit_build_not_built_code_review_value": {
            "type": int,
            "default": 0,
            "desc": ""},
        "gerrit_build_aborted_verified_value": {
            "type": int,
            "default": 0,
            "desc": ""},
        "gerrit_build_aborted_code_review_value": {
            "type": int,
            "default": 0,
            "desc": ""},
        "send_queue_size_warning_threshold": {
            "type": int,
            "default": 20,
            "desc": "Backlog size at which the command queue starts to warn."},
        "send_queue_shutdown_timeout": {
            "type": int,
            "default": 30,
            "desc": "Seconds to wait for the command queue to drain on shutdown."},
        "send_command_retries": {
            "type": int,
            "default": 0,
            "desc": "Extra attempts for a command that failed to be sent."},
        "send_command_retry_interval": {
            "type": int,
            "default": 0,
            "desc": "Seconds between two attempts of the same command."},
        "dynamic_config_refresh_intervals": {
            "type": list,
            "default": [30],
            "desc": "Refresh interval, in seconds, of every dynamic config poller."},
    }

    def __init__(self, conf_section_obj=None):
        """Initialize the Config object with defaults and then override them
        with runtime values from the configuration section."""

        for name, values in self._defaults.items():
            self.set_item(name, values["default"])

        if conf_section_obj is None:
            return

        for key in dir(conf_section_obj):
            # skip keys starting with underscore
            if key.startswith("_"):
                continue
            # set item (lower key)
            self.set_item(key.lower(), getattr(conf_section_obj, key))

    def set_item(self, key, value):
        if key == "set_item" or key.startswith("_"):
            raise ConfigurationError("Configuration item's name is not allowed: %s" % key)

        # customized check & set if there's a corresponding handler
        setifok_func = "_setifok_{}".format(key)
        if hasattr(self, setifok_func):
            getattr(self, setifok_func)(value)
            return

        # managed/registered configuration items
        if key in self._defaults:
            # type conversion for configuration item
            convert = self._defaults[key]["type"]
            if convert in [bool, int, list, str]:
                try:
                    setattr(self, key, convert(value))
                except (TypeError, ValueError):
                    raise ConfigurationError(
                        "Configuration value conversion failed for name: %s" % key)
            # if type is None, do not perform any conversion
            elif convert is None:
                setattr(self, key, value)
            # unknown type/unsupported conversion
            else:
                raise ConfigurationError(
                    "Unsupported type %s for configuration item name: %s" % (convert, key))
        # passthrough for unmanaged configuration items
        else:
            setattr(self, key, value)

    def _setifok_log_backend(self, s):
        if s is None:
            s = "console"
        elif s not in logger.supported_log_backends():
            raise ConfigurationError("Unsupported log backend")
        self.log_backend = str(s)

    def _setifok_log_file(self, s):
        if s is None:
            self.log_file = ""
        else:
            self.log_file = str(s)

    def _setifok_log_level(self, s):
        level = str(s).lower()
        self.log_level = logger.str_to_log_level(level)

    def _setifok_messaging(self, s):
        s = str(s)
        if s not in messaging._messaging_backends:
            raise ConfigurationError("Unsupported messaging system.")
        self.messaging = s

    def _setifok_channel(self, s):
        s = str(s)
        if s not in GenericChannel.backends:
            raise ConfigurationError("Unsupported command channel: %s." % s)
        self.channel = s

    def _setifok_gerrit_ssh_port(self, i):
        if not isinstance(i, int):
            raise ConfigurationError("gerrit_ssh_port needs to be an int")
        if not 0 < i < 65536:
            raise ConfigurationError("gerrit_ssh_port must be a valid port number")
        self.gerrit_ssh_port = i

    def _setifok_gerrit_front_end_url(self, s):
        url = str(s)
        if url and url[-1] != "/":
            url = url + "/"
        self.gerrit_front_end_url = url

    def _setifok_send_queue_size_warning_threshold(self, i):
        if not isinstance(i, int):
            raise ConfigurationError("send_queue_size_warning_threshold needs to be an int")
        if i <= 0:
            raise ConfigurationError("send_queue_size_warning_threshold must be > 0")
        self.send_queue_size_warning_threshold = i

    def _setifok_send_command_retries(self, i):
        if not isinstance(i, int):
            raise ConfigurationError("send_command_retries needs to be an int")
        if i < 0:
            raise ConfigurationError("send_command_retries must be >= 0")
        self.send_command_retries = i

    def _setifok_send_command_retry_interval(self, i):
        if not isinstance(i, (int, float)):
            raise ConfigurationError("send_command_retry_interval needs to be a number")
        if i < 0:
            raise ConfigurationError("send_command_retry_interval must be >= 0")
        self.send_command_retry_interval = i

    def _setifok_dynamic_config_refresh_intervals(self, intervals):
        if not isinstance(intervals, (list, tuple)):
            raise ConfigurationError("dynamic_config_refresh_intervals needs to be a list")
        for i in intervals:
            if not isinstance(i, int) or i < 0:
                raise ConfigurationError(
                    "dynamic_config_refresh_intervals must only hold ints >= 0")
        self.dynamic_config_refresh_intervals = list(intervals)
