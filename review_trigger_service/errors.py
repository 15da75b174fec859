# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Defines custom exceptions and error handling functions """

from flask import jsonify


class ProtocolError(ValueError):
    """Raised when the scheduler or matcher integration misuses the memory"""


class AlreadyScanning(ProtocolError):
    pass


class ScanClosed(ProtocolError):
    pass


class InvalidTransition(ProtocolError):
    pass


class UnknownExecution(ProtocolError):
    pass


class ConfigurationError(ValueError):
    """Raised while constructing a component from an invalid configuration"""


class NotFound(ValueError):
    pass


class ChannelError(RuntimeError):
    pass


class DynamicConfigParseError(ValueError):
    def __init__(self, message, line_number=None):
        super(DynamicConfigParseError, self).__init__(message)
        self.line_number = line_number


def json_error(status, error, message):
    response = jsonify({"status": status, "error": error, "message": message})
    response.status_code = status
    return response
