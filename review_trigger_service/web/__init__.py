# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Read only diagnostics API of the review trigger service. """

import logging

from flask import Flask

from review_trigger_service.errors import NotFound, json_error
from review_trigger_service.logger import level_flags

log = logging.getLogger(__name__)

EXTENSION_NAME = "review_trigger_service"


def create_app(service, config_section=None, debug=False, verbose=False, quiet=False):
    """ Build the Flask application exposing ``service``.

    :param ReviewTriggerService service: the running service
    :param config_section: configuration class loaded into ``app.config``
    """
    root_log = logging.getLogger("review_trigger_service")
    if debug:
        root_log.setLevel(level_flags["debug"])
    elif verbose:
        root_log.setLevel(level_flags["verbose"])
    elif quiet:
        root_log.setLevel(level_flags["quiet"])

    app = Flask(__name__)
    if config_section is not None:
        app.config.from_object(config_section)
    app.extensions[EXTENSION_NAME] = service

    from review_trigger_service.web.views import api_v1
    app.register_blueprint(api_v1)

    @app.errorhandler(NotFound)
    def notfound_error(e):
        """Flask error handler for NotFound exceptions"""
        return json_error(404, "Not Found", str(e))

    @app.errorhandler(ValueError)
    def valueerror_error(e):
        """Flask error handler for ValueError exceptions"""
        return json_error(400, "Bad Request", str(e))

    @app.errorhandler(RuntimeError)
    def runtimeerror_error(e):
        """Flask error handler for RuntimeError exceptions"""
        log.exception("RuntimeError exception raised")
        return json_error(500, "Internal Server Error", str(e))

    return app
