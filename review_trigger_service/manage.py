# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Command line of the review trigger service. """

import logging

import click
from flask import current_app
from flask.cli import FlaskGroup
from werkzeug.serving import run_simple

from review_trigger_service.config import init_config
from review_trigger_service.logger import init_logging
from review_trigger_service.service import ReviewTriggerService
from review_trigger_service.web import EXTENSION_NAME, create_app

log = logging.getLogger(__name__)


def _create_cli_app():
    conf, config_section = init_config()
    init_logging(conf)
    service = ReviewTriggerService(conf)
    return create_app(service, config_section)


@click.group(cls=FlaskGroup, create_app=_create_cli_app, add_default_commands=False)
def cli():
    """ Manage the review trigger service. """


@cli.command("run")
@click.option("-h", "--host", default=None, help="Address of the diagnostics API")
@click.option("-p", "--port", type=int, default=None, help="Port of the diagnostics API")
@click.option("-d", "--debug", is_flag=True, default=False)
def run(host, port, debug):
    """ Start the command queue and serve the diagnostics API. """
    app = current_app._get_current_object()
    service = app.extensions[EXTENSION_NAME]
    conf = service.conf

    log.info("Starting the review trigger service")
    service.start()
    try:
        # app.run refuses to block a flask CLI command
        run_simple(
            host or conf.host,
            port or conf.port,
            app,
            use_reloader=False,
            use_debugger=debug or conf.debug,
            threaded=True,
        )
    finally:
        service.stop()


@cli.command("sendcommand")
@click.argument("command")
def sendcommand(command):
    """ Send one command to the code review server and print its output. """
    service = current_app.extensions[EXTENSION_NAME]
    output = service.command_queue.send_command_with_output(command)
    if output is None:
        raise click.ClickException("Could not send %r, see the log for details" % command)
    click.echo(output)


if __name__ == "__main__":
    cli()
