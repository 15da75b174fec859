# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Renders the command templates sent back to the code review server. """

import logging
import re

from review_trigger_service.models import RESULT_SEVERITY

log = logging.getLogger(__name__)

# Separates the build URL from its result in BUILDS_STATS
MESSAGE_DELIMITER = " : "

_placeholder = re.compile(r"<([A-Z_]+)>")

# Config key fragment of every verdict, see Config._defaults
_vote_keys = {
    "success": "successful",
    "failure": "failure",
    "unstable": "unstable",
    "not_built": "not_built",
    "aborted": "aborted",
}

_command_keys = {
    "success": "gerrit_cmd_build_successful",
    "failure": "gerrit_cmd_build_failed",
    "unstable": "gerrit_cmd_build_unstable",
    "not_built": "gerrit_cmd_build_not_built",
    "aborted": "gerrit_cmd_build_aborted",
}


def escape_quotes(text):
    """ Make text safe inside a single quoted shell argument. """
    return text.replace("'", "'\"'\"'")


class ParameterExpander(object):
    """ Expands the ``<NAME>`` placeholders of the configured commands.

    The standard placeholders are GERRIT_NAME, CHANGE_ID, BRANCH, TOPIC,
    CHANGE, PATCHSET, PATCHSET_REVISION, REFSPEC, BUILDURL, VERIFIED and
    CODE_REVIEW. The build started command also knows STARTED_STATS and
    the build completed command BUILDS_STATS.
    """

    def __init__(self, conf):
        self.conf = conf

    def verified_value(self, result):
        return getattr(self.conf, "gerrit_build_%s_verified_value" % _vote_keys[result])

    def code_review_value(self, result):
        return getattr(self.conf, "gerrit_build_%s_code_review_value" % _vote_keys[result])

    def standard_parameters(self, event, verified, code_review, build_url=None):
        params = {
            "GERRIT_NAME": event.project,
            "CHANGE_ID": event.change_id,
            "BRANCH": event.branch,
            "TOPIC": event.topic,
            "CHANGE": event.change_number,
            "PATCHSET": event.patchset_number,
            "PATCHSET_REVISION": event.patchset_revision,
            "REFSPEC": event.refspec,
            "BUILDURL": build_url,
            "VERIFIED": str(verified),
            "CODE_REVIEW": str(code_review),
        }
        # Missing values leave their placeholder untouched
        return dict((k, v) for k, v in params.items() if v is not None)

    def expand(self, template, params):
        # One pass, so placeholders inside substituted values stay as they are
        command = _placeholder.sub(lambda m: params.get(m.group(1), m.group(0)), template)
        # A vote that should not be cast is dropped from the command
        command = command.replace("--code-review None", "")
        command = command.replace("--verified None", "")
        return command

    def build_started_command(self, event, execution, stats):
        """ The command announcing that ``execution`` started.

        :param TriggerEvent event: the event which triggered the execution
        :param Execution execution: the execution which just started
        :param BuildsStartedStats stats: started executions of the event
        """
        params = self.standard_parameters(
            event,
            self.conf.gerrit_build_started_verified_value,
            self.conf.gerrit_build_started_code_review_value,
            build_url=execution.build_url)
        # The counter is noise when only one build runs
        params["STARTED_STATS"] = str(stats) if stats.total > 1 else ""
        return self.expand(self.conf.gerrit_cmd_build_started, params)

    def minimum_verified_value(self, imprint, only_built=True):
        return self._minimum_vote(imprint, only_built, self.verified_value)

    def minimum_code_review_value(self, imprint, only_built=True):
        return self._minimum_vote(imprint, only_built, self.code_review_value)

    def _minimum_vote(self, imprint, only_built, vote_for):
        votes = []
        for execution in imprint.executions:
            if execution.cancelled or execution.result is None:
                continue
            if only_built and execution.result == "not_built":
                continue
            if execution.vote_skipped:
                continue
            value = vote_for(execution.result)
            if value is not None:
                votes.append(value)
        if not votes:
            return None
        return min(votes)

    def builds_stats(self, imprint):
        """ One paragraph per execution, the worst results first. """
        executions = [e for e in imprint.executions if not e.cancelled]
        if not executions:
            log.error("Asked for the build statistics of %r which ran nothing", imprint)
            return ""
        executions.sort(key=lambda e: RESULT_SEVERITY.get(e.result, 0), reverse=True)

        stats = []
        for execution in executions:
            result = execution.result or "not_built"
            url = execution.custom_url or execution.build_url or ""
            # The server joins single newlines, so paragraphs are needed
            entry = "\n\n" + url + MESSAGE_DELIMITER + result.upper()
            if execution.vote_skipped:
                entry += " (skipped)"
            message = execution.unsuccessful_message
            if result != "success" and message and message.strip():
                entry += " <<<\n" + message.strip() + "\n>>>"
            stats.append(entry)
        return "".join(stats)

    def build_completed_command(self, imprint, verdict):
        """ The command reporting ``verdict`` for all executions of the imprint. """
        # Builds that were not built only count when nothing else was built
        only_built = verdict != "not_built"
        verified = None
        code_review = None
        if imprint.event.scorable:
            verified = self.minimum_verified_value(imprint, only_built)
            code_review = self.minimum_code_review_value(imprint, only_built)

        params = self.standard_parameters(imprint.event, verified, code_review)
        params["BUILDS_STATS"] = escape_quotes(self.builds_stats(imprint))

        template = getattr(self.conf, _command_keys[verdict])
        return self.expand(template, params)

    @staticmethod
    def find_message(command):
        """ Extract the review message from a rendered command. """
        start = "--message '"
        index = command.find(start)
        if index == -1:
            return None
        message = command[index + len(start):]
        end = message.find("' --")
        if end != -1:
            message = message[:end]
        return message
