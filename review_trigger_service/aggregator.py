# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Reduces the results of all executions of an event to one verdict. """


def _results(imprint, include_cancelled=True):
    return [e.result for e in imprint.executions
            if include_cancelled or not e.cancelled]


def were_all_skipped(imprint):
    return all(e.vote_skipped for e in imprint.executions)


def were_all_successful(imprint):
    executions = imprint.executions
    if not executions:
        return False
    if were_all_skipped(imprint):
        # Nothing counts, only a clean run is a success then
        return all(e.result == "success" for e in executions)
    return all(e.result == "success" or e.vote_skipped for e in executions)


def were_any_failed(imprint):
    return "failure" in _results(imprint)


def were_any_unstable(imprint):
    return "unstable" in _results(imprint)


def were_all_not_built(imprint):
    # Executions dropped from the scheduler queue never ran, they say
    # nothing about the change.
    return all(r == "not_built" for r in _results(imprint, include_cancelled=False))


def were_any_aborted(imprint):
    return "aborted" in _results(imprint)


def aggregate(imprint):
    """ Compute the verdict of a fully completed MemoryImprint.

    The rules are evaluated in order over the whole set of results and
    the first match wins:

    1. all executions succeeded, ignoring the results their project
       skips -> success
    2. any execution failed -> failure
    3. any execution was unstable -> unstable
    4. all executions that ran were not built -> not_built
    5. any execution was aborted -> aborted
    6. anything else -> failure

    :param MemoryImprint imprint: the imprint, every execution must be completed
    :return: the verdict, one of models.RESULTS
    :raises ValueError: if an execution is not completed yet
    """
    with imprint.lock:
        pending = [e for e in imprint.executions if not e.completed]
        if pending:
            raise ValueError("Cannot aggregate %r, %d executions are not completed" % (
                imprint, len(pending)))

        if were_all_successful(imprint):
            return "success"
        if were_any_failed(imprint):
            return "failure"
        if were_any_unstable(imprint):
            return "unstable"
        if were_all_not_built(imprint):
            return "not_built"
        if were_any_aborted(imprint):
            return "aborted"
        # Just as bad as failed for now.
        return "failure"
