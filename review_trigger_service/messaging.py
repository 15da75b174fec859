# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""Generic messaging functions."""

import logging
import threading

log = logging.getLogger(__name__)


def publish(topic, msg, backend, modname="review_trigger_service"):
    """ Publish a single message to a given backend, and return. """
    try:
        handler = _messaging_backends[backend]["publish"]
    except KeyError:
        raise KeyError("No messaging backend found for %r" % backend)
    return handler(topic, msg, modname=modname)


def _fedmsg_publish(topic, msg, modname):
    # fedmsg is imported lazily, loading its config is expensive and the
    # in_memory backend does not need it.
    import fedmsg
    return fedmsg.publish(topic=topic, msg=msg, modname=modname)


# Messages published with the in_memory backend, oldest first
_in_memory_msgs = []
_in_memory_lock = threading.Lock()


def _in_memory_publish(topic, msg, modname):
    """ Keep the message in this process, used by tests and local runs. """
    with _in_memory_lock:
        _in_memory_msgs.append({
            "topic": "%s.%s" % (modname, topic),
            "msg": msg,
        })
    log.debug("Published %s.%s on the in_memory backend", modname, topic)


def in_memory_messages():
    with _in_memory_lock:
        return list(_in_memory_msgs)


def clear_in_memory_messages():
    with _in_memory_lock:
        del _in_memory_msgs[:]


_messaging_backends = {
    "fedmsg": {
        "publish": _fedmsg_publish,
    },
    "in_memory": {
        "publish": _in_memory_publish,
    },
}
