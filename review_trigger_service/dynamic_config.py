# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Dynamic trigger configurations, fetched from a URL and cached.

A trigger configuration is a text file with one rule per line::

    # comments start with # or ;
    p=my/project
    b^**/release-*
    f~src/.*\\.py
    o=docs/index.rst

The first character names the item (``p`` project, ``b`` branch, ``t``
topic, ``f`` file path, ``o`` forbidden file path), the operator says how
the pattern compares (``=`` plain, ``~`` regular expression, ``^`` ANT
path) and the rest of the line is the pattern. Every item applies to the
last project above it.
"""

import logging
import re
import threading
import time

import requests

from review_trigger_service.errors import DynamicConfigParseError

log = logging.getLogger(__name__)

requests_session = requests.Session()

# Seconds, the lowest TTL used whatever the pollers are configured with
MINIMUM_REFRESH_INTERVAL = 5

FETCH_TIMEOUT = 10

COMPARE_TYPES = {
    "=": "plain",
    "~": "reg_exp",
    "^": "ant",
}

_line_re = re.compile(r"^([pbtfo])\s*([=~^])\s*(.+)$")


class DynamicRule(object):
    def __init__(self, compare_type, pattern):
        self.compare_type = compare_type
        self.pattern = pattern

    def __eq__(self, other):
        return (isinstance(other, DynamicRule)
                and (self.compare_type, self.pattern) == (other.compare_type, other.pattern))

    def __hash__(self):
        return hash((self.compare_type, self.pattern))

    def __repr__(self):
        return "<DynamicRule %s %r>" % (self.compare_type, self.pattern)

    def json(self):
        return {"compare_type": self.compare_type, "pattern": self.pattern}


class DynamicProject(DynamicRule):
    """ A project rule and the rules narrowing it down. """

    def __init__(self, compare_type, pattern):
        super(DynamicProject, self).__init__(compare_type, pattern)
        self.branches = []
        self.topics = []
        self.file_paths = []
        self.forbidden_file_paths = []

    def __repr__(self):
        return "<DynamicProject %s %r>" % (self.compare_type, self.pattern)

    def json(self):
        rv = super(DynamicProject, self).json()
        rv.update({
            "branches": [b.json() for b in self.branches],
            "topics": [t.json() for t in self.topics],
            "file_paths": [f.json() for f in self.file_paths],
            "forbidden_file_paths": [f.json() for f in self.forbidden_file_paths],
        })
        return rv


_item_lists = {
    "b": ("branches", "Branch"),
    "t": ("topics", "Topic"),
    "f": ("file_paths", "FilePath"),
    "o": ("forbidden_file_paths", "ForbiddenFilePath"),
}


def parse_trigger_config(text):
    """ Parse the text of a trigger configuration.

    :param str text: the configuration
    :return: list of DynamicProject, in the order they are listed
    :raises DynamicConfigParseError: on the first line that is not valid
    """
    projects = []
    project = None
    for line_number, line in enumerate(text.splitlines(), 1):
        for comment in ("#", ";"):
            pos = line.find(comment)
            if pos > -1:
                line = line[:pos]
        line = line.strip()
        if not line:
            continue

        match = _line_re.match(line)
        if not match:
            raise DynamicConfigParseError(
                "Line %d: cannot parse '%s'" % (line_number, line), line_number)
        item, operator, pattern = match.groups()
        compare_type = COMPARE_TYPES[operator]

        if item == "p":
            project = DynamicProject(compare_type, pattern)
            projects.append(project)
            continue

        attr, name = _item_lists[item]
        if project is None:
            raise DynamicConfigParseError(
                "Line %d: attempt to use '%s' before 'Project'" % (line_number, name),
                line_number)
        getattr(project, attr).append(DynamicRule(compare_type, pattern))

    return projects


class DynamicUrlFetcher(object):
    """ Downloads and parses trigger configurations. """

    def fetch(self, url):
        """
        :param str url: where the trigger configuration is published
        :return: list of DynamicProject
        :raises ValueError: if url is empty
        :raises RuntimeError: if the configuration cannot be downloaded
        :raises DynamicConfigParseError: if it cannot be parsed
        """
        if not url:
            raise ValueError("The trigger configuration URL is empty")

        try:
            rv = requests_session.get(url, timeout=FETCH_TIMEOUT)
        except requests.RequestException:
            msg = "The connection failed when getting the trigger configuration at %s" % url
            log.exception(msg)
            raise RuntimeError(msg)

        if not rv.ok:
            log.error(
                "The request to get the trigger configuration at %s failed with the status "
                'code %d and error "%s"', url, rv.status_code, rv.text)
            raise RuntimeError("Failed to retrieve the trigger configuration at %s" % url)

        return parse_trigger_config(rv.text)


class CacheEntry(object):
    def __init__(self, projects, created=None):
        self.created = created if created is not None else time.time()
        self.projects = projects

    def is_expired(self, cutoff):
        return self.created < cutoff


class DynamicConfigurationCache(object):
    """ Time limited cache of the fetched trigger configurations, by URL.

    :param refresh_intervals: callable returning the refresh interval of
        every poller, in seconds. The entries live for the average of them.
    """

    def __init__(self, refresh_intervals):
        self.refresh_intervals = refresh_intervals
        self._entries = {}
        self._lock = threading.Lock()

    def average_refresh_interval(self):
        intervals = list(self.refresh_intervals() or [])
        average = 0
        if intervals:
            average = sum(intervals) / float(len(intervals))
        return max(MINIMUM_REFRESH_INTERVAL, average)

    def get_max_ttl(self):
        """ Entries created before the returned timestamp are expired. """
        return time.time() - self.average_refresh_interval()

    def get(self, url, cutoff):
        with self._lock:
            entry = self._entries.get(url)
            if entry is None or entry.is_expired(cutoff):
                return None
            return entry.projects

    def put(self, url, projects):
        with self._lock:
            self._entries[url] = CacheEntry(projects)
        return projects

    def cleanup(self, cutoff):
        with self._lock:
            for url in [u for u, e in self._entries.items() if e.is_expired(cutoff)]:
                log.debug("Removing expired url %s from cache", url)
                del self._entries[url]

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def fetch(self, url, fetcher):
        """ The projects configured at url, from the cache when still valid.

        :param fetcher: object with a ``fetch(url)`` method, used on a miss.
            Its errors are not caught.
        """
        cutoff = self.get_max_ttl()
        projects = self.get(url, cutoff)
        if projects is not None:
            log.debug("Get dynamic projects from cache for URL: %s", url)
            self.cleanup(cutoff)
            return projects

        log.info("Get dynamic projects directly for URL: %s", url)
        return self.put(url, fetcher.fetch(url))
