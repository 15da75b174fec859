# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT

import textwrap

import pytest
import requests
from mock import Mock, patch

from review_trigger_service.dynamic_config import (
    DynamicConfigurationCache, DynamicRule, DynamicUrlFetcher, parse_trigger_config)
from review_trigger_service.errors import DynamicConfigParseError

URL = "https://config.example.local/triggers.txt"


class TestParser:

    def test_parse(self):
        projects = parse_trigger_config(textwrap.dedent("""\
            # first project
            p=tools/review
              b ^ **/release-*   ; trailing comment
            b=master
            t~feature-.*
            f~src/.*
            o=docs/index.rst

            p ~ platform/.*
            b=main
        """))

        assert len(projects) == 2
        review, platform = projects
        assert (review.compare_type, review.pattern) == ("plain", "tools/review")
        assert review.branches == [DynamicRule("ant", "**/release-*"),
                                   DynamicRule("plain", "master")]
        assert review.topics == [DynamicRule("reg_exp", "feature-.*")]
        assert review.file_paths == [DynamicRule("reg_exp", "src/.*")]
        assert review.forbidden_file_paths == [DynamicRule("plain", "docs/index.rst")]
        assert (platform.compare_type, platform.pattern) == ("reg_exp", "platform/.*")
        assert platform.branches == [DynamicRule("plain", "main")]
        assert platform.json()["branches"] == [{"compare_type": "plain", "pattern": "main"}]

    def test_empty(self):
        assert parse_trigger_config("") == []
        assert parse_trigger_config("# nothing\n; at all\n\n") == []

    def test_bad_line(self):
        with pytest.raises(DynamicConfigParseError) as excinfo:
            parse_trigger_config("p=tools/review\nx=whatever\n")
        assert excinfo.value.line_number == 2
        assert "Line 2" in str(excinfo.value)

    def test_missing_pattern(self):
        with pytest.raises(DynamicConfigParseError):
            parse_trigger_config("p=")

    @pytest.mark.parametrize("item", ("b", "t", "f", "o"))
    def test_item_before_project(self, item):
        with pytest.raises(DynamicConfigParseError) as excinfo:
            parse_trigger_config("# header\n%s=master\np=tools/review\n" % item)
        assert excinfo.value.line_number == 2
        assert "before 'Project'" in str(excinfo.value)


class TestFetcher:

    @patch("review_trigger_service.dynamic_config.requests_session")
    def test_fetch(self, mock_requests_session):
        mock_requests_session.get.return_value.ok = True
        mock_requests_session.get.return_value.text = "p=tools/review\nb=master\n"
        projects = DynamicUrlFetcher().fetch(URL)
        assert [p.pattern for p in projects] == ["tools/review"]
        mock_requests_session.get.assert_called_once_with(URL, timeout=10)

    @pytest.mark.parametrize("connection_error", (True, False))
    @patch("review_trigger_service.dynamic_config.requests_session")
    def test_fetch_failed(self, mock_requests_session, connection_error):
        if connection_error:
            mock_requests_session.get.side_effect = requests.ConnectionError("refused")
        else:
            mock_requests_session.get.return_value.ok = False
            mock_requests_session.get.return_value.status_code = 404
            mock_requests_session.get.return_value.text = "Not Found"
        with pytest.raises(RuntimeError):
            DynamicUrlFetcher().fetch(URL)

    def test_empty_url(self):
        with pytest.raises(ValueError):
            DynamicUrlFetcher().fetch("")


class TestCache:

    def setup_method(self, method):
        self.intervals = [30]
        self.cache = DynamicConfigurationCache(lambda: self.intervals)
        self.fetcher = Mock()
        self.fetcher.fetch.side_effect = lambda url: ["projects of %s" % url]

    @patch("review_trigger_service.dynamic_config.time.time")
    def test_hit_within_ttl(self, mock_time):
        mock_time.return_value = 1000.0
        assert self.cache.fetch(URL, self.fetcher) == ["projects of %s" % URL]
        mock_time.return_value = 1029.0
        assert self.cache.fetch(URL, self.fetcher) == ["projects of %s" % URL]
        self.fetcher.fetch.assert_called_once_with(URL)

    @patch("review_trigger_service.dynamic_config.time.time")
    def test_miss_after_ttl(self, mock_time):
        mock_time.return_value = 1000.0
        self.cache.fetch(URL, self.fetcher)
        mock_time.return_value = 1031.0
        self.cache.fetch(URL, self.fetcher)
        assert self.fetcher.fetch.call_count == 2

    @patch("review_trigger_service.dynamic_config.time.time")
    def test_ttl_follows_intervals(self, mock_time):
        mock_time.return_value = 1000.0
        self.cache.fetch(URL, self.fetcher)
        # The average of 10 and 110 is 60
        self.intervals = [10, 110]
        mock_time.return_value = 1050.0
        self.cache.fetch(URL, self.fetcher)
        assert self.fetcher.fetch.call_count == 1

    @patch("review_trigger_service.dynamic_config.time.time")
    def test_minimum_ttl(self, mock_time):
        self.intervals = [0]
        mock_time.return_value = 1000.0
        self.cache.fetch(URL, self.fetcher)
        mock_time.return_value = 1004.0
        self.cache.fetch(URL, self.fetcher)
        assert self.fetcher.fetch.call_count == 1
        assert self.cache.average_refresh_interval() == 5

        self.intervals = []
        assert self.cache.average_refresh_interval() == 5

    @patch("review_trigger_service.dynamic_config.time.time")
    def test_hit_sweeps_expired(self, mock_time):
        other = "https://config.example.local/other.txt"
        mock_time.return_value = 1000.0
        self.cache.fetch(other, self.fetcher)
        mock_time.return_value = 1020.0
        self.cache.fetch(URL, self.fetcher)
        assert len(self.cache) == 2

        mock_time.return_value = 1040.0
        self.cache.fetch(URL, self.fetcher)
        assert len(self.cache) == 1
        assert self.fetcher.fetch.call_count == 2

    def test_clear(self):
        self.cache.fetch(URL, self.fetcher)
        self.cache.clear()
        assert len(self.cache) == 0
        self.cache.fetch(URL, self.fetcher)
        assert self.fetcher.fetch.call_count == 2

    def test_fetch_error_propagates(self):
        self.fetcher.fetch.side_effect = RuntimeError("unreachable")
        with pytest.raises(RuntimeError):
            self.cache.fetch(URL, self.fetcher)
        assert len(self.cache) == 0
