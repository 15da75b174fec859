# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""The review trigger service.

Correlates an event received from the code review server with the builds
it triggered, waits for all of them and reports one verdict back.
"""

from importlib.metadata import version as _get_version, PackageNotFoundError
from logging import getLogger

try:
    version = _get_version("review-trigger-service")
except PackageNotFoundError:
    version = "unknown"
api_version = 1

log = getLogger(__name__)
