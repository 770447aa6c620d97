from __future__ import annotations

import logging

LOGGER = logging.getLogger("hubgate.github")
APP_VERSION = "0.1.0"

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
GITHUB_ACCEPT = "application/vnd.github+json"

# Tokens are handed out only while more than this many seconds remain.
TOKEN_REFRESH_BUFFER_SECONDS = 5 * 60
RATE_LIMIT_LOW_THRESHOLD = 100
