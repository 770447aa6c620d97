from __future__ import annotations

import re
import urllib.parse

_SSH_RE = re.compile(r"^git@github\.com:([^/]+)/([^/]+?)(?:\.git)?$")
_SHORT_RE = re.compile(r"^([^/\s]+)/([^/\s]+)$")


def parse_repository_url(url: str) -> tuple[str, str] | None:
    """Return ``(owner, repo)`` for a GitHub https, ssh or ``owner/repo`` string."""
    value = url.strip()

    parsed = urllib.parse.urlparse(value)
    if parsed.scheme in {"http", "https"}:
        if parsed.hostname != "github.com":
            return None
        parts = [part for part in parsed.path.split("/") if part]
        if len(parts) < 2:
            return None
        return parts[0], parts[1].removesuffix(".git")

    match = _SSH_RE.match(value) or _SHORT_RE.match(value)
    if match is None:
        return None
    return match.group(1), match.group(2)
