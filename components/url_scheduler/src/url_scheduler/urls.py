"""Hidden-service URL validation, normalization and index fingerprints.

Normalization lower-cases scheme and host, drops the scheme's default port
and the fragment. Path, query string (parameter order included) and a
trailing slash are kept as-is: ``/a`` and ``/a/`` are distinct resources.
"""

from __future__ import annotations

import base64
from urllib.parse import SplitResult, urlsplit, urlunsplit

HIDDEN_SERVICE_SUFFIX = ".onion"

_DEFAULT_PORTS = {"http": 80, "https": 443}


def parse_url(url: str) -> SplitResult | None:
    """Split ``url``; None when it has no scheme or host, or a bad port/netloc."""
    try:
        parts = urlsplit(url)
        # Accessing .port validates it (raises ValueError when out of range).
        parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    return parts


def is_hidden_service(parts: SplitResult, suffix: str = HIDDEN_SERVICE_SUFFIX) -> bool:
    hostname = (parts.hostname or "").rstrip(".")
    suffix = suffix.lower()
    # Something must precede the suffix: "http://.onion/" names no service.
    return len(hostname) > len(suffix) and hostname.endswith(suffix)


def normalize_url(parts: SplitResult) -> str:
    scheme = parts.scheme.lower()
    netloc = (parts.hostname or "").rstrip(".")
    if parts.port is not None and _DEFAULT_PORTS.get(scheme) != parts.port:
        netloc = f"{netloc}:{parts.port}"
    if "@" in parts.netloc:
        userinfo = parts.netloc.rpartition("@")[0]
        netloc = f"{userinfo}@{netloc}"
    return urlunsplit((scheme, netloc, parts.path, parts.query, ""))


def fingerprint(normalized_url: str) -> str:
    """URL-safe base64 of the normalized URL; the exact-match key used by the index."""
    return base64.urlsafe_b64encode(normalized_url.encode("utf-8")).decode("ascii")


def decode_fingerprint(value: str) -> str:
    return base64.urlsafe_b64decode(value.encode("ascii")).decode("utf-8")
