"""URL normalization utilities for the deep crawler.

Every URL that reaches the visited set, the frontier or a restored
checkpoint passes through :func:`normalize_url` first, so two spellings of
the same page (``/x`` and ``/x#frag``) collapse to one key.
"""
from __future__ import annotations

from typing import Optional
from urllib.parse import quote, urljoin, urlsplit, urlunsplit


_ALLOWED_SCHEMES = frozenset(("http", "https"))
_DEFAULT_PORTS = {"http": 80, "https": 443}
# existing %XX escapes are kept; spaces and non-ASCII are percent-encoded
_PATH_SAFE = "/%:@!$&'()*+,;=-._~"
_QUERY_SAFE = _PATH_SAFE + "?"


def normalize_url(url: object, base: Optional[str] = None) -> Optional[str]:
    """Canonicalize an absolute http(s) URL.

    Applies the following transformations:
      1. Resolve *url* against *base* when a base is given.
      2. Reject anything whose scheme is not ``http`` or ``https``.
      3. Lowercase scheme and host, drop default ports.
      4. Use ``/`` for an empty path; keep the query string. Characters
         not allowed in a URL (spaces, non-ASCII) are percent-encoded.
      5. Strip the fragment.

    Args:
        url: The URL to normalize (absolute, or relative to *base*).
        base: Optional base URL used to resolve relative references.

    Returns:
        The canonical URL string, or ``None`` on any parse or scheme
        failure (``mailto:``, ``javascript:``, bare words, bad ports).
    """
    if not isinstance(url, str) or not url.strip():
        return None

    url = url.strip()
    try:
        absolute = urljoin(base, url) if base else url
        parts = urlsplit(absolute)
        scheme = parts.scheme.lower()
        if scheme not in _ALLOWED_SCHEMES:
            return None
        hostname = parts.hostname
        port = parts.port
    except ValueError:
        return None

    if not hostname or any(ch.isspace() for ch in hostname):
        return None

    netloc = hostname.lower()
    if ":" in netloc:
        # IPv6 literal
        netloc = f"[{netloc}]"
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"
    if parts.username:
        userinfo = parts.username
        if parts.password:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    path = quote(parts.path or "/", safe=_PATH_SAFE)
    query = quote(parts.query, safe=_QUERY_SAFE)
    return urlunsplit((scheme, netloc, path, query, ""))


def get_host(url: str) -> str:
    """Return ``host[:port]`` of *url* (lowercased), or ``""`` if unparsable."""
    normalized = normalize_url(url)
    if normalized is None:
        return ""
    netloc = urlsplit(normalized).netloc
    return netloc.rsplit("@", 1)[-1]


def is_same_host(seed_url: str, candidate_url: str) -> bool:
    """Check whether two URLs share the same ``host[:port]``."""
    return get_host(seed_url) == get_host(candidate_url)
