"""Client network address resolution.

Behind a reverse proxy or CDN the socket peer is the proxy, not the user, so
the well-known forwarding headers are inspected first (when trusted). The
first candidate that parses as an IPv4/IPv6 address wins.
"""

from __future__ import annotations

import ipaddress
from typing import Iterable

from fastapi import Request

# Checked in order; the first parseable address wins.
FORWARDED_HEADERS: tuple[str, ...] = (
    "x-client-ip",
    "x-forwarded-for",
    "cf-connecting-ip",
    "fastly-client-ip",
    "true-client-ip",
    "x-real-ip",
    "x-cluster-client-ip",
    "x-forwarded",
    "forwarded-for",
    "forwarded",
)


def _strip_port(candidate: str) -> str:
    candidate = candidate.strip().strip('"')
    # [v6]:port
    if candidate.startswith("["):
        end = candidate.find("]")
        return candidate[1:end] if end != -1 else candidate
    # v4:port (a bare v6 address has more than one colon)
    if candidate.count(":") == 1:
        return candidate.split(":", 1)[0]
    return candidate


def _parse_ip(candidate: str | None) -> str | None:
    if not candidate:
        return None
    try:
        return str(ipaddress.ip_address(_strip_port(candidate)))
    except ValueError:
        return None


def _candidates_from_header(name: str, value: str) -> Iterable[str]:
    if name == "forwarded":
        # RFC 7239: for=192.0.2.60;proto=http, for="[2001:db8::1]:4711"
        for element in value.split(","):
            for pair in element.split(";"):
                key, _, directive = pair.partition("=")
                if key.strip().lower() == "for":
                    yield directive
        return
    # X-Forwarded-For style lists: client, proxy1, proxy2
    yield from value.split(",")


def resolve_client_address(request: Request, *, trust_forwarded_headers: bool = True) -> str | None:
    """Resolve the requester's IP address.

    Args:
        request: Incoming request.
        trust_forwarded_headers: Inspect proxy headers before the socket peer.

    Returns:
        Normalized IP address string, or None when nothing parseable is found.
    """
    if trust_forwarded_headers:
        for name in FORWARDED_HEADERS:
            value = request.headers.get(name)
            if not value:
                continue
            for candidate in _candidates_from_header(name, value):
                address = _parse_ip(candidate)
                if address:
                    return address

    if request.client is None:
        return None
    return _parse_ip(request.client.host)
