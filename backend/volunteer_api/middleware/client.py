"""
Volunteer API — Client Address Resolution
==========================================

What:  Derives the client address used as the rate-limit key and in logs.
Why:   Behind a reverse proxy (Render, nginx) every connection comes from the
       proxy, so keying on the peer address would put all users in one bucket.
How:   With `trusted_hops` = n > 0, the address list is the X-Forwarded-For
       entries followed by the direct peer; the client is the entry n places
       from the right. With n = 0 the forwarded header is ignored entirely,
       because any client can forge it.

Example (trusted_hops=1):
    X-Forwarded-For: 203.0.113.9, 198.51.100.7     peer: 10.0.0.2
    candidates = [203.0.113.9, 198.51.100.7, 10.0.0.2]
    client     = 198.51.100.7   (the address our single proxy saw)
"""

from starlette.requests import HTTPConnection

UNKNOWN_CLIENT = "unknown"


def client_address(connection: HTTPConnection, trusted_hops: int = 0) -> str:
    peer = connection.client.host if connection.client else UNKNOWN_CLIENT
    if trusted_hops <= 0:
        return peer

    forwarded = connection.headers.get("x-forwarded-for", "")
    candidates = [part.strip() for part in forwarded.split(",") if part.strip()]
    candidates.append(peer)
    index = max(len(candidates) - 1 - trusted_hops, 0)
    return candidates[index]
