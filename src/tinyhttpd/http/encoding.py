"""
=============================================================================
CONTENT ENCODING (gzip)
=============================================================================

Content negotiation for response bodies. The client advertises what it can
decode; if gzip is on the list we compress.

    Request:
        Accept-Encoding: deflate, gzip, br

    Response:
        Content-Encoding: gzip
        Content-Length: 37          ← size of the COMPRESSED body

=============================================================================
NEGOTIATION RULES
=============================================================================

1. Split Accept-Encoding on commas, trim whitespace around each entry.
2. gzip is accepted only if one entry is exactly "gzip".
   "GZIP", "gzip;q=1.0" and "x-gzip" are NOT treated as gzip.
3. Compress every non-empty body, whatever its Content-Type.
   An empty body is never compressed (a gzip of nothing is ~20 bytes
   of header for no payload).

Unlike a general-purpose compression middleware we don't try to be clever
about already-compressed types or minimum sizes: if the client asked for
gzip it gets gzip, which keeps the behaviour easy to reason about and test.

=============================================================================
"""

import gzip


GZIP = "gzip"
DEFAULT_LEVEL = 6  # Balanced speed/ratio, same as the gzip CLI


def accepts_gzip(accept_encoding: str) -> bool:
    """
    Check whether an Accept-Encoding header value lists gzip.

    Examples:
        >>> accepts_gzip("deflate, gzip")
        True
        >>> accepts_gzip("GZIP")
        False
        >>> accepts_gzip("")
        False
    """
    if not accept_encoding:
        return False

    return any(token.strip() == GZIP for token in accept_encoding.split(","))


def gzip_body(body: bytes, level: int = DEFAULT_LEVEL) -> bytes:
    """Compress a response body with gzip."""
    return gzip.compress(body, compresslevel=level)
