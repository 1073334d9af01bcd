"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps stored file names to the Content-Type sent back on GET /files/{name}.

The file store serves a flat namespace of uploaded blobs, not a website, so
the table is intentionally narrow. Anything we don't recognise is sent as
application/octet-stream ("opaque bytes, don't try to render this"), which is
the safe default for user-supplied content:

    notes.txt    → text/plain
    index.html   → text/html
    data.json    → application/json
    photo.png    → application/octet-stream
    README       → application/octet-stream

Extension matching is case-sensitive on purpose: "REPORT.TXT" was uploaded by
a client that chose that name, and we don't guess on its behalf.

=============================================================================
"""

from pathlib import Path
from typing import Optional


# Extension (with dot) → MIME type
MIME_TYPES = {
    ".txt": "text/plain",
    ".html": "text/html",
    ".json": "application/json",
}

# application/octet-stream = "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def get_mime_type(path: str | Path, default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

    Examples:
        >>> get_mime_type("notes.txt")
        'text/plain'
        >>> get_mime_type("/srv/files/archive.tar.gz")
        'application/octet-stream'
    """
    if isinstance(path, str):
        path = Path(path)

    return MIME_TYPES.get(path.suffix, default or DEFAULT_MIME_TYPE)
