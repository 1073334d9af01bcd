"""
=============================================================================
FILE RESOURCE HANDLER
=============================================================================

Exposes one directory as a flat namespace of named byte blobs:

    GET    /files            → HTML listing of the directory
    GET    /files/{name}     → the file's bytes
    POST   /files/{name}     → create or overwrite with the request body
    DELETE /files/{name}     → remove the file

=============================================================================
SECURITY: PATH TRAVERSAL ATTACK
=============================================================================

{name} comes straight from the client. Joined naively to the storage root,
it can point anywhere on disk:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  Root: /srv/data                                                     │
    │                                                                      │
    │  GET /files/notes.txt                → /srv/data/notes.txt      ✓    │
    │  GET /files/../../etc/passwd         → /etc/passwd              ✗    │
    │  GET /files/%2e%2e/%2e%2e/etc/passwd → /etc/passwd              ✗    │
    │  GET /files//etc/passwd              → /etc/passwd              ✗    │
    └─────────────────────────────────────────────────────────────────────┘

Defense, applied to every request except the listing, BEFORE looking at
the method:

    1. Percent-decode {name} strictly. A malformed escape ("%zz") or bytes
       that aren't UTF-8 → 400. "+" stays a literal plus.
    2. Join to the root and resolve() (collapses "..", follows symlinks).
    3. The result must be a STRICT descendant of the resolved root
       (the root itself is not a file)                   → else 403
    4. The decoded name must have no ".." segment,
       splitting on both "/" and "\\"                     → else 403

Checks 3 and 4 overlap on purpose. Check 3 alone is the real containment
guarantee; check 4 also refuses names like "sub/../x.txt" that resolve
inside the root, so a "..", encoded or not, never reaches the filesystem.

    PYTHON PROTECTION:
        target = (root / name).resolve()
        root in target.parents        # strict descendant

Comparing Path objects (not string prefixes) means /srv/data-old is not
mistaken for a child of /srv/data.

=============================================================================
ERRORS
=============================================================================

    Missing file / a directory on GET      → 404 File not found
    Missing file on DELETE                 → 404 File not found
    Anything else the OS refuses (EACCES,
    ENOSPC, missing parent dir on POST...) → 500, details only in the log

=============================================================================
INTERVIEW QUESTIONS
=============================================================================

Q: "Why decode before checking instead of checking the raw path?"
A: "Because the filesystem sees the decoded name. Checking the encoded
   form lets %2e%2e straight through."

Q: "What about two clients POSTing the same name at once?"
A: "Last writer wins, at the OS's discretion. There's no per-file lock;
   if that mattered we'd keep one lock per resolved path."

=============================================================================
"""

import html
import logging
import re
from pathlib import Path
from typing import List, Union
from urllib.parse import quote, unquote

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse,
    ResponseBuilder,
    bad_request,
    created,
    forbidden,
    internal_error,
    method_not_allowed,
    not_found,
    ok,
)


logger = logging.getLogger(__name__)


FILE_METHODS = ["DELETE", "GET", "POST"]

# "%" not followed by two hex digits
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_SEGMENT_SPLIT = re.compile(r"[/\\]")

_NOT_FOUND_ERRORS = (FileNotFoundError, IsADirectoryError, NotADirectoryError)


class InvalidNameError(ValueError):
    """The resource name is not valid percent-encoded UTF-8."""


class PathTraversalError(ValueError):
    """The resource name resolves outside the storage root."""


def decode_name(raw: str) -> str:
    """
    Strictly percent-decode a resource name.

    Examples:
        >>> decode_name("my%20notes.txt")
        'my notes.txt'
        >>> decode_name("a+b.txt")
        'a+b.txt'
        >>> decode_name("%zz")
        Traceback (most recent call last):
        InvalidNameError: ...

    Raises:
        InvalidNameError: Malformed escape, invalid UTF-8, or a NUL byte.
    """
    if _BAD_ESCAPE.search(raw):
        raise InvalidNameError(f"Malformed percent-escape in {raw!r}")

    try:
        name = unquote(raw, encoding="utf-8", errors="strict")
    except UnicodeDecodeError as e:
        raise InvalidNameError(f"Name is not valid UTF-8: {raw!r}") from e

    if "\x00" in name:
        raise InvalidNameError("Name contains a NUL byte")

    return name


def display_name(name: str) -> str:
    """
    Printable form of a directory entry name.

    Names that are not valid UTF-8 on disk come back from iterdir() with
    surrogate escapes; those bytes are shown as U+FFFD.
    """
    return name.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


class FileStore:
    """
    Sandboxed file operations under a single root directory.

    Every method that takes a name runs it through resolve() first, so no
    path outside the root is ever opened.

    Usage:
        store = FileStore("/srv/data")
        path = store.resolve("notes.txt")      # PathTraversalError if unsafe
        store.write(path, b"hello")
        store.read(path)                       # b"hello"
        store.delete(path)
    """

    def __init__(self, root: Union[str, Path]):
        """
        Args:
            root: Existing directory to store files in.

        Raises:
            ValueError: root is not an existing directory.
        """
        self.root = Path(root).resolve()

        if not self.root.is_dir():
            raise ValueError(f"Storage directory does not exist: {root}")

    def resolve(self, name: str) -> Path:
        """
        Map a decoded name to a path inside the root.

        Raises:
            PathTraversalError: The name escapes the root, names the root
                itself, or contains a ".." segment.
        """
        if ".." in _SEGMENT_SPLIT.split(name):
            raise PathTraversalError(f"'..' segment in {name!r}")

        target = (self.root / name).resolve()

        if self.root not in target.parents:
            raise PathTraversalError(f"{name!r} resolves outside the storage root")

        return target

    def list_names(self) -> List[str]:
        """Names of the root's immediate entries, sorted."""
        return sorted(entry.name for entry in self.root.iterdir())

    def read(self, path: Path) -> bytes:
        return path.read_bytes()

    def write(self, path: Path, data: bytes) -> None:
        """Create or truncate the file and write data. Parents are not created."""
        path.write_bytes(data)

    def delete(self, path: Path) -> None:
        path.unlink()


class FileHandler:
    """
    HTTP front end for a FileStore.

    Register it for both the bare listing path and the wildcard:

        files = FileHandler(FileStore(config.directory))
        router.add_route("/files", files.handle)
        router.add_route("/files/*name", files.handle)

    Any method on /files or /files/ is a listing; on /files/{name} only
    GET, POST and DELETE are allowed (405 otherwise).
    """

    def __init__(self, store: FileStore):
        self.store = store

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        raw_name = request.path_params.get("name", "")
        if not raw_name:
            return self.listing()

        # ─────────────────────────────────────────────────────────────────
        # CONTAINMENT CHECK (before the method)
        # ─────────────────────────────────────────────────────────────────
        try:
            path = self.store.resolve(decode_name(raw_name))
        except InvalidNameError as e:
            logger.debug(f"Rejected file name from {request.client_address[0]}: {e}")
            return bad_request("Invalid URL encoding")
        except PathTraversalError as e:
            logger.warning(f"Path traversal attempt from {request.client_address[0]}: {e}")
            return forbidden("Path traversal not allowed")

        if request.method == "GET":
            return self.get(path)
        if request.method == "POST":
            return self.post(path, request.body)
        if request.method == "DELETE":
            return self.delete(path)

        return method_not_allowed(FILE_METHODS)

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def listing(self) -> HTTPResponse:
        try:
            names = self.store.list_names()
        except OSError as e:
            logger.error(f"Cannot list {self.store.root}: {e}")
            return internal_error("Error reading directory")

        items = "".join(
            f'<li><a href="/files/{quote(name, errors="surrogateescape")}">'
            f'{html.escape(display_name(name))}</a></li>'
            for name in names
        )
        page = (
            "<html><head><title>Directory Listing</title></head><body>"
            f"<h1>Directory Listing</h1><ul>{items}</ul>"
            "</body></html>"
        )
        return ok(page, content_type="text/html")

    def get(self, path: Path) -> HTTPResponse:
        try:
            data = self.store.read(path)
        except _NOT_FOUND_ERRORS:
            return not_found("File not found")
        except OSError as e:
            logger.error(f"Cannot read {path}: {e}")
            return internal_error("Error reading file")

        return ResponseBuilder().file(data, path.name).build()

    def post(self, path: Path, body: bytes) -> HTTPResponse:
        try:
            self.store.write(path, body)
        except OSError as e:
            logger.error(f"Cannot write {path}: {e}")
            return internal_error("Error writing file")

        logger.info(f"Stored {path.name} ({len(body)} bytes)")
        return created("File created")

    def delete(self, path: Path) -> HTTPResponse:
        try:
            self.store.delete(path)
        except (FileNotFoundError, NotADirectoryError):
            return not_found("File not found")
        except OSError as e:
            logger.error(f"Cannot delete {path}: {e}")
            return internal_error("Error deleting file")

        logger.info(f"Deleted {path.name}")
        return ok("File deleted")
