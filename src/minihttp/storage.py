"""
=============================================================================
FILE STORE
=============================================================================

The filesystem behind the /files/* routes: read, write and existence
checks by name, relative to a configured root directory.

=============================================================================
NAME RESOLUTION
=============================================================================

    root = /srv/data
    name = "notes/today.txt"   → /srv/data/notes/today.txt
    name = "../etc/passwd"     → /srv/etc/passwd   ← outside the root!

With confine=True (the default) every name is resolved (following ".."
and symlinks) and must stay inside the root. Escaping names are refused:

    read_all("../etc/passwd")   → NotFound   (client sees 404)
    write_all("../x", b"...")   → IOFailure  (client sees 500)

With confine=False names are joined onto the root unchecked.

=============================================================================
ERRORS
=============================================================================

    StorageError
    ├── NotFound    file absent (or refused on read)
    └── IOFailure   any other OS error: permissions, missing parent
                    directory, target is a directory, ...

=============================================================================
"""

import logging
from pathlib import Path
from typing import Union


logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base class for file store errors."""

    def __init__(self, message: str, name: str = ""):
        super().__init__(message)
        self.name = name


class NotFound(StorageError):
    """The named file does not exist under the root."""


class IOFailure(StorageError):
    """Reading or writing failed for a reason other than absence."""


class InvalidName(ValueError):
    """A name that cannot map to a file under the root."""


class PathOutsideRoot(InvalidName):
    """A name resolved to a location outside the store's root."""


class FileStore:
    """
    Read/write access to files under one root directory.

    Usage:
        store = FileStore("/tmp/data")
        store.write_all("new.txt", b"hello")
        store.exists("new.txt")        # True
        store.read_all("new.txt")      # b"hello"
    """

    def __init__(self, root: Union[str, Path] = ".", confine: bool = True):
        """
        Args:
            root: Directory the names are relative to.
            confine: Refuse names that resolve outside the root.
        """
        self.root = Path(root).resolve()
        self.confine = confine

    def __repr__(self) -> str:
        return f"FileStore(root={str(self.root)!r}, confine={self.confine})"

    def resolve(self, name: str) -> Path:
        """
        Map a name onto a filesystem path.

        Raises:
            InvalidName: If the name holds a NUL byte, which no filesystem
                path can contain.
            PathOutsideRoot: If confined and the path escapes the root.
        """
        if "\x00" in name:
            logger.warning(f"Invalid file name: {name!r}")
            raise InvalidName(name)

        path = self.root / name
        if not self.confine:
            return path

        resolved = path.resolve()
        try:
            resolved.relative_to(self.root)
        except ValueError:
            logger.warning(f"Path traversal attempt: {name!r}")
            raise PathOutsideRoot(name) from None
        return resolved

    def exists(self, name: str) -> bool:
        """True if `name` is a regular file under the root."""
        try:
            return self.resolve(name).is_file()
        except InvalidName:
            return False

    def read_all(self, name: str) -> bytes:
        """
        Read a whole file.

        Raises:
            NotFound: If the file is absent (or the name escapes the root).
            IOFailure: On any other OS error.
        """
        try:
            path = self.resolve(name)
        except InvalidName:
            raise NotFound(f"File not found: {name}", name) from None

        if not path.is_file():
            raise NotFound(f"File not found: {name}", name)

        try:
            return path.read_bytes()
        except FileNotFoundError:
            # Removed between the check and the read
            raise NotFound(f"File not found: {name}", name) from None
        except OSError as e:
            raise IOFailure(f"Failed to read {name}: {e}", name) from e

    def write_all(self, name: str, data: bytes) -> None:
        """
        Create or overwrite a file with `data`.

        Parent directories are not created.

        Raises:
            IOFailure: If the write fails or the name escapes the root.
        """
        try:
            path = self.resolve(name)
        except InvalidName:
            raise IOFailure(f"Refusing to write {name!r}: not a name under the root", name) from None

        try:
            path.write_bytes(data)
        except OSError as e:
            raise IOFailure(f"Failed to write {name}: {e}", name) from e

        logger.debug(f"Wrote {len(data)} bytes to {path}")
