"""Per-process file descriptor tables."""

from __future__ import annotations

import errno
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Iterator, Optional


class FdKind(IntEnum):
    """What a descriptor is attached to."""

    STDIN = 0
    STDOUT = 1
    STDERR = 2
    BACKGROUND = 3
    PIPE = 4
    LASTIN = 5


class Permission(IntEnum):
    """Direction a descriptor may be used in."""

    READ = 0
    WRITE = 1


@dataclass
class FileDescriptor:
    """One open descriptor: its kind, direction and the id of what it refers to."""

    kind: FdKind
    permission: Permission
    ident: int
    open: bool = True


class FdTable:
    """Descriptor numbers of one process, always handing out the lowest free one.

    ``on_close`` is called with ``(ident, permission)`` whenever a pipe
    descriptor is closed, so the pipe end can be released.
    """

    MAX_FD = 16

    def __init__(self, on_close: Optional[Callable[[int, Permission], object]] = None) -> None:
        self._on_close = on_close
        self._fds: dict[int, FileDescriptor] = {}

    def open(self, kind: FdKind, permission: Permission, ident: int) -> int:
        """Open a descriptor and return its number."""
        number = next((n for n in range(self.MAX_FD) if n not in self._fds), None)
        if number is None:
            raise OSError(errno.EMFILE, "too many open file descriptors")
        self._fds[number] = FileDescriptor(FdKind(kind), Permission(permission), ident)
        return number

    def close(self, number: int) -> None:
        """Close descriptor ``number``; unknown numbers are ignored."""
        fd = self._fds.pop(number, None)
        if fd is None:
            return
        fd.open = False
        if fd.kind is FdKind.PIPE and self._on_close is not None:
            self._on_close(fd.ident, fd.permission)

    def get(self, number: int) -> Optional[FileDescriptor]:
        """Return descriptor ``number``, or None if it is not open."""
        return self._fds.get(number)

    def close_all(self) -> None:
        """Close every open descriptor, lowest number first."""
        for number in sorted(self._fds):
            self.close(number)

    def __iter__(self) -> Iterator[tuple[int, FileDescriptor]]:
        return iter(sorted(self._fds.items()))

    def __len__(self) -> int:
        return len(self._fds)