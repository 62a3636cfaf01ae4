"""Named counting semaphores whose waiters are parked through a scheduler."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Protocol

from .strings import int_to_string


class _Scheduler(Protocol):
    def getpid(self) -> int: ...

    def block(self, pid: int) -> object: ...

    def unblock(self, pid: int) -> object: ...


class SemaphoreError(Exception):
    """Raised when a semaphore cannot be opened or looked up."""


@dataclass
class Semaphore:
    """A named counter together with the pids queued waiting on it."""

    name: str
    value: int
    times_opened: int = 1
    waiting: deque[int] = field(default_factory=deque)


class SemaphoreTable:
    """All the semaphores of the system, addressed by name.

    Blocking is cooperative: ``wait`` on a semaphore at zero queues the caller,
    asks the scheduler to block it and returns ``False``; once a ``post`` has
    unblocked it, the caller retries ``wait``.
    """

    MAX_SEMAPHORES = 128

    def __init__(self, scheduler: _Scheduler) -> None:
        self._scheduler = scheduler
        self._sems: dict[str, Semaphore] = {}

    def open(self, name: str, value: int) -> Semaphore:
        """Open ``name``, creating it with ``value`` if it does not exist yet."""
        if name is None:
            raise SemaphoreError("a semaphore needs a name")
        if value < 0:
            raise SemaphoreError(f"initial value must be non-negative, got {value}")
        if len(self._sems) >= self.MAX_SEMAPHORES:
            raise SemaphoreError("semaphore table is full")
        sem = self._sems.get(name)
        if sem is None:
            sem = Semaphore(name, value)
            self._sems[name] = sem
        else:
            sem.times_opened += 1
        return sem

    def close(self, name: str) -> None:
        """Drop one opening of ``name``; the last one deletes it. Unknown names are ignored."""
        sem = self._sems.get(name)
        if sem is None:
            return
        if sem.times_opened > 1:
            sem.times_opened -= 1
        else:
            del self._sems[name]

    def post(self, name: str) -> None:
        """Increment ``name``, waking its first waiter if the value was zero."""
        sem = self._sems.get(name)
        if sem is None:
            return
        if sem.value == 0 and sem.waiting:
            self._scheduler.unblock(sem.waiting.popleft())
        sem.value += 1

    def wait(self, name: str) -> bool:
        """Decrement ``name`` and return True, or block the caller and return False."""
        sem = self._sems.get(name)
        if sem is None:
            return True
        if sem.value == 0:
            pid = self._scheduler.getpid()
            sem.waiting.append(pid)
            self._scheduler.block(pid)
            return False
        sem.value -= 1
        return True

    def get(self, name: str) -> Semaphore:
        """Return the semaphore called ``name``."""
        try:
            return self._sems[name]
        except KeyError:
            raise SemaphoreError(f"no semaphore named {name!r}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._sems

    def __len__(self) -> int:
        return len(self._sems)


def sem_name(prefix: str, number: int) -> str:
    """Build a unique semaphore name from ``prefix`` and up to three digits of ``number``."""
    return prefix + int_to_string(number, 4)