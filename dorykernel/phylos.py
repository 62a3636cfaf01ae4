"""The dining philosophers, modelled over one fork per seat."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from .rng import LinearCongruential

MAX_PHILOSOPHERS = 10
INITIAL_PHILOSOPHERS = 5
MIN_PAUSE = 1
MAX_PAUSE = 3


class PhiloState(IntEnum):
    """What a philosopher is doing."""

    THINKING = 0
    HUNGRY = 1
    EATING = 2


@dataclass
class _Philosopher:
    state: PhiloState = PhiloState.THINKING


class Dinner:
    """A round table of philosophers sharing the forks between them.

    Philosopher ``i`` uses fork ``i`` on the left and fork ``i + 1`` (wrapping
    around) on the right. Odd seats pick up the left fork first and even seats
    the right one, which rules out the circular wait. Taking forks is
    cooperative: a fork already held by someone else stops the attempt, the
    forks taken so far are kept, and the caller tries again later.
    """

    def __init__(self, rng: Optional[LinearCongruential] = None) -> None:
        self._rng = rng if rng is not None else LinearCongruential()
        self._philosophers: list[_Philosopher] = []
        self._forks: list[Optional[int]] = []
        for _ in range(INITIAL_PHILOSOPHERS):
            self.add_philosopher()

    # ------------------------------------------------------------- seating

    def add_philosopher(self) -> Optional[int]:
        """Seat one more philosopher; return its index, or None when the table is full."""
        if len(self._philosophers) >= MAX_PHILOSOPHERS:
            return None
        self._philosophers.append(_Philosopher())
        self._forks.append(None)
        return len(self._philosophers) - 1

    def remove_philosopher(self) -> Optional[int]:
        """Send the last philosopher away; return its index, or None at the initial size."""
        if len(self._philosophers) <= INITIAL_PHILOSOPHERS:
            return None
        index = len(self._philosophers) - 1
        self._forks = [None if holder == index else holder for holder in self._forks]
        self._forks.pop()
        self._philosophers.pop()
        return index

    # ------------------------------------------------------------- display

    def table(self) -> str:
        """One line showing who is eating (E) and who is not (.)."""
        seats = "".join(
            " E " if p.state is PhiloState.EATING else " . " for p in self._philosophers
        )
        return f"* {seats} *\n"

    def state(self, i: int) -> PhiloState:
        """What philosopher ``i`` is doing."""
        return self._seat(i).state

    def holder(self, fork: int) -> Optional[int]:
        """Index of the philosopher holding ``fork``, or None if it lies on the table."""
        return self._forks[fork]

    # ------------------------------------------------------------- forks

    def _seat(self, i: int) -> _Philosopher:
        if not 0 <= i < len(self._philosophers):
            raise IndexError(f"no philosopher at seat {i}")
        return self._philosophers[i]

    def fork_order(self, i: int) -> tuple[int, int]:
        """The two forks philosopher ``i`` picks up, in the order it picks them."""
        self._seat(i)
        left = i
        right = (i + 1) % len(self._philosophers)
        return (left, right) if i % 2 else (right, left)

    def take_forks(self, i: int) -> bool:
        """Become hungry and pick up forks in order; True once both are held."""
        self._seat(i).state = PhiloState.HUNGRY
        for fork in self.fork_order(i):
            holder = self._forks[fork]
            if holder == i:
                continue
            if holder is not None:
                return False
            self._forks[fork] = i
        return True

    def put_forks(self, i: int) -> None:
        """Go back to thinking and lay down both forks."""
        self._seat(i).state = PhiloState.THINKING
        for fork in self.fork_order(i):
            if self._forks[fork] == i:
                self._forks[fork] = None

    # ------------------------------------------------------------- activity

    def think(self, i: int) -> int:
        """Start thinking; return how many seconds the thought lasts."""
        self._seat(i).state = PhiloState.THINKING
        return self._rng.random_in_range(MIN_PAUSE, MAX_PAUSE)

    def eat(self, i: int) -> int:
        """Start eating with both forks in hand; return how many seconds the meal lasts."""
        seat = self._seat(i)
        if any(self._forks[fork] != i for fork in self.fork_order(i)):
            raise ValueError(f"philosopher {i} does not hold both forks")
        seat.state = PhiloState.EATING
        return self._rng.random_in_range(MIN_PAUSE, MAX_PAUSE)

    def __len__(self) -> int:
        return len(self._philosophers)