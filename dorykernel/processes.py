"""Process table, priority round-robin scheduling, sleeping and waiting."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, Optional

from .fdtable import FdKind, FdTable, Permission
from .semaphores import SemaphoreTable, sem_name

IDLE_PID = 0
INIT_PID = 1
MAX_PROCESSES = 200
DEFAULT_PRIORITY = 1
MAX_PRIORITY = 4
PROCESS_STACK_SIZE = 4096


class ProcessError(Exception):
    """Raised when a process operation cannot be carried out."""


class State(IntEnum):
    """Life-cycle state of a process."""

    READY = 0
    RUNNING = 1
    BLOCKED = 2
    KILLED = 3
    ASLEEP = 4


@dataclass(frozen=True)
class ProcessView:
    """What the process listing shows about one process."""

    name: str
    pid: int
    priority: int
    state: str
    stack_pointer: int
    foreground: str


@dataclass(eq=False)
class Process:
    """One entry of the process table."""

    name: str
    pid: int
    ppid: int
    argv: tuple[str, ...]
    priority: int
    foreground: bool
    stack_pointer: int
    state: State = State.READY
    fds: FdTable = field(default_factory=FdTable)
    children: list[int] = field(default_factory=list)
    active_children: int = 0

    @property
    def child_sem(self) -> str:
        """Name of the semaphore posted whenever one of its children dies."""
        return sem_name("pid", self.pid)

    @property
    def runnable(self) -> bool:
        return self.state in (State.READY, State.RUNNING)

    def view(self) -> ProcessView:
        return ProcessView(
            name=self.name,
            pid=self.pid,
            priority=self.priority,
            state=self.state.name,
            stack_pointer=self.stack_pointer,
            foreground="fg" if self.foreground else "bg",
        )


def _stack_top(pid: int) -> int:
    return (pid + 1) * PROCESS_STACK_SIZE


class ProcessManager:
    """Owns every process and decides which one runs next.

    A process of priority ``n`` holds ``n`` slots in the circular ready queue,
    so it gets ``n`` turns per round. When nothing is ready the idle process
    (pid 0) runs. Operations act on behalf of the running process, as returned
    by :meth:`getpid`.
    """

    def __init__(self) -> None:
        self._table: dict[int, Process] = {}
        self._ready: deque[int] = deque()
        self._sleeping: list[tuple[int, int]] = []
        self._running = IDLE_PID
        self.last_fg_pid = -1
        self.semaphores = SemaphoreTable(self)

        idle = Process(
            name="Idle",
            pid=IDLE_PID,
            ppid=IDLE_PID,
            argv=("Idle",),
            priority=DEFAULT_PRIORITY,
            foreground=False,
            stack_pointer=_stack_top(IDLE_PID),
        )
        idle.fds.open(FdKind.STDIN, Permission.READ, -1)
        idle.fds.open(FdKind.STDOUT, Permission.WRITE, -1)
        idle.fds.open(FdKind.STDERR, Permission.WRITE, -1)
        self._table[IDLE_PID] = idle
        self.semaphores.open(idle.child_sem, 0)

    # ------------------------------------------------------------------ lookup

    def _get(self, pid: int) -> Process:
        try:
            return self._table[pid]
        except KeyError:
            raise ProcessError(f"no process with pid {pid}") from None

    def __getitem__(self, pid: int) -> Process:
        return self._get(pid)

    def __contains__(self, pid: object) -> bool:
        return pid in self._table

    def __len__(self) -> int:
        return len(self._table)

    @property
    def ready_pids(self) -> tuple[int, ...]:
        """The ready queue, front first, one entry per priority slot."""
        return tuple(self._ready)

    @property
    def idle_running(self) -> bool:
        return self._running == IDLE_PID

    def getpid(self) -> int:
        """Pid of the running process."""
        return self._running

    # --------------------------------------------------------------- ready queue

    def _drop_instances(self, pid: int, count: Optional[int] = None) -> None:
        """Remove ``count`` slots of ``pid`` (all if None), starting from the rear."""
        kept: list[int] = []
        removed = 0
        for other in reversed(self._ready):
            if other == pid and (count is None or removed < count):
                removed += 1
                continue
            kept.append(other)
        kept.reverse()
        self._ready = deque(kept)

    def _add_instances(self, proc: Process, count: int) -> None:
        self._ready.extend([proc.pid] * count)

    # ------------------------------------------------------------------ creation

    def create_process(
        self,
        argv: Iterable[str],
        foreground: bool = True,
        read_fd: int = FdKind.STDIN,
        write_fd: int = FdKind.STDOUT,
    ) -> int:
        """Create a child of the running process and return its pid.

        The child's stdin and stdout copy the parent's descriptors ``read_fd``
        and ``write_fd``; its stderr is the screen.
        """
        argv = tuple(argv)
        if not argv:
            raise ProcessError("argv must hold at least the process name")
        pid = next((n for n in range(1, MAX_PROCESSES) if n not in self._table), None)
        if pid is None:
            raise ProcessError("process table is full")

        parent = self._get(self.getpid())
        read_src = parent.fds.get(read_fd)
        write_src = parent.fds.get(write_fd)
        if read_src is None or write_src is None:
            raise ProcessError(
                f"process {parent.pid} has no descriptor {read_fd if read_src is None else write_fd}"
            )

        child = Process(
            name=argv[0],
            pid=pid,
            ppid=parent.pid,
            argv=argv,
            priority=DEFAULT_PRIORITY,
            foreground=bool(foreground),
            stack_pointer=_stack_top(pid),
        )
        child.fds.open(read_src.kind, read_src.permission, read_src.ident)
        child.fds.open(write_src.kind, write_src.permission, write_src.ident)
        child.fds.open(FdKind.STDERR, Permission.WRITE, -1)

        self._table[pid] = child
        parent.children.append(pid)
        parent.active_children += 1
        self.semaphores.open(child.child_sem, 0)
        self._add_instances(child, child.priority)
        return pid

    # ---------------------------------------------------------------- scheduling

    def schedule(self) -> int:
        """Hand the processor to the next ready process and return its pid."""
        current = self._table.get(self._running)
        if self._running != IDLE_PID and current is not None and current.state is State.RUNNING:
            current.state = State.READY
            self._ready.rotate(-1)

        while self._ready:
            front = self._table.get(self._ready[0])
            if front is not None and front.runnable:
                break
            self._ready.popleft()

        if not self._ready:
            self._running = IDLE_PID
            return IDLE_PID

        proc = self._table[self._ready[0]]
        proc.state = State.RUNNING
        self._running = proc.pid
        if proc.foreground:
            self.last_fg_pid = proc.pid
        return proc.pid

    # ---------------------------------------------------------------- life cycle

    def kill(self, pid: int) -> None:
        """Kill ``pid``: its children pass to init and its parent is notified."""
        proc = self._get(pid)
        if pid == IDLE_PID:
            raise ProcessError("the idle process cannot be killed")
        if proc.state is State.KILLED:
            return
        if proc.state is State.ASLEEP and proc.foreground:
            self.last_fg_pid = -1

        proc.state = State.KILLED
        self._drop_instances(pid)
        self._sleeping = [entry for entry in self._sleeping if entry[0] != pid]

        adopter = self._table.get(INIT_PID)
        for child_pid in proc.children:
            child = self._table.get(child_pid)
            if child is None:
                continue
            child.ppid = INIT_PID
            if adopter is not None and adopter is not proc:
                adopter.children.append(child_pid)
                if child.state is not State.KILLED:
                    adopter.active_children += 1
        proc.children = []

        parent = self._table.get(proc.ppid)
        if parent is not None and parent is not proc:
            parent.active_children -= 1
            self.semaphores.post(parent.child_sem)

    def block(self, pid: int) -> None:
        """Take ``pid`` off the processor until it is unblocked."""
        proc = self._get(pid)
        if pid == IDLE_PID:
            raise ProcessError("the idle process cannot be blocked")
        if proc.state is State.KILLED:
            return
        proc.state = State.BLOCKED
        self._drop_instances(pid)
        if pid == self._running:
            self.schedule()

    def unblock(self, pid: int) -> None:
        """Make a blocked or sleeping process ready again."""
        proc = self._get(pid)
        if proc.state in (State.KILLED, State.READY, State.RUNNING):
            return
        self._sleeping = [entry for entry in self._sleeping if entry[0] != pid]
        proc.state = State.READY
        self._add_instances(proc, proc.priority)

    def nice(self, pid: int, priority: int) -> None:
        """Set the priority of ``pid`` to a value between 1 and 4."""
        if not 1 <= priority <= MAX_PRIORITY:
            raise ProcessError(f"priority must be between 1 and {MAX_PRIORITY}, got {priority}")
        proc = self._get(pid)
        if pid != IDLE_PID and proc.runnable:
            diff = priority - proc.priority
            if diff > 0:
                self._add_instances(proc, diff)
            elif diff < 0:
                self._drop_instances(pid, -diff)
        proc.priority = priority

    def exit(self) -> int:
        """Kill the running process and return the pid that runs next."""
        self.kill(self.getpid())
        return self.schedule()

    def exit_foreground(self) -> Optional[int]:
        """Kill the last foreground process unless it is idle, init or the shell."""
        pid = self.last_fg_pid
        if pid <= 2:
            return None
        self.kill(pid)
        return pid

    # ------------------------------------------------------------------ sleeping

    def sleep(self, pid: int, until_tick: int) -> None:
        """Put ``pid`` to sleep until the tick count passes ``until_tick``."""
        proc = self._get(pid)
        if pid == IDLE_PID:
            raise ProcessError("the idle process cannot sleep")
        if proc.state is State.KILLED:
            raise ProcessError(f"process {pid} is dead")
        self._sleeping.append((pid, until_tick))
        proc.state = State.ASLEEP
        self._drop_instances(pid)
        if pid == self._running:
            self.schedule()

    def wake_sleepers(self, ticks: int) -> list[int]:
        """Wake every sleeper whose deadline is below ``ticks``; return their pids."""
        due = [pid for pid, until in self._sleeping if until < ticks]
        self._sleeping = [entry for entry in self._sleeping if entry[1] >= ticks]
        for pid in due:
            self.unblock(pid)
        return due

    # ------------------------------------------------------------------- waiting

    def _reap(self, parent: Process, child: Process) -> None:
        child.fds.close_all()
        self.semaphores.close(child.child_sem)
        del self._table[child.pid]
        if child.pid in parent.children:
            parent.children.remove(child.pid)

    def wait(self, pid: int = -1) -> bool:
        """Wait for child ``pid`` (or for all children with -1) to die, and reap it.

        Returns True once done. Returns False when the caller had to block; it
        is then to call ``wait`` again after it is scheduled back in.
        """
        caller = self._get(self.getpid())
        if pid != -1:
            target = self._get(pid)
            if pid not in caller.children:
                raise ProcessError(f"process {pid} is not a child of {caller.pid}")
            while target.state is not State.KILLED:
                if not self.semaphores.wait(caller.child_sem):
                    return False
            self._reap(caller, target)
            return True

        while caller.active_children > 0:
            if not self.semaphores.wait(caller.child_sem):
                return False
        for child_pid in list(caller.children):
            child = self._table.get(child_pid)
            if child is not None and child.state is State.KILLED:
                self._reap(caller, child)
        return True

    # ------------------------------------------------------------ introspection

    def process_info(self) -> list[ProcessView]:
        """A view of every process, in pid order."""
        return [proc.view() for _, proc in sorted(self._table.items())]

    # --------------------------------------------------------- file descriptors

    def open_fd(self, kind: FdKind, permission: Permission, ident: int) -> int:
        """Open a descriptor for the running process and return its number."""
        return self._get(self.getpid()).fds.open(kind, permission, ident)

    def close_fd(self, fd_number: int) -> None:
        """Close a descriptor of the running process."""
        self._get(self.getpid()).fds.close(fd_number)