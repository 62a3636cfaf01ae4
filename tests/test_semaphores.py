import pytest

from dorykernel.semaphores import Semaphore, SemaphoreError, SemaphoreTable, sem_name


class FakeScheduler:
    def __init__(self):
        self.current = 0
        self.blocked = set()
        self.unblocked = []

    def getpid(self):
        return self.current

    def block(self, pid):
        self.blocked.add(pid)

    def unblock(self, pid):
        self.blocked.discard(pid)
        self.unblocked.append(pid)


@pytest.fixture
def sched():
    return FakeScheduler()


@pytest.fixture
def table(sched):
    return SemaphoreTable(sched)


def test_open_creates_with_value(table):
    sem = table.open("mutex", 3)
    assert isinstance(sem, Semaphore)
    assert table.get("mutex").value == 3
    assert "mutex" in table
    assert len(table) == 1


def test_reopen_counts_openings_and_keeps_value(table):
    table.open("mutex", 1)
    table.open("mutex", 7)
    sem = table.get("mutex")
    assert sem.value == 1
    assert sem.times_opened == 2
    assert len(table) == 1


def test_open_rejects_negative_value(table):
    with pytest.raises(SemaphoreError):
        table.open("neg", -1)
    assert "neg" not in table


def test_open_rejects_missing_name(table):
    with pytest.raises(SemaphoreError):
        table.open(None, 1)


def test_open_fails_when_full(table):
    for n in range(SemaphoreTable.MAX_SEMAPHORES):
        table.open(f"s{n}", 0)
    with pytest.raises(SemaphoreError):
        table.open("extra", 0)
    assert len(table) == SemaphoreTable.MAX_SEMAPHORES


def test_close_last_opening_removes(table):
    table.open("a", 1)
    table.open("a", 1)
    table.close("a")
    assert table.get("a").times_opened == 1
    table.close("a")
    assert "a" not in table
    with pytest.raises(SemaphoreError):
        table.get("a")


def test_close_unknown_is_ignored(table):
    table.open("a", 1)
    table.close("b")
    assert len(table) == 1


def test_wait_decrements(table):
    table.open("a", 2)
    assert table.wait("a") is True
    assert table.get("a").value == 1


def test_wait_at_zero_blocks_caller(table, sched):
    table.open("a", 0)
    sched.current = 7
    assert table.wait("a") is False
    assert 7 in sched.blocked
    assert list(table.get("a").waiting) == [7]
    assert table.get("a").value == 0


def test_post_wakes_waiters_in_order(table, sched):
    table.open("a", 0)
    for pid in (3, 4):
        sched.current = pid
        table.wait("a")
    table.post("a")
    assert sched.unblocked == [3]
    assert sched.blocked == {4}
    assert table.get("a").value == 1
    sched.current = 3
    assert table.wait("a") is True
    assert table.get("a").value == 0


def test_post_above_zero_wakes_nobody(table, sched):
    table.open("a", 0)
    sched.current = 5
    table.wait("a")
    table.post("a")
    table.post("a")
    assert sched.unblocked == [5]
    assert table.get("a").value == 2


def test_operations_on_unknown_names_are_no_ops(table, sched):
    table.post("ghost")
    assert table.wait("ghost") is True
    assert len(table) == 0
    assert sched.blocked == set()


@pytest.mark.parametrize(
    "number, expected",
    [(0, "pid0"), (5, "pid5"), (42, "pid42"), (1234, "pid234")],
)
def test_sem_name(number, expected):
    assert sem_name("pid", number) == expected


def _inc_process(table, shared, n, inc, use_sem):
    if use_sem:
        table.open("sem", 1)
    for _ in range(n):
        if use_sem:
            while not table.wait("sem"):
                yield
        aux = shared["global"]
        yield
        shared["global"] = aux + inc
        if use_sem:
            table.post("sem")
    if use_sem:
        table.close("sem")


def _run(sched, processes):
    alive = dict(processes)
    while alive:
        runnable = [pid for pid in alive if pid not in sched.blocked]
        assert runnable, "every process is blocked"
        for pid in runnable:
            if pid in sched.blocked:
                continue
            sched.current = pid
            try:
                next(alive[pid])
            except StopIteration:
                del alive[pid]


@pytest.mark.parametrize("n", [1, 5, 20])
def test_sync_with_semaphore_ends_at_zero(n):
    sched = FakeScheduler()
    table = SemaphoreTable(sched)
    shared = {"global": 0}
    processes = []
    for pair in range(2):
        processes.append((10 + pair, _inc_process(table, shared, n, 1, True)))
        processes.append((20 + pair, _inc_process(table, shared, n, -1, True)))
    _run(sched, processes)
    assert shared["global"] == 0
    assert "sem" not in table
    assert sched.unblocked