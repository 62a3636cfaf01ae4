import errno

import pytest

from dorykernel.fdtable import FdKind, FdTable, FileDescriptor, Permission


def _std_table(on_close=None):
    table = FdTable(on_close)
    table.open(FdKind.STDIN, Permission.READ, -1)
    table.open(FdKind.STDOUT, Permission.WRITE, -1)
    table.open(FdKind.STDERR, Permission.WRITE, -1)
    return table


def test_stored_descriptor_keeps_source_values():
    table = FdTable()
    number = table.open(FdKind.PIPE, Permission.WRITE, 3)
    fd = table.get(number)
    assert fd.kind == 4
    assert fd.permission == 1
    assert fd.ident == 3


def test_standard_descriptors_get_their_numbers():
    table = _std_table()
    assert [n for n, _ in table] == [FdKind.STDIN, FdKind.STDOUT, FdKind.STDERR]
    assert len(table) == 3


def test_get_returns_descriptor_fields():
    table = FdTable()
    number = table.open(FdKind.PIPE, Permission.READ, 9)
    fd = table.get(number)
    assert fd == FileDescriptor(FdKind.PIPE, Permission.READ, 9)
    assert fd.open is True


def test_get_missing_is_none():
    table = FdTable()
    assert table.get(0) is None
    assert table.get(FdTable.MAX_FD + 3) is None


def test_lowest_free_number_is_reused():
    table = _std_table()
    table.close(FdKind.STDOUT)
    reused = table.open(FdKind.PIPE, Permission.WRITE, 2)
    assert reused == FdKind.STDOUT
    assert table.get(reused).kind is FdKind.PIPE


def test_full_table_raises_emfile():
    table = FdTable()
    for _ in range(FdTable.MAX_FD):
        table.open(FdKind.STDOUT, Permission.WRITE, -1)
    with pytest.raises(OSError) as info:
        table.open(FdKind.STDOUT, Permission.WRITE, -1)
    assert info.value.errno == errno.EMFILE
    assert len(table) == FdTable.MAX_FD


def test_closing_pipe_notifies_callback():
    closed = []
    table = FdTable(lambda ident, perm: closed.append((ident, perm)))
    number = table.open(FdKind.PIPE, Permission.WRITE, 5)
    fd = table.get(number)
    table.close(number)
    assert closed == [(5, Permission.WRITE)]
    assert fd.open is False
    assert table.get(number) is None


def test_closing_non_pipe_does_not_notify():
    closed = []
    table = _std_table(lambda ident, perm: closed.append((ident, perm)))
    table.close(FdKind.STDERR)
    assert closed == []
    assert len(table) == 2


def test_close_unknown_or_out_of_range_is_ignored():
    table = _std_table()
    table.close(FdTable.MAX_FD)
    table.close(FdTable.MAX_FD - 1)
    assert len(table) == 3


def test_close_all_closes_past_gaps():
    closed = []
    table = _std_table(lambda ident, perm: closed.append(ident))
    extra = table.open(FdKind.PIPE, Permission.READ, 8)
    table.close(FdKind.STDOUT)
    table.close_all()
    assert len(table) == 0
    assert closed == [8]
    assert table.get(extra) is None