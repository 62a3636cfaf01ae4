# dorykernel

A small simulated kernel that runs entirely in Python. It is useful for
studying how the parts of a teaching operating system fit together:

- `dorykernel.processes`: `ProcessManager`. It keeps a process table with
  an idle process (pid 0). A ready queue gives each process one slot per
  priority level (1 to 4), and the scheduler goes round them in order. The
  manager can block, unblock, sleep (`sleep` / `wake_sleepers`), kill,
  `nice` and `wait` on children. `process_info()` returns `ProcessView`
  records.
- `dorykernel.semaphores`: `SemaphoreTable`. It holds named,
  reference-counted semaphores. `wait` on a semaphore at zero queues the
  caller, blocks it through the scheduler and returns `False`. `post` wakes
  the first waiter. `sem_name` builds names such as `pid7`.
- `dorykernel.fdtable`: `FdTable`, `FdKind`, `Permission` and
  `FileDescriptor`. A table holds the descriptors of one process and hands
  out the lowest free number (at most 16 are open at once).
- `dorykernel.shell`: `Shell`, `parse_line`, `priority_from_letter`,
  `filter_text`, `count_lines` and `format_process_table`. The shell parses
  command lines and handles background (`b`) and pipe (`|`) syntax.
- `dorykernel.phylos`: `Dinner`, a dining-philosophers table with 5 to 10
  seats.
- `dorykernel.rng`: `LinearCongruential` (rand/srand) and
  `MultiplyWithCarry`, plus the `satoi` and `memcheck` helpers.
- `dorykernel.strings`: `int_to_string`, `uint_to_base`, `c_strcmp`,
  `parse_command_arg`, `is_vowel`, `to_upper` and `to_lower`.
- `dorykernel.packer`: `check_files`, `build_image` and `main`. These build
  a packed kernel image.

## Installing

    pip install .

For the test suite:

    pip install ".[test]"
    pytest

## Using the shell

    dory-shell

Type `help` to list the commands. Put `b` after a command to run it in the
background. Write `cmd1 | cmd2` to connect two commands through a pipe, for
example `ps | wc` or `ps | filter`. Press end-of-file to leave.

From Python:

```python
import io

from dorykernel.processes import ProcessManager
from dorykernel.shell import Shell

out = io.StringIO()
shell = Shell(ProcessManager(), out)
shell.keyboard = "hola\nmundo\n"
shell.execute("wc")
print(out.getvalue())
```

`Shell.keyboard` holds the text that `cat`, `wc`, `filter` and the zoom
prompts read when their input is the keyboard. `Shell.registers` holds the
values that `inforeg` shows.

## Scheduling by hand

```python
from dorykernel.processes import ProcessManager

manager = ProcessManager()
pid = manager.create_process(["worker"], True, 0, 1)
manager.nice(pid, 3)
manager.schedule()
print([view.state for view in manager.process_info()])
print(manager.ready_pids)
```

## Packing an image

    dory-packer kernel.bin module1.bin module2.bin -o packedKernel.bin

The image has three parts, in this order:

1. the kernel bytes;
2. a little-endian 32-bit count of extra modules;
3. each module, preceded by its little-endian 32-bit size.

Without `-o` the image is written to `packedKernel.bin`. If an input cannot
be read, the command prints `Can't open file: ...` and exits with status 1.

## What it does not do

- There is no hardware and no timer interrupt. Scheduling happens only
  when `schedule()` is called or a process blocks, sleeps or exits.
- Processes have no code of their own. `ps`, `mem`, `cat`, `wc`, `filter`,
  `kill`, `nice` and `block` run to completion when the shell starts them.
- `loop`, `phylo`, `testprocess`, `testprio`, `testsynchro` and
  `testmemory` only create a process entry. That entry stays in the table
  until it is killed; nothing runs inside it.
- `Dinner` is a separate model and is not driven by the `phylo` command.
- There is no memory allocator. `mem` reports sizes estimated from a fixed
  stack size per process.
- `beep` prints text and `clear` writes an ANSI clear sequence.
- `time` shows the host clock at UTC-3.
- The interactive `dory-shell` reads whole lines from standard input and
  never fills `Shell.keyboard`. Commands that read the keyboard therefore
  see empty input there, unless they are fed through a pipe.