"""Command shell: parses a line, starts one process per command and waits for it."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Callable, Iterable, Optional, Sequence, TextIO

from .fdtable import FdKind, Permission
from .processes import (
    MAX_PROCESSES,
    PROCESS_STACK_SIZE,
    Process,
    ProcessError,
    ProcessManager,
    ProcessView,
)
from .rng import satoi
from .strings import is_vowel, parse_command_arg, to_upper, uint_to_base

INPUT_SIZE = 100
PROMPT = "$>"
SPACING = " " * 8
TEST_COMMANDS = 4
RULER = "-" * 55 + "\n"
REGISTER_NAMES = (
    "rax:", "rbx:", "rcx:", "rdx:", "rsi:", "rdi:", "rbp:", "rsp:", "r8:", "r9:",
    "r10:", "r11:", "r12:", "r13:", "r14:", "r15:", "rip:", "rflags:",
)
BANNER = (
    "Bienvenido a DORY_OS\n"
    "Ingrese \"help\" para ver los comandos disponibles.\n"
    "Presione \"b\" luego del comando para ejecutar en background.\n"
)
CLEAR_SCREEN = "\x1b[2J\x1b[H"
_PRIORITIES = {"L": 1, "M": 2, "H": 3, "U": 4}


class Color(IntEnum):
    """Screen colours as 0xRRGGBB values."""

    BLACK = 0x00000000
    RED = 0x00E4080A
    ORANGE = 0x00FF7701
    YELLOW = 0x00FFDE22
    GREEN = 0x008BEE2E
    LIGHT_BLUE = 0x004AB1EE
    TURQUOISE = 0x0002FAD5
    PINK = 0x00F33AF6
    PURPLE = 0x00CB3AF6
    WHITE = 0x00FFFFFF
    GRAY = 0x00BEBEBE
    BLUE = 0x000000FF


@dataclass(frozen=True)
class Command:
    """A shell command: its name, help texts and what runs it."""

    name: str
    description: str
    usage: str
    action: Callable[[tuple[int, int]], None]


@dataclass(frozen=True)
class ParsedLine:
    """The words of one command line and what they say about how to run it."""

    words: tuple[str, ...]

    @property
    def command(self) -> str:
        return self.words[0] if self.words else ""

    @property
    def background(self) -> bool:
        return len(self.words) > 1 and self.words[1] == "b"

    @property
    def foreground(self) -> bool:
        return not self.background

    @property
    def piped(self) -> bool:
        return len(self.words) > 1 and self.words[1] == "|"

    @property
    def pipe_target(self) -> str:
        """The command on the right of the pipe, or an empty string."""
        return self.words[2] if self.piped and len(self.words) > 2 else ""

    @property
    def args(self) -> tuple[str, ...]:
        """Arguments after the command, without the background marker."""
        return self.words[2:] if self.background else self.words[1:]


def parse_line(line: str) -> Optional[ParsedLine]:
    """Split a command line; None when it holds no words."""
    words = parse_command_arg(line)
    return ParsedLine(tuple(words)) if words else None


def priority_from_letter(letter: str) -> int:
    """Map L, M, H or U (either case) to priorities 1 to 4."""
    try:
        return _PRIORITIES[to_upper(letter[:1])]
    except KeyError:
        raise ValueError(f"invalid priority letter {letter!r}") from None


def filter_text(text: str) -> str:
    """Drop every vowel from ``text``."""
    return "".join(ch for ch in text if not is_vowel(ch))


def count_lines(text: str) -> int:
    """Count the newline characters in ``text``."""
    return text.count("\n")


def format_process_table(views: Iterable[ProcessView]) -> str:
    """Render the process listing, header first, one process per line."""
    header = SPACING.join(("Name", "Pid", "Priority", "State", "RSP", "fg"))
    rows = [
        SPACING.join(
            (v.name, str(v.pid), str(v.priority), v.state, str(v.stack_pointer), v.foreground)
        )
        for v in views
    ]
    return "\n".join([header, *rows]) + "\n"


_Body = Callable[[tuple[str, ...], Callable[[], str]], str]


class Shell:
    """Runs command lines against a process manager, writing everything to ``out``.

    Every command that the shell delegates runs as a child process. Commands
    that finish on their own run to completion and, in the foreground, are
    waited for and reaped. Commands that never finish (loop, phylo and the
    tests) start a process that stays in the table until it is killed.
    Keyboard input read by ``cat``, ``wc``, ``filter`` and the zoom prompts
    comes from :attr:`keyboard`.
    """

    def __init__(self, manager: Optional[ProcessManager] = None, out: Optional[TextIO] = None) -> None:
        self.manager = manager if manager is not None else ProcessManager()
        self.out = out if out is not None else sys.stdout
        self.keyboard = ""
        self.registers: Optional[Sequence[int]] = None
        self.font_size = 1
        self._line = ParsedLine(())
        self._pipes: dict[int, str] = {}
        self._next_pipe = 0

        if len(self.manager) == 1:
            self.manager.create_process(("Init",))
            self.manager.schedule()
            self.manager.create_process(("Shell",))
            self.manager.schedule()
        self.pid = self.manager.getpid()

        self.commands: tuple[Command, ...] = (
            Command("help", "Muestra la lista de comandos.", "No recibe argumentos.", self._help),
            Command("time", "Muestra la hora actual", "", self._time),
            Command("inforeg", "Imprime los registros capturados por CTRL.", "No recibe argumentos.", self._inforeg),
            Command("zoomin", "Aumenta el tamanio de la letra.", "No recibe argumentos.", self._zoomin),
            Command("zoomout", "Disminuye el tamanio de la letra.", "No recibe argumentos.", self._zoomout),
            Command("clear", "Limpia la shell.", "No recibe argumentos.", self._clear),
            Command("beep", "Emite un beep", "", self._beep),
            Command("ps", "Muestra los procesos y sus estados.", "No recibe argumentos.", self._ps),
            Command("mem", "Muestra informacion de la memoria.", "No recibe argumentos.", self._mem),
            Command("loop", "Imprime saludo y ID cada 2 segundos.", "No recibe argumentos.", self._loop),
            Command("cat", "Imprime el stdin tal como lo recibe.", "No recibe argumentos.", self._cat),
            Command("wc", "Cuenta la cantidad de palabras en el stdin.", "No recibe argumentos.", self._wc),
            Command("filter", "Filtra el stdin y muestra solo las letras.", "No recibe argumentos.", self._filter),
            Command("phylo", "Muestra el problema de los filosofos.", "No recibe argumentos.", self._phylo),
            Command("kill", "Mata un proceso.", "Recibe 1 argumento: PID del proceso a matar.", self._kill),
            Command(
                "nice",
                "Cambia la prioridad de un proceso.",
                "Recibe 2 argumentos: PID del proceso y nueva prioridad: "
                "L (low), M (medium), H (high) o U (ultra)",
                self._nice,
            ),
            Command("block", "Bloquea un proceso.", "Recibe 1 argumento: PID del proceso a bloquear.", self._block),
            Command(
                "testprocess",
                "Crea el proceso para testear la creacion de procesos.",
                "Recibe 1 argumento: Cantidad de procesos a crear.",
                self._testprocess,
            ),
            Command(
                "testprio",
                "Crea el proceso para testear la prioridad de los procesos.",
                "No recibe argumentos.",
                self._testprio,
            ),
            Command(
                "testsynchro",
                "Crea el proceso para testear sincronizacion de procesos.",
                "Recibe dos argumentos: cantidad de incrementos o decrementos y 1 o 0 (CON o SIN semaforos).",
                self._testsynchro,
            ),
            Command(
                "testmemory",
                "Crea el proceso para testear el manejo de memoria.",
                "Recibe 1 argumento: memoria maxima.",
                self._testmemory,
            ),
        )
        self._by_name = {cmd.name: cmd for cmd in self.commands}

    # ------------------------------------------------------------------ public

    def execute(self, line: str) -> None:
        """Run one command line."""
        parsed = parse_line(line)
        if parsed is None:
            return
        self._line = parsed
        try:
            if parsed.piped:
                self._pipe(parsed)
            else:
                self._run(parsed.command, (FdKind.STDIN, FdKind.STDOUT))
        finally:
            self._line = ParsedLine(())

    def help_text(self) -> str:
        """The list of commands with their descriptions and usage."""
        split = len(self.commands) - TEST_COMMANDS

        def entries(cmds: Iterable[Command]) -> str:
            return "".join(f"   {c.name}: {c.description} - {c.usage}\n" for c in cmds)

        return (
            "Comandos disponibles:\n"
            + entries(self.commands[:split])
            + "\n"
            + "Comandos para correr los tests:\n"
            + entries(self.commands[split:])
        )

    # --------------------------------------------------------------- plumbing

    def _write(self, text: str) -> None:
        self.out.write(text)

    def _error(self, text: str) -> None:
        self.out.write(text)

    def _arg(self, index: int) -> str:
        args = self._line.args
        return args[index] if index < len(args) else ""

    def _run(self, name: str, fds: tuple[int, int]) -> None:
        command = self._by_name.get(name)
        if command is None:
            self._error(
                "Error: comando no diponible. Ingrese \"help\" para ver los comandos disponibles.\n"
            )
            return
        try:
            command.action(fds)
        except ProcessError as exc:
            self._error(f"Error: {exc}\n")

    def _pipe(self, parsed: ParsedLine) -> None:
        pipe_id = self._next_pipe
        try:
            write_end = self.manager.open_fd(FdKind.PIPE, Permission.WRITE, pipe_id)
        except (OSError, ProcessError):
            self._error("Error al crear el pipe.\n")
            return
        try:
            read_end = self.manager.open_fd(FdKind.PIPE, Permission.READ, pipe_id)
        except (OSError, ProcessError):
            self.manager.close_fd(write_end)
            self._error("Error al crear el pipe.\n")
            return
        self._next_pipe += 1
        try:
            self._run(parsed.command, (FdKind.STDIN, write_end))
            self._run(parsed.pipe_target, (read_end, FdKind.STDOUT))
        finally:
            self.manager.close_fd(write_end)
            self.manager.close_fd(read_end)
            self._pipes.pop(pipe_id, None)

    def _get_char(self) -> Optional[str]:
        if not self.keyboard:
            return None
        ch, self.keyboard = self.keyboard[0], self.keyboard[1:]
        return ch

    def _read_input(self, child: Process) -> str:
        fd = child.fds.get(0)
        if fd is None:
            return ""
        if fd.kind is FdKind.PIPE:
            return self._pipes.pop(fd.ident, "")
        if fd.kind is FdKind.STDIN:
            text, self.keyboard = self.keyboard, ""
            return text
        return ""

    def _deliver(self, child: Process, text: str) -> None:
        fd = child.fds.get(1)
        if fd is not None and fd.kind is FdKind.PIPE:
            self._pipes[fd.ident] = self._pipes.get(fd.ident, "") + text
        else:
            self._write(text)

    def _spawn(self, argv: tuple[str, ...], body: Optional[_Body], fds: tuple[int, int]) -> int:
        """Start a child; run it to its end and reap it when it has a body."""
        foreground = self._line.foreground
        pid = self.manager.create_process(argv, foreground, fds[0], fds[1])
        if body is None:
            return pid
        child = self.manager[pid]
        output = body(child.argv, lambda: self._read_input(child))
        self._deliver(child, output)
        self.manager.kill(pid)
        if foreground:
            self.manager.wait(pid)
        return pid

    def _rejects_arguments(self, func: str) -> bool:
        argc = len(self._line.words)
        fg = self._line.foreground
        if (fg and argc > 1) or (not fg and argc > 2):
            self._error(f"Error: el comando {func} no recibe argumentos.\n")
            return True
        return False

    def _wrong_argument_count(self, func: str, needed: int) -> bool:
        if not self._line.foreground:
            needed += 1
        given = len(self._line.words)
        if given > needed:
            self._error(f"Error: demasiados argumentos para el comando {func}.\n")
            return True
        if given < needed:
            self._error(f"Error: faltan argumentos para el comando {func}.\n")
            return True
        return False

    # ------------------------------------------------------------ built-ins

    def _help(self, fds: tuple[int, int]) -> None:
        self._write(self.help_text())

    def _time(self, fds: tuple[int, int]) -> None:
        self._write("ART (Argentine Time): UTC/GMT -3 horas\n")
        now = datetime.now(timezone(timedelta(hours=-3)))
        self._write(now.strftime("%H:%M:%S") + "\n")

    def _inforeg(self, fds: tuple[int, int]) -> None:
        if self._rejects_arguments("inforeg"):
            return
        if not self.registers:
            self._write(
                "No se pudo encontrar ningun momento de captura de registro. "
                "Presione CTRL para capturar los registros.\n"
            )
            return
        self._write("Informacion de los registros: \n")
        for name, value in zip(REGISTER_NAMES, self.registers):
            self._write(f"    {name}{uint_to_base(value, 16)}\n")

    def _zoom(self, func: str, prompt: str, step: int) -> None:
        if self._rejects_arguments(func):
            return
        self._write("Esto va a borrar toda la pantalla. Esta seguro de que quiere proceder?\n")
        self._write(prompt)
        while (ch := self._get_char()) is not None:
            if ch in "Nn":
                return
            if ch in "Ss":
                if step > 0 and self.font_size >= 3:
                    self._write("No se puede agrandar mas.\n")
                    return
                if step < 0 and self.font_size <= 1:
                    self._write("No se puede achicar mas.\n")
                    return
                self.font_size += step
                self._clear((FdKind.STDIN, FdKind.STDOUT))
                return
            self._write("Indique S o N\n")

    def _zoomin(self, fds: tuple[int, int]) -> None:
        self._zoom("zoomin", "Indicar Si (Si) o N (No)\n", 1)

    def _zoomout(self, fds: tuple[int, int]) -> None:
        self._zoom("zoomout", "Indicar S (Si) o N (No)\n", -1)

    def _clear(self, fds: tuple[int, int]) -> None:
        if self._rejects_arguments("clear"):
            return
        self._write(CLEAR_SCREEN)

    def _beep(self, fds: tuple[int, int]) -> None:
        self._write("BEEP!!\n")

    # ------------------------------------------------------ process commands

    def _ps(self, fds: tuple[int, int]) -> None:
        if not self._line.piped and self._rejects_arguments("ps"):
            return
        self._spawn(("ps",), lambda argv, read: format_process_table(self.manager.process_info()), fds)

    def _memory_body(self, argv: tuple[str, ...], read: Callable[[], str]) -> str:
        total = MAX_PROCESSES * PROCESS_STACK_SIZE
        occupied = len(self.manager) * PROCESS_STACK_SIZE
        return (
            RULER
            + f"Total space: {total}\n"
            + f"Occupied space: {occupied}\n"
            + f"Unused space: {total - occupied}\n"
            + RULER
        )

    def _mem(self, fds: tuple[int, int]) -> None:
        if not self._line.piped and self._rejects_arguments("mem"):
            return
        self._spawn(("memoryinfo",), self._memory_body, fds)

    def _loop(self, fds: tuple[int, int]) -> None:
        if not self._line.piped and self._rejects_arguments("loop"):
            return
        self._spawn(("loop",), None, fds)

    @staticmethod
    def _cat_body(argv: tuple[str, ...], read: Callable[[], str]) -> str:
        out: list[str] = []
        line: list[str] = []
        for ch in read():
            out.append(ch)
            line.append(ch)
            if ch == "\n":
                out.extend(line)
                line = []
        return "".join(out)

    def _cat(self, fds: tuple[int, int]) -> None:
        if not self._line.piped and self._rejects_arguments("cat"):
            return
        self._spawn(("cat",), self._cat_body, fds)

    @staticmethod
    def _wc_body(argv: tuple[str, ...], read: Callable[[], str]) -> str:
        text = read()
        return f"{text}{count_lines(text)}\n"

    def _wc(self, fds: tuple[int, int]) -> None:
        if not self._line.piped and self._rejects_arguments("wc"):
            return
        self._spawn(("wc",), self._wc_body, fds)

    @staticmethod
    def _filter_body(argv: tuple[str, ...], read: Callable[[], str]) -> str:
        text = read()
        return f"{text}\n{filter_text(text)}\n"

    def _filter(self, fds: tuple[int, int]) -> None:
        if not self._line.piped and self._rejects_arguments("filter"):
            return
        self._spawn(("filter",), self._filter_body, fds)

    def _phylo(self, fds: tuple[int, int]) -> None:
        if not self._line.piped and self._rejects_arguments("phylos"):
            return
        self._spawn(("phylos",), None, fds)

    def _kill_body(self, argv: tuple[str, ...], read: Callable[[], str]) -> str:
        target = satoi(argv[1])
        try:
            self.manager.kill(target)
        except ProcessError:
            self._error("Error killing process ")
            return f"{target}\n"
        return f"Process {target} killed\n"

    def _kill(self, fds: tuple[int, int]) -> None:
        if not self._line.piped and self._wrong_argument_count("kill", 2):
            return
        target = self._arg(0)
        if target in ("1", "2"):
            self._error("Error: no se puede matar al proceso.")
            self._write(f"{target}\n")
            return
        self._spawn(("kill", target), self._kill_body, fds)

    def _nice_body(self, argv: tuple[str, ...], read: Callable[[], str]) -> str:
        target = satoi(argv[1])
        priority = satoi(argv[2])
        try:
            self.manager.nice(target, priority)
        except ProcessError:
            pass
        return f"Process {target} priority changed to {priority}\n"

    def _nice(self, fds: tuple[int, int]) -> None:
        if not self._line.piped and self._wrong_argument_count("nice", 3):
            return
        try:
            priority = priority_from_letter(self._arg(1))
        except ValueError:
            self._error("Error: prioridad no válida\n")
            return
        self._spawn(("nice", self._arg(0), str(priority)), self._nice_body, fds)

    def _block_body(self, argv: tuple[str, ...], read: Callable[[], str]) -> str:
        target = satoi(argv[1])
        try:
            self.manager.block(target)
        except ProcessError:
            self._error("Error blocking process ")
            return f"{target}\n"
        return f"Process {target} blocked\n"

    def _block(self, fds: tuple[int, int]) -> None:
        if not self._line.piped and self._wrong_argument_count("block", 2):
            return
        target = self._arg(0)
        if target in ("1", "2"):
            self._error("Error: no se puede bloquear al proceso.")
            self._write(f"{target}\n")
            return
        self._spawn(("block", target), self._block_body, fds)

    def _testprocess(self, fds: tuple[int, int]) -> None:
        if self._wrong_argument_count("testprocess", 2):
            return
        self._spawn(("test processes", self._arg(0)), None, (FdKind.STDIN, FdKind.STDOUT))

    def _testprio(self, fds: tuple[int, int]) -> None:
        if not self._line.piped and self._rejects_arguments("testprio"):
            return
        self._spawn(("test prio",), None, fds)

    def _testsynchro(self, fds: tuple[int, int]) -> None:
        if not self._line.piped and self._wrong_argument_count("testsynchro", 3):
            return
        self._spawn(("test synchro", self._arg(0), self._arg(1)), None, fds)

    def _testmemory(self, fds: tuple[int, int]) -> None:
        if not self._line.piped and self._wrong_argument_count("testmemory", 2):
            return
        self._spawn(("test processes", self._arg(0)), None, fds)


def _edit(raw: str) -> str:
    """Apply backspaces as typed and keep what fits the input buffer."""
    chars: list[str] = []
    for ch in raw:
        if ch == "\b":
            if chars:
                chars.pop()
        else:
            chars.append(ch)
    return "".join(chars)[: INPUT_SIZE - 1]


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the interactive shell on standard input until end of file."""
    parser = argparse.ArgumentParser(
        prog="doryshell",
        description="Interactive shell over a simulated process manager.",
    )
    parser.parse_args(argv)
    out = sys.stdout
    shell = Shell(ProcessManager(), out)
    out.write(BANNER)
    while True:
        out.write(PROMPT)
        out.flush()
        raw = sys.stdin.readline()
        if not raw:
            out.write("\n")
            break
        shell.execute(_edit(raw.rstrip("\n")))
    return 0


if __name__ == "__main__":
    sys.exit(main())