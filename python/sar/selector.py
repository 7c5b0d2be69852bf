"""
Selector - Drives fzf as the fuzzy selection interface.

The stream is copied into fzf's stdin by a dedicated pump thread while
the user is typing. Key bindings make fzf print the chosen action and
the zero-based index ({n}) of the selected line in input order, so the
result can be resolved against the mirror sequence.
"""

import logging
import shutil
import subprocess
import threading
from typing import BinaryIO, Callable, Dict, List, Optional

from .errors import SelectorError
from .models import Action, SelectionOutcome


logger = logging.getLogger(__name__)


_PUMP_CHUNK = 64 * 1024


class StreamPump(threading.Thread):
    """Copies a readable stream into a sink until EOF or the sink closes."""

    def __init__(self, source: BinaryIO, sink: BinaryIO):
        super().__init__(name="sar-pump", daemon=True)
        self.source = source
        self.sink = sink
        self.bytes_copied = 0
        self.error: Optional[BaseException] = None

    def run(self) -> None:
        try:
            while chunk := self.source.read(_PUMP_CHUNK):
                self.sink.write(chunk)
                self.bytes_copied += len(chunk)
        except BrokenPipeError:
            logger.debug("Selector stopped reading, pump finished early")
        except Exception as e:
            self.error = e
        finally:
            try:
                self.sink.close()
            except BrokenPipeError:
                pass

    def join_and_raise(self, timeout: Optional[float] = None) -> None:
        self.join(timeout)
        if self.error is not None:
            raise self.error


class FzfSelector:
    """
    Runs fzf over a byte stream and reports the selection.

    Bindings:
        enter   open (or print, see enter_action)
        ctrl-r  reveal in file manager
        ctrl-p  print
        ctrl-e  create a new note
    """

    def __init__(
        self,
        enter_action: Action = Action.PRINT,
        executable: str = "fzf",
        extra_args: Optional[List[str]] = None,
    ):
        self.enter_action = enter_action
        self.executable = executable
        self.extra_args = extra_args or []

    def bindings(self) -> Dict[str, Action]:
        return {
            "enter": self.enter_action,
            "ctrl-r": Action.REVEAL,
            "ctrl-p": Action.PRINT,
            "ctrl-e": Action.CREATE_NEW,
        }

    def command(self, executable: str) -> List[str]:
        bind = ",".join(
            f"{key}:become(echo {action.value} {{n}})"
            for key, action in self.bindings().items()
        )
        return [
            executable,
            "--no-multi",
            "--tiebreak=index",
            "--bind", bind,
            *self.extra_args,
        ]

    def select(
        self,
        stream: BinaryIO,
        on_exit: Optional[Callable[[], None]] = None,
    ) -> SelectionOutcome:
        """
        Show the stream in fzf and wait for the user's choice.

        Args:
            stream: Readable byte stream of newline-terminated lines
            on_exit: Called as soon as fzf has exited, before the pump
                     is joined (used to cancel the producers)

        Raises:
            SelectorError: fzf is missing or failed
        """
        executable = shutil.which(self.executable)
        if executable is None:
            raise SelectorError(f"'{self.executable}' not found on PATH")

        proc = subprocess.Popen(
            self.command(executable),
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
        )
        pump = StreamPump(stream, proc.stdin)
        pump.start()

        try:
            output = proc.stdout.read()
            returncode = proc.wait()
        finally:
            if on_exit is not None:
                on_exit()
            pump.join_and_raise()

        return self.parse_output(output, returncode)

    @staticmethod
    def parse_output(output: bytes, returncode: int) -> SelectionOutcome:
        """
        Parse "<action> <index>" as printed by the become() bindings.

        Exit codes 1 (no match) and 130 (aborted) mean no selection.
        """
        if returncode in (1, 130):
            return SelectionOutcome()
        if returncode != 0:
            raise SelectorError(f"fzf exited with status {returncode}")

        parts = output.decode("utf-8", errors="replace").split()
        if not parts:
            return SelectionOutcome()

        try:
            action = Action(parts[0])
        except ValueError:
            raise SelectorError(f"Unexpected selector output: {output!r}") from None

        index = int(parts[1]) if len(parts) > 1 and parts[1].isdigit() else None
        if index is None and action is not Action.CREATE_NEW:
            return SelectionOutcome()
        return SelectionOutcome(action=action, index=index)
