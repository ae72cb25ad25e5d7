"""Line-oriented channel to an external engine process."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Protocol

from PyQt6.QtCore import QObject, QProcess, pyqtSignal, pyqtSlot

from kibitz.analysis.errors import EngineUnavailableError

_LOGGER = logging.getLogger(__name__)

LineCallback = Callable[[str], None]
ExitCallback = Callable[[str], None]


class EngineTransport(Protocol):
    """Typed channel: command strings out, output lines in."""

    def open(self, on_line: LineCallback, on_exit: ExitCallback) -> None:
        """Start the process; raise :class:`EngineUnavailableError` on failure.

        *on_line* receives each output line without its terminator.
        *on_exit* is called once, with a reason, if the process dies before
        :meth:`close`.
        """
        ...

    def send(self, command: str) -> None: ...

    def close(self) -> None:
        """Stop the process. Must be idempotent."""
        ...


class QProcessTransport(QObject):
    """:class:`EngineTransport` backed by a :class:`QProcess`.

    Output is delivered on the thread owning this object, through the Qt
    event loop.
    """

    line_received = pyqtSignal(str)
    exited = pyqtSignal(str)

    def __init__(
        self,
        program: str,
        args: Sequence[str] = (),
        *,
        start_timeout_ms: int = 5000,
        quit_timeout_ms: int = 1000,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._program = program
        self._args = list(args)
        self._start_timeout_ms = start_timeout_ms
        self._quit_timeout_ms = quit_timeout_ms
        self._process: QProcess | None = None
        self._buffer = b""
        self._closing = False

    @property
    def is_running(self) -> bool:
        return (
            self._process is not None
            and self._process.state() != QProcess.ProcessState.NotRunning
        )

    def open(self, on_line: LineCallback, on_exit: ExitCallback) -> None:
        if self._process is not None:
            raise RuntimeError("Transport already opened")

        self.line_received.connect(on_line)
        self.exited.connect(on_exit)

        process = QProcess(self)
        process.setProcessChannelMode(QProcess.ProcessChannelMode.SeparateChannels)
        process.readyReadStandardOutput.connect(self._on_ready_read)
        process.finished.connect(self._on_finished)
        process.errorOccurred.connect(self._on_error)
        self._process = process

        _LOGGER.info("Starting engine: %s %s", self._program, " ".join(self._args))
        self._closing = False
        process.start(self._program, self._args)
        if not process.waitForStarted(self._start_timeout_ms):
            reason = process.errorString()
            self._closing = True
            self._process = None
            process.deleteLater()
            raise EngineUnavailableError(
                f"Could not start engine {self._program!r}: {reason}"
            )

    def send(self, command: str) -> None:
        if not self.is_running:
            raise EngineUnavailableError("Engine process is not running")
        assert self._process is not None
        _LOGGER.debug(">> %s", command)
        self._process.write((command + "\n").encode())

    def close(self) -> None:
        process = self._process
        if process is None:
            return
        self._closing = True
        if process.state() != QProcess.ProcessState.NotRunning:
            process.write(b"quit\n")
            process.closeWriteChannel()
            if not process.waitForFinished(self._quit_timeout_ms):
                _LOGGER.warning("Engine did not exit in time, killing it")
                process.kill()
                process.waitForFinished(self._quit_timeout_ms)
        self._process = None
        process.deleteLater()

    # -- QProcess slots -----------------------------------------------------

    @pyqtSlot()
    def _on_ready_read(self) -> None:
        process = self._process
        if process is None:
            return
        self._buffer += bytes(process.readAllStandardOutput().data())
        *lines, self._buffer = self._buffer.split(b"\n")
        for raw in lines:
            line = raw.decode(errors="replace").rstrip("\r")
            _LOGGER.debug("<< %s", line)
            self.line_received.emit(line)

    @pyqtSlot(int, QProcess.ExitStatus)
    def _on_finished(self, exit_code: int, exit_status: QProcess.ExitStatus) -> None:
        if self._closing:
            return
        self._closing = True
        reason = f"Engine exited unexpectedly (code {exit_code}, {exit_status.name})"
        _LOGGER.error(reason)
        self.exited.emit(reason)

    @pyqtSlot(QProcess.ProcessError)
    def _on_error(self, error: QProcess.ProcessError) -> None:
        if self._closing or error == QProcess.ProcessError.FailedToStart:
            # Start failures are reported by open() itself.
            return
        if error == QProcess.ProcessError.Crashed:
            # finished() follows and reports the exit.
            return
        _LOGGER.warning("Engine process error: %s", error.name)
