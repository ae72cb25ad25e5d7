"""UCI analysis adapter.

Drives an external engine through an :class:`EngineTransport`: performs the
handshake, issues one search per requested position, and turns the engine's
``info`` stream into ranked :class:`EvaluationLine` lists.

Every ``go`` the adapter sends is answered by exactly one ``bestmove``, so
counting outstanding searches tells whether an ``info`` line can belong to
the newest request. Reports arriving while an older search is still winding
down are dropped.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass, field

from kibitz.analysis.errors import EngineUnavailableError
from kibitz.analysis.models import AdapterState, EvaluationLine, InfoReport
from kibitz.analysis.parser import parse_bestmove_line, parse_info_line
from kibitz.analysis.settings import AnalysisSettings
from kibitz.analysis.transport import EngineTransport
from kibitz.core.errors import IllegalMoveError
from kibitz.core.notation import move_to_san, moves_from_uci, position_to_fen
from kibitz.core.position import Position

_LOGGER = logging.getLogger(__name__)

UpdateCallback = Callable[[list[EvaluationLine]], None]


@dataclass(slots=True)
class _Request:
    position: Position
    on_update: UpdateCallback | None
    future: Future[None] = field(default_factory=Future)


class AnalysisAdapter:
    """Analysis session with a single engine process.

    Thread-safe: engine output may be fed from the transport's thread while
    requests come from another. ``on_update`` callbacks always run outside
    the internal lock.
    """

    def __init__(
        self,
        transport: EngineTransport,
        settings: AnalysisSettings | None = None,
    ) -> None:
        self._transport = transport
        self._settings = settings or AnalysisSettings()
        self._lock = threading.RLock()
        self._state = AdapterState.UNINITIALIZED
        self._error: EngineUnavailableError | None = None
        self._ready: Future[None] = Future()
        self._queued: _Request | None = None
        self._current: _Request | None = None
        self._outstanding = 0
        self._completed = 0
        self._lines: dict[int, EvaluationLine] = {}

    # -- introspection -------------------------------------------------------

    @property
    def state(self) -> AdapterState:
        with self._lock:
            return self._state

    @property
    def error(self) -> EngineUnavailableError | None:
        with self._lock:
            return self._error

    @property
    def settings(self) -> AnalysisSettings:
        return self._settings

    @property
    def ready(self) -> Future[None]:
        """Resolves once the handshake completes, fails if the engine is lost."""
        return self._ready

    @property
    def completed_searches(self) -> int:
        """Number of searches the engine has answered with ``bestmove``."""
        with self._lock:
            return self._completed

    @property
    def lines(self) -> list[EvaluationLine]:
        """Current evaluation lines, best first."""
        with self._lock:
            return self._dense_lines()

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> Future[None]:
        """Open the transport and begin the UCI handshake.

        Returns the :attr:`ready` future. A process that cannot be started
        leaves the adapter STOPPED with the failure in :attr:`error` and on
        the returned future.
        """
        with self._lock:
            if self._state != AdapterState.UNINITIALIZED:
                raise RuntimeError(f"Adapter already started ({self._state.name})")
            self._state = AdapterState.HANDSHAKING
            try:
                self._transport.open(self.handle_line, self._on_transport_exit)
                self._transport.send("uci")
            except EngineUnavailableError as exc:
                _LOGGER.error("Engine unavailable: %s", exc)
                self._fail(exc)
        return self._ready

    def analyze(
        self,
        position: Position,
        on_update: UpdateCallback | None = None,
    ) -> Future[None]:
        """Request analysis of *position*, superseding any previous request.

        The returned future resolves once the search has been issued to the
        engine. Requests made before the handshake completes are queued; only
        the newest queued one survives, older ones are cancelled.
        """
        request = _Request(position, on_update)
        with self._lock:
            if self._state == AdapterState.STOPPED:
                request.future.set_exception(
                    self._error or EngineUnavailableError("Analysis has been stopped")
                )
                return request.future
            if self._state in (AdapterState.UNINITIALIZED, AdapterState.HANDSHAKING):
                if self._queued is not None:
                    self._queued.future.cancel()
                self._queued = request
                return request.future
            issued = self._issue(request)

        if issued:
            request.future.set_result(None)
        return request.future

    def stop(self) -> None:
        """Halt the running search and forget its lines.

        No-op unless a search is running.
        """
        with self._lock:
            if self._state != AdapterState.SEARCHING or self._current is None:
                return
            self._current = None
            self._lines.clear()
            try:
                self._send("stop")
            except EngineUnavailableError as exc:
                self._fail(exc)

    def quit(self) -> None:
        """Shut the engine down. Terminal and idempotent."""
        with self._lock:
            if self._state == AdapterState.STOPPED:
                return
            _LOGGER.info("Shutting down analysis")
            self._state = AdapterState.STOPPED
            self._current = None
            self._lines.clear()
            queued, self._queued = self._queued, None
        if queued is not None:
            queued.future.cancel()
        self._ready.cancel()
        self._transport.close()

    # -- engine output -------------------------------------------------------

    def handle_line(self, line: str) -> None:
        """Feed one line of engine output."""
        line = line.strip()
        if not line:
            return

        notify: tuple[UpdateCallback, list[EvaluationLine]] | None = None
        issued: _Request | None = None
        with self._lock:
            if self._state == AdapterState.STOPPED:
                return
            keyword = line.split(maxsplit=1)[0]
            if keyword == "info":
                notify = self._on_info(line)
            elif keyword == "bestmove":
                self._on_bestmove(line)
            elif keyword == "uciok" and self._state == AdapterState.HANDSHAKING:
                try:
                    self._configure()
                except EngineUnavailableError as exc:
                    self._fail(exc)
            elif keyword == "readyok" and self._state == AdapterState.HANDSHAKING:
                issued = self._on_ready()

        if issued is not None:
            issued.future.set_result(None)
        if notify is not None:
            callback, lines = notify
            callback(lines)

    def _configure(self) -> None:
        if self._settings.analyse_mode:
            self._send("setoption name UCI_AnalyseMode value true")
        self._send(f"setoption name MultiPV value {self._settings.multipv}")
        self._send("isready")

    def _on_ready(self) -> _Request | None:
        _LOGGER.info("Engine ready")
        self._state = AdapterState.READY
        if not self._ready.done():
            self._ready.set_result(None)
        queued, self._queued = self._queued, None
        if queued is not None and self._issue(queued):
            return queued
        return None

    def _on_bestmove(self, line: str) -> None:
        parsed = parse_bestmove_line(line)
        if self._outstanding == 0:
            _LOGGER.debug("Unexpected bestmove ignored: %s", line)
            return
        self._outstanding -= 1
        self._completed += 1
        if self._outstanding == 0 and self._state == AdapterState.SEARCHING:
            self._state = AdapterState.READY
        if parsed is not None:
            _LOGGER.debug("Search finished, best move %s", parsed[0])

    def _on_info(
        self, line: str
    ) -> tuple[UpdateCallback, list[EvaluationLine]] | None:
        report = parse_info_line(line)
        if report is None or not report.is_complete:
            return None
        request = self._current
        if request is None or self._outstanding != 1:
            _LOGGER.debug("Stale report dropped: %s", line)
            return None
        if report.multipv > self._settings.multipv:
            return None

        evaluation = self._evaluate(request.position, report)
        if evaluation is None:
            return None
        self._lines[evaluation.rank] = evaluation

        lines = self._dense_lines()
        if not lines or request.on_update is None:
            return None
        return request.on_update, lines

    def _evaluate(self, root: Position, report: InfoReport) -> EvaluationLine | None:
        """Replay *report*'s variation from *root*; ``None`` if any move is illegal."""
        try:
            moves = moves_from_uci(root, list(report.pv))
        except IllegalMoveError as exc:
            _LOGGER.debug("Report with illegal variation dropped: %s", exc)
            return None

        figurine = self._settings.figurine_notation
        san: list[str] = []
        current = root
        for move in moves:
            san.append(move_to_san(current, move, figurine=figurine))
            current = current.after(move)

        assert report.depth is not None and report.score is not None
        return EvaluationLine(
            rank=report.multipv,
            depth=report.depth,
            score=report.score,
            turn=root.side_to_move,
            pv=tuple(moves),
            san=tuple(san),
            seldepth=report.seldepth,
            nodes=report.nodes,
        )

    def _dense_lines(self) -> list[EvaluationLine]:
        lines: list[EvaluationLine] = []
        rank = 1
        while rank in self._lines:
            lines.append(self._lines[rank])
            rank += 1
        return lines

    # -- internals -----------------------------------------------------------

    def _issue(self, request: _Request) -> bool:
        """Send the search commands for *request*. Caller holds the lock."""
        self._current = request
        self._lines.clear()
        try:
            self._send("stop")
            self._send(f"position fen {position_to_fen(request.position)}")
            self._send(f"go depth {self._settings.depth}")
        except EngineUnavailableError as exc:
            self._fail(exc)
            request.future.set_exception(exc)
            return False
        self._outstanding += 1
        self._state = AdapterState.SEARCHING
        return True

    def _send(self, command: str) -> None:
        self._transport.send(command)

    def _on_transport_exit(self, reason: str) -> None:
        with self._lock:
            if self._state == AdapterState.STOPPED:
                return
            _LOGGER.error("Engine lost: %s", reason)
            self._fail(EngineUnavailableError(reason))

    def _fail(self, error: EngineUnavailableError) -> None:
        """Record *error*, fail whatever is waiting and become STOPPED."""
        self._error = error
        self._state = AdapterState.STOPPED
        self._current = None
        self._lines.clear()
        self._outstanding = 0
        if not self._ready.done():
            self._ready.set_exception(error)
        queued, self._queued = self._queued, None
        if queued is not None and not queued.future.done():
            queued.future.set_exception(error)
        self._transport.close()
