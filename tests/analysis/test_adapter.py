"""Tests for the UCI analysis adapter, driven through an in-memory transport."""

from __future__ import annotations

from concurrent.futures import CancelledError

import pytest

from kibitz.analysis.adapter import AnalysisAdapter
from kibitz.analysis.errors import EngineUnavailableError
from kibitz.analysis.models import AdapterState, EvaluationLine, Score
from kibitz.analysis.settings import AnalysisSettings
from kibitz.core.enums import Color
from kibitz.core.notation import position_from_fen, position_to_fen
from kibitz.core.position import Position

AFTER_E4 = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 1"


class _FakeTransport:
    def __init__(self, *, fail_open: bool = False) -> None:
        self.fail_open = fail_open
        self.sent: list[str] = []
        self.close_calls = 0
        self._on_exit = None

    def open(self, on_line, on_exit) -> None:
        if self.fail_open:
            raise EngineUnavailableError("no such engine")
        self._on_exit = on_exit

    def send(self, command: str) -> None:
        self.sent.append(command)

    def close(self) -> None:
        self.close_calls += 1

    def die(self, reason: str = "crashed") -> None:
        assert self._on_exit is not None
        self._on_exit(reason)


class _Updates:
    def __init__(self) -> None:
        self.calls: list[list[EvaluationLine]] = []

    def __call__(self, lines: list[EvaluationLine]) -> None:
        self.calls.append(lines)

    @property
    def last(self) -> list[EvaluationLine]:
        return self.calls[-1]


def _ready_adapter(**settings: object) -> tuple[AnalysisAdapter, _FakeTransport]:
    transport = _FakeTransport()
    adapter = AnalysisAdapter(transport, AnalysisSettings(**settings))
    adapter.start()
    adapter.handle_line("id name Fake 1.0")
    adapter.handle_line("uciok")
    adapter.handle_line("readyok")
    transport.sent.clear()
    return adapter, transport


# ── Handshake ────────────────────────────────────────────────────────────────


class TestHandshake:
    def test_start_sends_uci(self) -> None:
        transport = _FakeTransport()
        adapter = AnalysisAdapter(transport)
        assert adapter.state == AdapterState.UNINITIALIZED
        ready = adapter.start()
        assert transport.sent == ["uci"]
        assert adapter.state == AdapterState.HANDSHAKING
        assert not ready.done()

    def test_uciok_configures_engine(self) -> None:
        transport = _FakeTransport()
        adapter = AnalysisAdapter(transport, AnalysisSettings(multipv=3))
        adapter.start()
        adapter.handle_line("uciok")
        assert transport.sent[1:] == [
            "setoption name UCI_AnalyseMode value true",
            "setoption name MultiPV value 3",
            "isready",
        ]

    def test_analyse_mode_can_be_disabled(self) -> None:
        transport = _FakeTransport()
        adapter = AnalysisAdapter(transport, AnalysisSettings(analyse_mode=False))
        adapter.start()
        adapter.handle_line("uciok")
        assert not any("UCI_AnalyseMode" in cmd for cmd in transport.sent)

    def test_readyok_resolves_ready(self) -> None:
        transport = _FakeTransport()
        adapter = AnalysisAdapter(transport)
        ready = adapter.start()
        adapter.handle_line("uciok")
        adapter.handle_line("readyok")
        assert adapter.state == AdapterState.READY
        assert ready.result(timeout=0) is None

    def test_start_twice_rejected(self) -> None:
        adapter, _ = _ready_adapter()
        with pytest.raises(RuntimeError):
            adapter.start()

    def test_start_failure(self) -> None:
        transport = _FakeTransport(fail_open=True)
        adapter = AnalysisAdapter(transport)
        pending = adapter.analyze(Position.initial())
        ready = adapter.start()
        assert adapter.state == AdapterState.STOPPED
        assert isinstance(adapter.error, EngineUnavailableError)
        assert isinstance(ready.exception(timeout=0), EngineUnavailableError)
        assert isinstance(pending.exception(timeout=0), EngineUnavailableError)


# ── Issuing searches ─────────────────────────────────────────────────────────


class TestAnalyze:
    def test_issues_search_commands(self) -> None:
        adapter, transport = _ready_adapter(depth=12)
        future = adapter.analyze(Position.initial())
        assert future.done()
        assert transport.sent == [
            "stop",
            f"position fen {position_to_fen(Position.initial())}",
            "go depth 12",
        ]
        assert adapter.state == AdapterState.SEARCHING

    def test_queued_until_ready(self) -> None:
        transport = _FakeTransport()
        adapter = AnalysisAdapter(transport)
        adapter.start()
        future = adapter.analyze(Position.initial())
        assert not future.done()
        assert transport.sent == ["uci"]
        adapter.handle_line("uciok")
        adapter.handle_line("readyok")
        assert future.done() and future.exception() is None
        assert transport.sent[-1] == "go depth 20"
        assert adapter.state == AdapterState.SEARCHING

    def test_newer_queued_request_cancels_older(self) -> None:
        transport = _FakeTransport()
        adapter = AnalysisAdapter(transport)
        adapter.start()
        older = adapter.analyze(Position.initial())
        newer = adapter.analyze(position_from_fen(AFTER_E4))
        assert older.cancelled()
        adapter.handle_line("uciok")
        adapter.handle_line("readyok")
        assert newer.done()
        assert f"position fen {AFTER_E4}" in transport.sent
        assert transport.sent.count("go depth 20") == 1

    def test_analyze_after_quit_fails(self) -> None:
        adapter, _ = _ready_adapter()
        adapter.quit()
        future = adapter.analyze(Position.initial())
        assert isinstance(future.exception(timeout=0), EngineUnavailableError)


# ── Evaluation lines ─────────────────────────────────────────────────────────


class TestLines:
    def test_single_line_update(self) -> None:
        adapter, _ = _ready_adapter()
        updates = _Updates()
        adapter.analyze(Position.initial(), updates)
        adapter.handle_line("info depth 8 seldepth 10 score cp 31 nodes 900 pv e2e4 e7e5 g1f3")
        (line,) = updates.last
        assert line.rank == 1 and line.depth == 8
        assert line.score == Score(cp=31)
        assert line.san == ("e4", "e5", "Nf3")
        assert line.best_san == "e4"
        assert line.best_move.uci == "e2e4"
        assert (line.seldepth, line.nodes) == (10, 900)
        assert adapter.lines == [line]

    def test_multipv_sorted_by_rank(self) -> None:
        adapter, _ = _ready_adapter(multipv=2)
        updates = _Updates()
        adapter.analyze(Position.initial(), updates)
        adapter.handle_line("info depth 5 multipv 2 score cp 20 pv d2d4")
        assert updates.calls == []
        adapter.handle_line("info depth 5 multipv 1 score cp 30 pv e2e4")
        assert [ln.rank for ln in updates.last] == [1, 2]
        assert [ln.best_san for ln in updates.last] == ["e4", "d4"]

    def test_rank_gap_emits_prefix_only(self) -> None:
        adapter, _ = _ready_adapter(multipv=3)
        updates = _Updates()
        adapter.analyze(Position.initial(), updates)
        adapter.handle_line("info depth 5 multipv 1 score cp 30 pv e2e4")
        adapter.handle_line("info depth 5 multipv 3 score cp 10 pv g1f3")
        assert [ln.rank for ln in updates.last] == [1]
        adapter.handle_line("info depth 5 multipv 2 score cp 20 pv d2d4")
        assert [ln.rank for ln in updates.last] == [1, 2, 3]

    def test_rank_above_setting_ignored(self) -> None:
        adapter, _ = _ready_adapter(multipv=1)
        updates = _Updates()
        adapter.analyze(Position.initial(), updates)
        adapter.handle_line("info depth 5 multipv 2 score cp 20 pv d2d4")
        assert adapter.lines == []

    @pytest.mark.parametrize("rank", [0, -1])
    def test_rank_below_one_does_not_replace_best_line(self, rank: int) -> None:
        adapter, _ = _ready_adapter()
        updates = _Updates()
        adapter.analyze(Position.initial(), updates)
        adapter.handle_line("info depth 5 multipv 1 score cp 30 pv e2e4")
        adapter.handle_line(f"info depth 6 multipv {rank} score cp -90 pv a2a3")
        assert len(updates.calls) == 1
        (line,) = adapter.lines
        assert (line.depth, line.best_san) == (5, "e4")

    def test_deeper_reports_supersede_per_rank(self) -> None:
        adapter, _ = _ready_adapter(multipv=2)
        updates = _Updates()
        adapter.analyze(Position.initial(), updates)

        adapter.handle_line("info depth 5 multipv 1 score cp 30 pv e2e4")
        adapter.handle_line("info depth 5 multipv 2 score cp 20 pv d2d4")
        assert [(ln.rank, ln.depth, ln.score.cp) for ln in updates.last] == [
            (1, 5, 30),
            (2, 5, 20),
        ]

        adapter.handle_line("info depth 6 multipv 2 score cp 15 pv g1f3")
        assert [(ln.rank, ln.depth, ln.score.cp) for ln in updates.last] == [
            (1, 5, 30),
            (2, 6, 15),
        ]
        assert updates.last[1].best_san == "Nf3"

        adapter.handle_line("info depth 6 multipv 1 score cp 25 pv d2d4")
        assert [(ln.rank, ln.depth, ln.score.cp) for ln in updates.last] == [
            (1, 6, 25),
            (2, 6, 15),
        ]
        assert [ln.best_san for ln in adapter.lines] == ["d4", "Nf3"]
        assert len(updates.calls) == 3

    def test_score_keeps_sign_for_white_to_move(self) -> None:
        adapter, _ = _ready_adapter()
        updates = _Updates()
        adapter.analyze(Position.initial(), updates)
        adapter.handle_line("info depth 6 score cp 50 pv e2e4")
        (line,) = updates.last
        assert line.turn == Color.WHITE
        assert line.score == Score(cp=50)
        assert line.white_score == Score(cp=50)

    def test_score_relative_to_side_to_move(self) -> None:
        adapter, _ = _ready_adapter()
        updates = _Updates()
        adapter.analyze(position_from_fen(AFTER_E4), updates)
        adapter.handle_line("info depth 6 score cp 50 pv e7e5")
        (line,) = updates.last
        assert line.turn == Color.BLACK
        assert line.score == Score(cp=50)
        assert line.white_score == Score(cp=-50)

    def test_mate_score(self) -> None:
        fen = "rnbqkbnr/pppp1ppp/8/4p3/6P1/5P2/PPPPP2P/RNBQKBNR b KQkq - 0 2"
        adapter, _ = _ready_adapter()
        updates = _Updates()
        adapter.analyze(position_from_fen(fen), updates)
        adapter.handle_line("info depth 2 score mate 1 pv d8h4")
        (line,) = updates.last
        assert line.san == ("Qh4#",)
        assert str(line.white_score) == "#-1"

    def test_figurine_setting(self) -> None:
        adapter, _ = _ready_adapter(figurine_notation=True)
        updates = _Updates()
        adapter.analyze(Position.initial(), updates)
        adapter.handle_line("info depth 3 score cp 20 pv g1f3 g8f6")
        assert updates.last[0].san == ("♘f3", "♞f6")

    def test_illegal_variation_dropped(self) -> None:
        adapter, _ = _ready_adapter()
        updates = _Updates()
        adapter.analyze(Position.initial(), updates)
        adapter.handle_line("info depth 4 score cp 10 pv e2e4 e2e4")
        adapter.handle_line("info depth 4 score cp 10 pv e7e5")
        assert updates.calls == []
        assert adapter.lines == []

    def test_incomplete_reports_ignored(self) -> None:
        adapter, _ = _ready_adapter()
        updates = _Updates()
        adapter.analyze(Position.initial(), updates)
        adapter.handle_line("info depth 4 currmove e2e4 currmovenumber 1")
        adapter.handle_line("info string hello")
        adapter.handle_line("info depth 4 score cp 10")
        assert updates.calls == []

    def test_new_request_replaces_lines(self) -> None:
        adapter, _ = _ready_adapter()
        updates = _Updates()
        adapter.analyze(Position.initial(), updates)
        adapter.handle_line("info depth 4 score cp 10 pv e2e4")
        adapter.analyze(position_from_fen(AFTER_E4), updates)
        assert adapter.lines == []

    def test_info_during_handshake_ignored(self) -> None:
        transport = _FakeTransport()
        adapter = AnalysisAdapter(transport)
        adapter.start()
        adapter.handle_line("info depth 4 score cp 10 pv e2e4")
        assert adapter.lines == []


# ── Stale reports ────────────────────────────────────────────────────────────


class TestStaleReports:
    def test_reports_from_superseded_search_dropped(self) -> None:
        adapter, _ = _ready_adapter()
        first, second = _Updates(), _Updates()
        adapter.analyze(Position.initial(), first)
        adapter.analyze(position_from_fen(AFTER_E4), second)

        # Still from the first search: e2e4 is legal there but not here.
        adapter.handle_line("info depth 9 score cp 25 pv e2e4")
        # Even a report that happens to be legal in the new root is dropped.
        adapter.handle_line("info depth 9 score cp 25 pv e7e5")
        assert first.calls == [] and second.calls == []

        adapter.handle_line("bestmove e2e4")
        assert adapter.state == AdapterState.SEARCHING
        adapter.handle_line("info depth 1 score cp 15 pv e7e5")
        assert second.last[0].best_san == "e5"
        assert first.calls == []

    def test_bestmove_returns_to_ready_and_keeps_lines(self) -> None:
        adapter, _ = _ready_adapter()
        updates = _Updates()
        adapter.analyze(Position.initial(), updates)
        adapter.handle_line("info depth 20 score cp 28 pv e2e4")
        adapter.handle_line("bestmove e2e4 ponder e7e5")
        assert adapter.state == AdapterState.READY
        assert adapter.completed_searches == 1
        assert adapter.lines[0].depth == 20

    def test_late_info_after_bestmove_dropped(self) -> None:
        adapter, _ = _ready_adapter()
        updates = _Updates()
        adapter.analyze(Position.initial(), updates)
        adapter.handle_line("bestmove e2e4")
        adapter.handle_line("info depth 21 score cp 28 pv e2e4")
        assert updates.calls == []

    def test_unexpected_bestmove_ignored(self) -> None:
        adapter, _ = _ready_adapter()
        adapter.handle_line("bestmove e2e4")
        assert adapter.state == AdapterState.READY
        assert adapter.completed_searches == 0


# ── Stop / quit / failures ───────────────────────────────────────────────────


class TestStopAndQuit:
    def test_stop_when_idle_is_noop(self) -> None:
        adapter, transport = _ready_adapter()
        adapter.stop()
        assert transport.sent == []
        assert adapter.state == AdapterState.READY

    def test_stop_detaches_callback_and_clears(self) -> None:
        adapter, transport = _ready_adapter()
        updates = _Updates()
        adapter.analyze(Position.initial(), updates)
        adapter.handle_line("info depth 3 score cp 10 pv e2e4")
        transport.sent.clear()
        adapter.stop()
        assert transport.sent == ["stop"]
        assert adapter.lines == []
        adapter.handle_line("info depth 4 score cp 12 pv e2e4")
        assert len(updates.calls) == 1
        adapter.handle_line("bestmove e2e4")
        assert adapter.state == AdapterState.READY

    def test_quit_is_idempotent(self) -> None:
        adapter, transport = _ready_adapter()
        adapter.quit()
        adapter.quit()
        assert adapter.state == AdapterState.STOPPED
        assert transport.close_calls == 1
        assert adapter.error is None

    def test_quit_before_start(self) -> None:
        transport = _FakeTransport()
        adapter = AnalysisAdapter(transport)
        queued = adapter.analyze(Position.initial())
        adapter.quit()
        assert adapter.state == AdapterState.STOPPED
        assert queued.cancelled()
        with pytest.raises(CancelledError):
            adapter.ready.result(timeout=0)

    def test_lines_after_quit_ignored(self) -> None:
        adapter, _ = _ready_adapter()
        updates = _Updates()
        adapter.analyze(Position.initial(), updates)
        adapter.quit()
        adapter.handle_line("info depth 3 score cp 10 pv e2e4")
        assert updates.calls == []

    def test_process_death_during_search(self) -> None:
        adapter, transport = _ready_adapter()
        adapter.analyze(Position.initial())
        transport.die("Engine exited unexpectedly (code 1)")
        assert adapter.state == AdapterState.STOPPED
        assert isinstance(adapter.error, EngineUnavailableError)
        assert "code 1" in str(adapter.error)
        adapter.quit()
        assert adapter.state == AdapterState.STOPPED

    def test_process_death_during_handshake_fails_queue(self) -> None:
        transport = _FakeTransport()
        adapter = AnalysisAdapter(transport)
        ready = adapter.start()
        queued = adapter.analyze(Position.initial())
        transport.die()
        assert isinstance(ready.exception(timeout=0), EngineUnavailableError)
        assert isinstance(queued.exception(timeout=0), EngineUnavailableError)
