"""Command-line entry point: analyse one position with a UCI engine."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from kibitz.analysis import (
    AdapterState,
    AnalysisAdapter,
    AnalysisSettings,
    EvaluationLine,
    QProcessTransport,
)
from kibitz.core.errors import MalformedPositionError
from kibitz.game.controller import GameController

_LOGGER = logging.getLogger(__name__)

_POLL_INTERVAL_MS = 100


def _build_parser() -> argparse.ArgumentParser:
    defaults = AnalysisSettings()
    parser = argparse.ArgumentParser(
        prog="kibitz",
        description="Print ranked engine evaluations for a chess position.",
    )
    parser.add_argument(
        "--engine",
        default=defaults.engine_path,
        help="UCI engine executable (default: %(default)s)",
    )
    parser.add_argument("--fen", default=None, help="position to analyse")
    parser.add_argument("--depth", type=int, default=defaults.depth)
    parser.add_argument("--multipv", type=int, default=defaults.multipv)
    parser.add_argument(
        "--figurine", action="store_true", help="use piece glyphs in move lists"
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def format_line(line: EvaluationLine) -> str:
    """One display row: rank, depth, White-relative score and the variation."""
    return f"{line.rank}. [d{line.depth}] {line.white_score}  {' '.join(line.san)}"


def main(argv: Sequence[str] | None = None) -> int:
    """Run one analysis to completion; returns the process exit code."""
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = AnalysisSettings(
            engine_path=args.engine,
            depth=args.depth,
            multipv=args.multipv,
            figurine_notation=args.figurine,
        )
        controller = GameController(args.fen)
    except (ValueError, MalformedPositionError) as exc:
        print(f"kibitz: {exc}", file=sys.stderr)
        return 2

    from PyQt6.QtCore import QCoreApplication, QTimer

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])

    transport = QProcessTransport(
        settings.engine_path,
        settings.engine_args,
        start_timeout_ms=settings.start_timeout_ms,
        quit_timeout_ms=settings.quit_timeout_ms,
    )
    adapter = AnalysisAdapter(transport, settings)
    latest: list[EvaluationLine] = []

    def on_analysis(lines: list[EvaluationLine]) -> None:
        latest[:] = lines
        _LOGGER.debug("depth %d: %s", lines[0].depth, format_line(lines[0]))

    controller.events.on_analysis.append(on_analysis)
    controller.enable_analysis(adapter)

    exit_code = 0

    def poll() -> None:
        nonlocal exit_code
        state = adapter.state
        if state == AdapterState.STOPPED:
            print(f"kibitz: {adapter.error}", file=sys.stderr)
            exit_code = 1
            app.quit()
        elif state == AdapterState.READY and adapter.completed_searches:
            app.quit()

    timer = QTimer()
    timer.timeout.connect(poll)
    timer.start(_POLL_INTERVAL_MS)
    if adapter.state != AdapterState.STOPPED:
        app.exec()
    else:
        poll()
    timer.stop()

    print(controller.fen)
    for line in latest:
        print(format_line(line))
    controller.disable_analysis()
    return exit_code
