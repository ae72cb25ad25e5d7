"""Parsing of UCI engine output lines.

Fields of an ``info`` line may come in any order and engines add fields of
their own, so the tokenizer walks the line keyword by keyword and skips
whatever it does not know.
"""

from __future__ import annotations

from kibitz.analysis.models import InfoReport, Score
from kibitz.core.notation import is_uci_move

# Keywords followed by a single integer.
_INT_FIELDS: dict[str, str] = {
    "depth": "depth",
    "seldepth": "seldepth",
    "multipv": "multipv",
    "nodes": "nodes",
    "nps": "nps",
    "time": "time_ms",
}
# Keywords followed by a single token we have no use for.
_SKIP_ONE = frozenset(
    {"hashfull", "tbhits", "sbhits", "cpuload", "currmove", "currmovenumber"}
)
# Keywords followed by a move list of unknown length.
_SKIP_MOVES = frozenset({"refutation", "currline"})
_BOUNDS = frozenset({"lowerbound", "upperbound"})


def parse_info_line(line: str) -> InfoReport | None:
    """Parse an ``info ...`` line; ``None`` for anything else.

    Malformed values are dropped field by field rather than failing the
    whole line. A rank below one is kept as reported and makes the report
    incomplete.
    """
    tokens = line.split()
    if not tokens or tokens[0] != "info":
        return None

    fields: dict[str, object] = {}
    i = 1
    n = len(tokens)
    while i < n:
        key = tokens[i]
        i += 1
        if key in _INT_FIELDS:
            if i < n:
                value = _to_int(tokens[i])
                if value is not None:
                    fields[_INT_FIELDS[key]] = value
                i += 1
        elif key == "score":
            i = _read_score(tokens, i, fields)
        elif key == "pv":
            start = i
            while i < n and is_uci_move(tokens[i]):
                i += 1
            fields["pv"] = tuple(tokens[start:i])
        elif key == "string":
            fields["string"] = " ".join(tokens[i:])
            i = n
        elif key in _SKIP_ONE:
            i += 1
        elif key in _SKIP_MOVES:
            while i < n and is_uci_move(tokens[i]):
                i += 1
        # Anything else is an unknown token and is skipped on its own.

    return InfoReport(**fields)  # type: ignore[arg-type]


def _read_score(tokens: list[str], i: int, fields: dict[str, object]) -> int:
    n = len(tokens)
    if i + 1 >= n:
        return n
    kind, raw = tokens[i], tokens[i + 1]
    value = _to_int(raw)
    if value is None or kind not in ("cp", "mate"):
        return i + 2
    fields["score"] = Score(cp=value) if kind == "cp" else Score(mate=value)
    i += 2
    if i < n and tokens[i] in _BOUNDS:
        fields["bound"] = tokens[i]
        i += 1
    return i


def _to_int(text: str) -> int | None:
    try:
        return int(text)
    except ValueError:
        return None


def parse_bestmove_line(line: str) -> tuple[str, str | None] | None:
    """``(bestmove, ponder)`` from a ``bestmove`` line, ``None`` otherwise."""
    tokens = line.split()
    if not tokens or tokens[0] != "bestmove":
        return None
    best = tokens[1] if len(tokens) > 1 else "(none)"
    ponder = None
    if len(tokens) > 3 and tokens[2] == "ponder":
        ponder = tokens[3]
    return best, ponder
