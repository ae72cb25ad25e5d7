"""Timeline — move list plus cursor, with positions rebuilt by replay."""

from __future__ import annotations

from typing import TYPE_CHECKING

from kibitz.core.move_generator import apply_move
from kibitz.core.notation import STARTING_FEN, move_to_san, position_from_fen

if TYPE_CHECKING:
    from kibitz.core.move import Move
    from kibitz.core.position import Position


class Timeline:
    """Ordered move history with a cursor in ``[0, len(moves)]``.

    The position at the cursor is always recomputed from the start position
    by replaying the first ``cursor`` moves; no per-move snapshots are kept,
    so the move list is the single source of truth.

    Not safe for concurrent writers: only one caller may extend a given
    timeline at a time.
    """

    __slots__ = ("_start_fen", "_start", "_moves", "_cursor", "_position")

    def __init__(self, start_fen: str | None = None) -> None:
        self._start_fen = start_fen or STARTING_FEN
        self._start = position_from_fen(self._start_fen)
        self._moves: list[Move] = []
        self._cursor = 0
        self._position = self._start

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def start_fen(self) -> str:
        return self._start_fen

    @property
    def start_position(self) -> Position:
        return self._start

    @property
    def position(self) -> Position:
        """Position at the cursor."""
        return self._position

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def moves(self) -> tuple[Move, ...]:
        return tuple(self._moves)

    def __len__(self) -> int:
        return len(self._moves)

    @property
    def at_end(self) -> bool:
        return self._cursor == len(self._moves)

    @property
    def last_move(self) -> Move | None:
        """Move that produced the position at the cursor."""
        return self._moves[self._cursor - 1] if self._cursor else None

    # ── Navigation ───────────────────────────────────────────────────────

    def go_to(self, index: int) -> Position:
        """Move the cursor to *index* and rebuild the position by replay."""
        if not 0 <= index <= len(self._moves):
            raise IndexError(f"Timeline index {index} outside [0, {len(self._moves)}]")
        position = self._start
        for move in self._moves[:index]:
            position = apply_move(position, move)
        self._cursor = index
        self._position = position
        return position

    def first(self) -> Position:
        return self.go_to(0)

    def previous(self) -> Position:
        return self.go_to(max(0, self._cursor - 1))

    def next(self) -> Position:
        return self.go_to(min(len(self._moves), self._cursor + 1))

    def last(self) -> Position:
        return self.go_to(len(self._moves))

    # ── Editing ──────────────────────────────────────────────────────────

    def push(self, move: Move) -> Position:
        """Play *move* at the cursor, discarding any moves after it.

        Raises :class:`~kibitz.core.errors.IllegalMoveError` (leaving the
        timeline untouched) if *move* is not legal at the cursor.
        """
        position = apply_move(self._position, move)
        del self._moves[self._cursor :]
        self._moves.append(move)
        self._cursor = len(self._moves)
        self._position = position
        return position

    def reset(self, fen: str | None = None) -> Position:
        """Start over from *fen* (or the standard start) with an empty history."""
        start = position_from_fen(fen or STARTING_FEN)
        self._start_fen = fen or STARTING_FEN
        self._start = start
        self._moves = []
        self._cursor = 0
        self._position = start
        return start

    def san_history(self, *, figurine: bool = False) -> list[str]:
        """SAN of every move in the list, regardless of the cursor."""
        sans: list[str] = []
        position = self._start
        for move in self._moves:
            sans.append(move_to_san(position, move, figurine=figurine))
            position = position.after(move)
        return sans
