"""Compact coordinate notation (``e2e4``, ``e7e8q``) as spoken by UCI engines."""

from __future__ import annotations

import re

from kibitz.core.errors import IllegalMoveError
from kibitz.core.move import Move
from kibitz.core.move_generator import find_move
from kibitz.core.piece import piece_type_from_letter
from kibitz.core.position import Position
from kibitz.core.types import parse_square

_UCI_MOVE_RE = re.compile(r"^([a-h][1-8])([a-h][1-8])([nbrq]?)$")


def is_uci_move(text: str) -> bool:
    """Whether *text* is shaped like a coordinate move."""
    return _UCI_MOVE_RE.match(text) is not None


def move_from_uci(position: Position, text: str) -> Move:
    """Resolve *text* to the legal move it names in *position*.

    Raises :class:`IllegalMoveError` when the text is malformed or the move
    is not legal here. Unlike a click on the board, a pawn reaching the last
    rank must spell out its promotion piece.
    """
    match = _UCI_MOVE_RE.match(text)
    if match is None:
        raise IllegalMoveError(f"Not a coordinate move: {text!r}")
    from_name, to_name, promo = match.groups()
    promotion = piece_type_from_letter(promo) if promo else None

    move = find_move(position, parse_square(from_name), parse_square(to_name), promotion)
    if move.promotion is not None and promotion is None:
        raise IllegalMoveError(f"Promotion piece missing: {text!r}")
    return move


def moves_from_uci(position: Position, texts: list[str]) -> list[Move]:
    """Resolve a whole move sequence, replaying it from *position*.

    Raises :class:`IllegalMoveError` at the first move that is not legal in
    the position reached so far.
    """
    moves: list[Move] = []
    current = position
    for text in texts:
        move = move_from_uci(current, text)
        moves.append(move)
        current = current.after(move)
    return moves
