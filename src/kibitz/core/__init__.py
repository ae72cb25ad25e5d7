"""Core domain layer: pure chess logic with no external dependencies.

Quick start::

    from kibitz.core import Position, legal_moves, find_move, apply_move, E2, E4

    pos = Position.initial()
    print(sorted(legal_moves(pos, E2)))
    pos = apply_move(pos, find_move(pos, E2, E4))
"""

from kibitz.core.board import Board
from kibitz.core.enums import (
    CastlingRights,
    CastlingSide,
    Color,
    GameStatus,
    PieceType,
)
from kibitz.core.errors import IllegalMoveError, MalformedPositionError
from kibitz.core.move import Move
from kibitz.core.move_generator import (
    MoveGenerator,
    apply_move,
    find_move,
    legal_moves,
    pseudo_legal_moves,
)
from kibitz.core.notation import (
    STARTING_FEN,
    move_from_uci,
    move_to_san,
    parse_san,
    position_from_fen,
    position_to_fen,
)
from kibitz.core.piece import Piece
from kibitz.core.position import Position
from kibitz.core.rules import Rules
from kibitz.core.types import (
    Square,
    file_of,
    make_square,
    parse_square,
    rank_of,
    square_from_indices,
    square_name,
    square_to_indices,
)

__all__ = [
    # Enums / flags
    "CastlingRights",
    "CastlingSide",
    "Color",
    "GameStatus",
    "PieceType",
    # Errors
    "IllegalMoveError",
    "MalformedPositionError",
    # Types / helpers
    "Square",
    "file_of",
    "make_square",
    "parse_square",
    "rank_of",
    "square_from_indices",
    "square_name",
    "square_to_indices",
    # Domain objects
    "Board",
    "Move",
    "MoveGenerator",
    "Piece",
    "Position",
    "Rules",
    # Move contract
    "apply_move",
    "find_move",
    "legal_moves",
    "pseudo_legal_moves",
    # Notation
    "STARTING_FEN",
    "move_from_uci",
    "move_to_san",
    "parse_san",
    "position_from_fen",
    "position_to_fen",
]
