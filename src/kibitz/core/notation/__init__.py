"""Notation package: FEN / SAN / coordinate-move parsing and serialization."""

from kibitz.core.notation.fen import STARTING_FEN, position_from_fen, position_to_fen
from kibitz.core.notation.san import move_to_san, parse_san
from kibitz.core.notation.uci import is_uci_move, move_from_uci, moves_from_uci

__all__ = [
    "STARTING_FEN",
    "position_from_fen",
    "position_to_fen",
    "move_to_san",
    "parse_san",
    "is_uci_move",
    "move_from_uci",
    "moves_from_uci",
]
