"""Tests for the persistent Board."""

import pytest

from kibitz.core.board import Board
from kibitz.core.enums import Color, PieceType
from kibitz.core.piece import Piece
from kibitz.core.types import A1, D1, E1, E2, E4, E8, H8

WHITE_KING = Piece(Color.WHITE, PieceType.KING)
WHITE_PAWN = Piece(Color.WHITE, PieceType.PAWN)
BLACK_KING = Piece(Color.BLACK, PieceType.KING)


class TestInitial:
    def test_piece_counts(self) -> None:
        board = Board.initial()
        assert board.count(Color.WHITE, PieceType.PAWN) == 8
        assert board.count(Color.BLACK, PieceType.KNIGHT) == 2
        assert len(board.all_pieces(Color.WHITE)) == 16

    def test_corner_and_kings(self) -> None:
        board = Board.initial()
        assert board[A1] == Piece(Color.WHITE, PieceType.ROOK)
        assert board[H8] == Piece(Color.BLACK, PieceType.ROOK)
        assert board[D1] == Piece(Color.WHITE, PieceType.QUEEN)
        assert board.king_square(Color.WHITE) == E1
        assert board.king_square(Color.BLACK) == E8

    def test_middle_is_empty(self) -> None:
        board = Board.initial()
        assert all(board.is_empty(sq) for sq in range(16, 48))
        assert len(list(board.occupied())) == 32


class TestReplace:
    def test_returns_new_board(self) -> None:
        board = Board.initial()
        moved = board.replace({E2: None, E4: WHITE_PAWN})
        assert moved[E4] == WHITE_PAWN and moved[E2] is None
        assert board[E2] == WHITE_PAWN and board[E4] is None

    def test_indexes_follow_changes(self) -> None:
        board = Board({E1: WHITE_KING, E8: BLACK_KING})
        moved = board.replace({E1: None, D1: WHITE_KING})
        assert moved.king_square(Color.WHITE) == D1
        assert board.king_square(Color.WHITE) == E1
        assert moved.pieces(Color.WHITE, PieceType.KING) == [D1]

    def test_equality_by_placement(self) -> None:
        a = Board({E1: WHITE_KING})
        b = Board().replace({E1: WHITE_KING})
        assert a == b
        assert hash(a) == hash(b)
        assert a != Board.initial()


class TestErrors:
    def test_missing_king(self) -> None:
        with pytest.raises(ValueError):
            Board().king_square(Color.WHITE)

    def test_invalid_square(self) -> None:
        with pytest.raises(ValueError):
            Board({64: WHITE_KING})


def test_repr_draws_ranks_top_down() -> None:
    lines = repr(Board.initial()).splitlines()
    assert lines[0] == "8 r n b q k b n r"
    assert lines[-1] == "  a b c d e f g h"
