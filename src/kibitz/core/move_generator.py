"""Legal and pseudo-legal move generation, attack detection and validation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from kibitz.core.enums import CastlingRights, CastlingSide, Color, PieceType
from kibitz.core.errors import IllegalMoveError
from kibitz.core.move import Move
from kibitz.core.piece import Piece
from kibitz.core.position import castling_rook_squares
from kibitz.core.types import Square, file_of, make_square, rank_of, square_name

if TYPE_CHECKING:
    from kibitz.core.position import Position


KNIGHT_OFFSETS: tuple[tuple[int, int], ...] = (
    (-2, -1),
    (-2, 1),
    (-1, -2),
    (-1, 2),
    (1, -2),
    (1, 2),
    (2, -1),
    (2, 1),
)

KING_OFFSETS: tuple[tuple[int, int], ...] = (
    (-1, -1),
    (-1, 0),
    (-1, 1),
    (0, -1),
    (0, 1),
    (1, -1),
    (1, 0),
    (1, 1),
)

BISHOP_DIRS: tuple[tuple[int, int], ...] = ((-1, -1), (-1, 1), (1, -1), (1, 1))
ROOK_DIRS: tuple[tuple[int, int], ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))
QUEEN_DIRS: tuple[tuple[int, int], ...] = BISHOP_DIRS + ROOK_DIRS

_PROMOTION_TYPES: tuple[PieceType, ...] = (
    PieceType.QUEEN,
    PieceType.ROOK,
    PieceType.BISHOP,
    PieceType.KNIGHT,
)

# Home square of each king, keyed by colour.
_KING_HOME: tuple[Square, Square] = (make_square(4, 0), make_square(4, 7))


# -- Precomputed lookup tables ---------------------------------------------


def _build_targets(
    offsets: tuple[tuple[int, int], ...],
) -> tuple[tuple[Square, ...], ...]:
    targets: list[tuple[Square, ...]] = []
    for sq in range(64):
        file_idx = sq & 7
        rank_idx = sq >> 3
        moves: list[Square] = []
        for df, dr in offsets:
            af = file_idx + df
            ar = rank_idx + dr
            if 0 <= af < 8 and 0 <= ar < 8:
                moves.append(make_square(af, ar))
        targets.append(tuple(moves))
    return tuple(targets)


def _build_attack_masks(targets: tuple[tuple[Square, ...], ...]) -> tuple[int, ...]:
    masks: list[int] = [0] * 64
    for sq in range(64):
        mask = 0
        for to_sq in targets[sq]:
            mask |= 1 << to_sq
        masks[sq] = mask
    return tuple(masks)


def _build_pawn_attacker_masks() -> tuple[tuple[int, ...], tuple[int, ...]]:
    """Per target square, the squares a pawn of each colour attacks it from."""
    white_masks: list[int] = [0] * 64
    black_masks: list[int] = [0] * 64

    for sq in range(64):
        file_idx = sq & 7
        rank_idx = sq >> 3

        white_mask = 0
        if rank_idx > 0:
            if file_idx > 0:
                white_mask |= 1 << make_square(file_idx - 1, rank_idx - 1)
            if file_idx < 7:
                white_mask |= 1 << make_square(file_idx + 1, rank_idx - 1)

        black_mask = 0
        if rank_idx < 7:
            if file_idx > 0:
                black_mask |= 1 << make_square(file_idx - 1, rank_idx + 1)
            if file_idx < 7:
                black_mask |= 1 << make_square(file_idx + 1, rank_idx + 1)

        white_masks[sq] = white_mask
        black_masks[sq] = black_mask

    return (tuple(white_masks), tuple(black_masks))


def _build_rays(
    directions: tuple[tuple[int, int], ...],
) -> tuple[tuple[tuple[Square, ...], ...], ...]:
    rays_per_square: list[tuple[tuple[Square, ...], ...]] = []
    for sq in range(64):
        file_idx = sq & 7
        rank_idx = sq >> 3
        square_rays: list[tuple[Square, ...]] = []
        for df, dr in directions:
            af = file_idx + df
            ar = rank_idx + dr
            ray: list[Square] = []
            while 0 <= af < 8 and 0 <= ar < 8:
                ray.append(make_square(af, ar))
                af += df
                ar += dr
            square_rays.append(tuple(ray))
        rays_per_square.append(tuple(square_rays))
    return tuple(rays_per_square)


_KNIGHT_TARGETS = _build_targets(KNIGHT_OFFSETS)
_KING_TARGETS = _build_targets(KING_OFFSETS)
_KNIGHT_ATTACK_MASKS = _build_attack_masks(_KNIGHT_TARGETS)
_KING_ATTACK_MASKS = _build_attack_masks(_KING_TARGETS)
_PAWN_ATTACKER_MASKS = _build_pawn_attacker_masks()

_BISHOP_RAYS = _build_rays(BISHOP_DIRS)
_ROOK_RAYS = _build_rays(ROOK_DIRS)
_QUEEN_RAYS = _build_rays(QUEEN_DIRS)

_SLIDER_RAYS: dict[PieceType, tuple[tuple[tuple[Square, ...], ...], ...]] = {
    PieceType.BISHOP: _BISHOP_RAYS,
    PieceType.ROOK: _ROOK_RAYS,
    PieceType.QUEEN: _QUEEN_RAYS,
}


class MoveGenerator:
    """Generates moves for a given :class:`Position`.

    Legality is decided by playing each candidate with
    :meth:`Position.after` and asking whether the mover's king is attacked
    in the result. The position itself is never touched.
    """

    __slots__ = ("_pos", "_board")

    def __init__(self, position: Position) -> None:
        self._pos = position
        self._board = position.board

    # -- Public API ---------------------------------------------------------

    def generate_legal_moves(self) -> list[Move]:
        """All strictly legal moves for the side to move."""
        return [m for m in self.generate_pseudo_legal_moves() if self._is_legal(m)]

    def generate_pseudo_legal_moves(self) -> list[Move]:
        """All pseudo-legal moves (may leave own king in check)."""
        moves: list[Move] = []
        for sq in self._board.all_pieces(self._pos.side_to_move):
            self._gen_from(sq, moves)
        return moves

    def moves_from(self, sq: Square, *, legal: bool = True) -> list[Move]:
        """Moves of the piece on *sq*; empty unless it belongs to the side to move."""
        piece = self._board[sq]
        if piece is None or piece.color != self._pos.side_to_move:
            return []
        moves: list[Move] = []
        self._gen_from(sq, moves)
        if legal:
            return [m for m in moves if self._is_legal(m)]
        return moves

    def has_legal_move(self) -> bool:
        """Whether the side to move has at least one legal move."""
        for sq in self._board.all_pieces(self._pos.side_to_move):
            if self.moves_from(sq):
                return True
        return False

    # -- Attack detection (public) -----------------------------------------

    def is_in_check(self, color: Color) -> bool:
        """Is *color*'s king attacked by the opponent?"""
        king_sq = self._board.king_square(color)
        return self.is_square_attacked(king_sq, color.opposite)

    def is_square_attacked(self, sq: Square, by_color: Color) -> bool:
        """Is *sq* attacked by any piece of *by_color*?

        Pure reach test: the attacker's own pins are deliberately ignored,
        and *sq* may hold a piece of either colour.
        """
        board = self._board
        by_idx = int(by_color)

        if (
            board.pieces_bitboard(by_color, PieceType.PAWN)
            & _PAWN_ATTACKER_MASKS[by_idx][sq]
        ):
            return True

        if board.pieces_bitboard(by_color, PieceType.KNIGHT) & _KNIGHT_ATTACK_MASKS[sq]:
            return True

        if board.pieces_bitboard(by_color, PieceType.KING) & _KING_ATTACK_MASKS[sq]:
            return True

        if self._ray_hits(_BISHOP_RAYS[sq], by_color, PieceType.BISHOP):
            return True

        return self._ray_hits(_ROOK_RAYS[sq], by_color, PieceType.ROOK)

    def _ray_hits(
        self,
        rays: tuple[tuple[Square, ...], ...],
        by_color: Color,
        slider: PieceType,
    ) -> bool:
        board = self._board
        if not (
            board.pieces_bitboard(by_color, slider)
            or board.pieces_bitboard(by_color, PieceType.QUEEN)
        ):
            return False
        for ray in rays:
            for to_sq in ray:
                piece = board[to_sq]
                if piece is None:
                    continue
                if piece.color == by_color and piece.piece_type in (
                    slider,
                    PieceType.QUEEN,
                ):
                    return True
                break
        return False

    # -- Legality and dispatch (private) -----------------------------------

    def _is_legal(self, move: Move) -> bool:
        return not MoveGenerator(self._pos.after(move)).is_in_check(move.piece.color)

    def _gen_from(self, sq: Square, moves: list[Move]) -> None:
        piece = self._board[sq]
        assert piece is not None
        ptype = piece.piece_type
        if ptype == PieceType.PAWN:
            self._gen_pawn(sq, piece, moves)
        elif ptype == PieceType.KNIGHT:
            self._gen_steps(sq, piece, _KNIGHT_TARGETS[sq], moves)
        elif ptype == PieceType.KING:
            self._gen_steps(sq, piece, _KING_TARGETS[sq], moves)
            self._gen_castling(sq, piece, moves)
        else:
            self._gen_sliding(sq, piece, _SLIDER_RAYS[ptype][sq], moves)

    # -- Piece-specific generators (private) -------------------------------

    def _gen_pawn(self, sq: Square, pawn: Piece, moves: list[Move]) -> None:
        board = self._board
        color = pawn.color
        file_idx = file_of(sq)
        rank_idx = rank_of(sq)

        if color == Color.WHITE:
            step, start_rank, last_rank = 8, 1, 7
        else:
            step, start_rank, last_rank = -8, 6, 0

        next_rank = rank_idx + (1 if color == Color.WHITE else -1)
        if not 0 <= next_rank < 8:
            return
        promotes = next_rank == last_rank

        one_step = sq + step
        if board.is_empty(one_step):
            self._add_pawn_move(sq, one_step, pawn, None, promotes, moves)
            if rank_idx == start_rank:
                two_step = one_step + step
                if board.is_empty(two_step):
                    moves.append(Move(sq, two_step, pawn))

        for df in (-1, 1):
            cap_file = file_idx + df
            if not 0 <= cap_file < 8:
                continue
            cap_sq = make_square(cap_file, next_rank)
            target = board[cap_sq]
            if target is not None:
                if target.color != color:
                    self._add_pawn_move(sq, cap_sq, pawn, target, promotes, moves)
            elif cap_sq == self._pos.en_passant:
                victim = board[make_square(cap_file, rank_idx)]
                if (
                    victim is not None
                    and victim.color != color
                    and victim.piece_type == PieceType.PAWN
                ):
                    moves.append(Move(sq, cap_sq, pawn, victim, en_passant=True))

    @staticmethod
    def _add_pawn_move(
        from_sq: Square,
        to_sq: Square,
        pawn: Piece,
        captured: Piece | None,
        promotes: bool,
        moves: list[Move],
    ) -> None:
        if not promotes:
            moves.append(Move(from_sq, to_sq, pawn, captured))
            return
        for pt in _PROMOTION_TYPES:
            moves.append(Move(from_sq, to_sq, pawn, captured, promotion=pt))

    def _gen_steps(
        self,
        sq: Square,
        piece: Piece,
        targets: tuple[Square, ...],
        moves: list[Move],
    ) -> None:
        board = self._board
        for to_sq in targets:
            target = board[to_sq]
            if target is None or target.color != piece.color:
                moves.append(Move(sq, to_sq, piece, target))

    def _gen_sliding(
        self,
        sq: Square,
        piece: Piece,
        rays: tuple[tuple[Square, ...], ...],
        moves: list[Move],
    ) -> None:
        board = self._board
        for ray in rays:
            for to_sq in ray:
                target = board[to_sq]
                if target is None:
                    moves.append(Move(sq, to_sq, piece))
                    continue
                if target.color != piece.color:
                    moves.append(Move(sq, to_sq, piece, target))
                break

    def _gen_castling(self, king_sq: Square, king: Piece, moves: list[Move]) -> None:
        color = king.color
        if king_sq != _KING_HOME[int(color)]:
            return
        if not self._pos.castling & (
            CastlingRights.WHITE_BOTH if color == Color.WHITE else CastlingRights.BLACK_BOTH
        ):
            return

        opponent = color.opposite
        if self.is_square_attacked(king_sq, opponent):
            return

        board = self._board
        for side in (CastlingSide.KINGSIDE, CastlingSide.QUEENSIDE):
            if not self._pos.has_castling_right(color, side):
                continue
            rook_sq, _ = castling_rook_squares(color, side)
            rook = board[rook_sq]
            if rook != Piece(color, PieceType.ROOK):
                continue

            step = 1 if side == CastlingSide.KINGSIDE else -1
            between = range(king_sq + step, rook_sq, step)
            if any(not board.is_empty(sq) for sq in between):
                continue

            pass_sq = king_sq + step
            dest_sq = king_sq + 2 * step
            if self.is_square_attacked(pass_sq, opponent) or self.is_square_attacked(
                dest_sq, opponent
            ):
                continue
            moves.append(Move(king_sq, dest_sq, king, castling=side))


# -- Functional contract ---------------------------------------------------


def pseudo_legal_moves(position: Position, sq: Square) -> set[Square]:
    """Destination squares reachable from *sq*, ignoring king safety."""
    gen = MoveGenerator(position)
    return {m.to_sq for m in gen.moves_from(sq, legal=False)}


def legal_moves(position: Position, sq: Square) -> set[Square]:
    """Destination squares of the legal moves from *sq*."""
    return {m.to_sq for m in MoveGenerator(position).moves_from(sq)}


def find_move(
    position: Position,
    from_sq: Square,
    to_sq: Square,
    promotion: PieceType | None = None,
) -> Move:
    """The legal :class:`Move` going from *from_sq* to *to_sq*.

    A pawn reaching the last rank without an explicit *promotion* becomes a
    queen. Raises :class:`IllegalMoveError` when no such move exists.
    """
    candidates = [
        m for m in MoveGenerator(position).moves_from(from_sq) if m.to_sq == to_sq
    ]
    if candidates and candidates[0].promotion is not None:
        wanted = promotion if promotion is not None else PieceType.QUEEN
        candidates = [m for m in candidates if m.promotion == wanted]
    elif promotion is not None:
        candidates = []

    if not candidates:
        label = square_name(from_sq) + square_name(to_sq)
        raise IllegalMoveError(f"Illegal move: {label}")
    return candidates[0]


def apply_move(position: Position, move: Move) -> Position:
    """Validate *move* against *position* and return the resulting position.

    Raises :class:`IllegalMoveError` if *move* is not one of the legal moves
    from ``move.from_sq``; *position* is unchanged either way.
    """
    if move not in MoveGenerator(position).moves_from(move.from_sq):
        raise IllegalMoveError(f"Illegal move: {move.uci}")
    return position.after(move)
