"""Exceptions raised by the chess core."""

from __future__ import annotations


class IllegalMoveError(ValueError):
    """A requested move is not among the legal moves of the position.

    The position the move was tried against is left untouched.
    """


class MalformedPositionError(ValueError):
    """A serialized position could not be turned into a valid position."""
