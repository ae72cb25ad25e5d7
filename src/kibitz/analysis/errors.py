"""Errors raised by the analysis layer."""

from __future__ import annotations


class EngineUnavailableError(RuntimeError):
    """The analysis process could not be started or went away.

    Analysis is lost as a capability; the chess core keeps working.
    """
