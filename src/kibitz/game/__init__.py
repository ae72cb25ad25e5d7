"""Game layer: move history navigation and the board-facing controller."""

from kibitz.game.controller import GameController, GameEvents
from kibitz.game.timeline import Timeline

__all__ = ["GameController", "GameEvents", "Timeline"]
