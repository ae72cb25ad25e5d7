"""User-configurable analysis settings."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class AnalysisSettings:
    """All knobs of an analysis session."""

    # Process
    engine_path: str = "stockfish"
    engine_args: tuple[str, ...] = field(default_factory=tuple)
    start_timeout_ms: int = 5000
    quit_timeout_ms: int = 1000

    # Search
    multipv: int = 5
    depth: int = 20
    analyse_mode: bool = True

    # Display
    figurine_notation: bool = False

    def __post_init__(self) -> None:
        if self.multipv < 1:
            raise ValueError(f"multipv must be >= 1, got {self.multipv}")
        if self.depth < 1:
            raise ValueError(f"depth must be >= 1, got {self.depth}")
        if self.start_timeout_ms <= 0 or self.quit_timeout_ms < 0:
            raise ValueError("Process timeouts must be positive")
        self.engine_args = tuple(self.engine_args)
