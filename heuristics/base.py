"""Common interface for position evaluators.

``evaluate(board, perspective)`` returns a score where larger is better for
``perspective``.  Non-terminal scores stay inside ``[MIN_SCORE, MAX_SCORE]``;
won and lost positions map to exactly those bounds, draws to ``0``.
"""
from abc import ABC, abstractmethod

from ultimate_ttt.player import Player
from ultimate_ttt.ultimate_board import GameResult, UltimateBoard

MAX_SCORE = 100_000.0
MIN_SCORE = -MAX_SCORE


class HeuristicConfigError(ValueError):
    """Raised when a heuristic is constructed with unusable parameters."""


def clamp(value: float) -> float:
    return max(MIN_SCORE, min(MAX_SCORE, value))


def terminal_score(board: UltimateBoard, perspective: Player):
    """Score for a finished game, or ``None`` while it is still running."""
    result = board.game_status()
    if result is GameResult.CONTINUE:
        return None
    if result is GameResult.DRAW:
        return 0.0
    return MAX_SCORE if result.winner is perspective else MIN_SCORE


class Heuristic(ABC):
    name = "Heuristic"

    @abstractmethod
    def evaluate(self, board: UltimateBoard, perspective: Player) -> float:
        ...

    def describe(self) -> str:
        return self.name
