import random

from ultimate_ttt.player import Player
from ultimate_ttt.ultimate_board import UltimateBoard

from .base import Heuristic, HeuristicConfigError, terminal_score

ROLLOUT_SCALE = 100.0


class RolloutHeuristic(Heuristic):
    """Scores a position by the mean outcome of random playouts.

    The playouts are seeded from the position's hash, so the score is a pure
    function of the board and the same playouts are used for both
    perspectives (the result is exactly antisymmetric).  Slow compared to the
    static heuristics; keep ``simulations`` small when used inside minimax.
    """

    name = "RolloutHeuristic"

    def __init__(self, simulations: int = 20, seed: int = 0):
        if isinstance(simulations, bool) or not isinstance(simulations, int) or simulations < 1:
            raise HeuristicConfigError(f"simulations must be a positive integer, got {simulations!r}")
        self.simulations = simulations
        self.seed = seed

    def evaluate(self, board: UltimateBoard, perspective: Player) -> float:
        terminal = terminal_score(board, perspective)
        if terminal is not None:
            return terminal

        rng = random.Random(self.seed ^ board.hash)
        total = 0.0
        for _ in range(self.simulations):
            total += board.random_playout(rng).reward_for(Player.ONE)
        value = ROLLOUT_SCALE * total / self.simulations
        return value if perspective is Player.ONE else -value

    def describe(self) -> str:
        return f"{self.name}(simulations={self.simulations})"
