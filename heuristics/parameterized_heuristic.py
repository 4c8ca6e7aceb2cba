"""Linear evaluator whose weights come from outside (e.g. a weight tuner).

Features, each measured from ``perspective``:

 0. sub-boards won
 1. sub-boards lost
 2. sub-boards drawn
 3. mark difference over open sub-boards
 4. open two-in-a-row difference over open sub-boards
 5. sub-board centers held, difference
 6. sub-board corners held, difference
 7. sub-board edges held, difference
 8. outer center won (+1) or lost (-1)
 9. outer corners, won minus lost
10. outer edges, won minus lost
11. outer two-in-a-row difference
12. free choice of sub-board: +1 if ``perspective`` is to move with it,
    -1 if the opponent is

Features 0-2 are not antisymmetric, so a weight vector only yields
``evaluate(b, A) == -evaluate(b, B)`` when ``w[0] == -w[1]`` and ``w[2] == 0``.
"""
import json
from pathlib import Path
from typing import Sequence, Union

import numpy as np

from ultimate_ttt.bitboard import SubBoardStatus
from ultimate_ttt.player import Player
from ultimate_ttt.ultimate_board import UltimateBoard

from .base import Heuristic, HeuristicConfigError, clamp, terminal_score
from .small_board_table import feature_table

NUM_FEATURES = 13
WEIGHT_LIMIT = 1000.0

DEFAULT_WEIGHTS = (
    20.0, -20.0, 0.0,
    1.0, 2.0, 0.5, 0.3, 0.1,
    10.0, 3.0, 1.0, 15.0,
    2.0,
)


class ParameterizedHeuristic(Heuristic):
    name = "ParameterizedHeuristic"

    def __init__(self, weights: Sequence[float] = DEFAULT_WEIGHTS):
        try:
            vector = np.array(weights, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise HeuristicConfigError(f"weights must be numbers: {exc}") from exc
        if vector.ndim != 1 or vector.shape[0] != NUM_FEATURES:
            raise HeuristicConfigError(
                f"expected {NUM_FEATURES} weights, got shape {vector.shape}")
        if not np.all(np.isfinite(vector)):
            raise HeuristicConfigError("weights must be finite")
        if np.any(np.abs(vector) > WEIGHT_LIMIT):
            raise HeuristicConfigError(f"weights must lie within +-{WEIGHT_LIMIT}")
        vector.setflags(write=False)
        self.weights = vector
        self._small = feature_table()

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ParameterizedHeuristic":
        """Load weights from JSON: either a list or ``{"weights": [...]}``."""
        with Path(path).open() as f:
            data = json.load(f)
        if isinstance(data, dict):
            if "weights" not in data:
                raise HeuristicConfigError(f"{path}: no 'weights' entry")
            data = data["weights"]
        return cls(data)

    def features(self, board: UltimateBoard, perspective: Player) -> np.ndarray:
        opponent = perspective.opponent()
        result = np.zeros(NUM_FEATURES, dtype=np.float64)
        open_keys = []
        for sub, status in enumerate(board.sub_board_statuses()):
            winner = status.winner
            if winner is perspective:
                result[0] += 1
            elif winner is opponent:
                result[1] += 1
            elif status is SubBoardStatus.DRAWN:
                result[2] += 1
            else:
                open_keys.append(board.sub_boards[sub].key())
        if open_keys:
            sign = 1.0 if perspective is Player.ONE else -1.0
            result[3:8] = sign * self._small[open_keys].sum(axis=0)

        outer = board.outer
        result[8] = outer.center_difference(perspective)
        result[9] = outer.corners_difference(perspective)
        result[10] = outer.edges_difference(perspective)
        result[11] = outer.partial_wins_difference(perspective)
        if board.active_sub_board is None and not board.game_status().is_terminal:
            result[12] = 1.0 if board.to_move is perspective else -1.0
        return result

    def evaluate(self, board: UltimateBoard, perspective: Player) -> float:
        terminal = terminal_score(board, perspective)
        if terminal is not None:
            return terminal
        return clamp(float(self.weights @ self.features(board, perspective)))

    def describe(self) -> str:
        return f"{self.name}(weights={[round(float(w), 4) for w in self.weights]})"
