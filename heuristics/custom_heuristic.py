"""Hand-tuned static evaluator.

Open sub-boards are scored by mark balance plus two points per open
two-in-a-row; closed sub-boards count as won or lost cells of the outer
board, with a bonus for the center and for two-in-a-row threats on the outer
board.  Every term is a difference between the two players, so
``evaluate(b, ONE) == -evaluate(b, TWO)``.
"""
from functools import lru_cache

import numpy as np

from ultimate_ttt.bitboard import CENTER_INDEX
from ultimate_ttt.player import Player
from ultimate_ttt.ultimate_board import UltimateBoard

from .base import Heuristic, clamp, terminal_score
from .small_board_table import PARTIAL_WINS, POSITIONS, feature_table

SUB_BOARD_WON = 20.0
CENTER_BONUS = 10.0
OUTER_THREAT = 15.0
PARTIAL_WIN_WEIGHT = 2.0


@lru_cache(maxsize=None)
def small_board_values() -> np.ndarray:
    table = feature_table()
    values = table[:, POSITIONS] + PARTIAL_WIN_WEIGHT * table[:, PARTIAL_WINS]
    values.setflags(write=False)
    return values


class CustomHeuristic(Heuristic):
    name = "CustomHeuristic"

    def __init__(self):
        self._values = small_board_values()

    def evaluate(self, board: UltimateBoard, perspective: Player) -> float:
        terminal = terminal_score(board, perspective)
        if terminal is not None:
            return terminal

        sign = 1.0 if perspective is Player.ONE else -1.0
        value = 0.0
        for sub, small in enumerate(board.sub_boards):
            status = board.status(sub)
            if status.is_open:
                value += sign * self._values[small.key()]
            elif status.winner is perspective:
                value += SUB_BOARD_WON
            elif status.winner is not None:
                value -= SUB_BOARD_WON

        center = board.status(CENTER_INDEX).winner
        if center is perspective:
            value += CENTER_BONUS
        elif center is not None:
            value -= CENTER_BONUS

        value += OUTER_THREAT * board.partial_wins_difference(perspective)
        return clamp(float(value))
