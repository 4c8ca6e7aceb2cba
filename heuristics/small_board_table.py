"""Precomputed features for every reachable 3x3 position.

A sub-board is indexed by ``BitBoard.key()`` (``one | two << 9``), so a dense
array of ``2 ** 18`` rows covers every mask pair; only the ``3 ** 9`` pairs
without overlapping bits are filled in.  All rows are computed from
``Player.ONE``'s point of view; negate them for ``Player.TWO``.
"""
from functools import lru_cache

import numpy as np

from ultimate_ttt.bitboard import FULL_MASK, BitBoard
from ultimate_ttt.player import Player

TABLE_SIZE = 1 << 18

POSITIONS = 0
PARTIAL_WINS = 1
CENTER = 2
CORNERS = 3
EDGES = 4
NUM_SMALL_FEATURES = 5


def small_board_features(board: BitBoard, player: Player = Player.ONE):
    return (
        board.positions_difference(player),
        board.partial_wins_difference(player),
        board.center_difference(player),
        board.corners_difference(player),
        board.edges_difference(player),
    )


def legal_mask_pairs():
    """Yield every ``(one, two)`` pair of disjoint 9-bit masks."""
    for one in range(FULL_MASK + 1):
        free = ~one & FULL_MASK
        two = free
        while True:
            yield one, two
            if two == 0:
                break
            two = (two - 1) & free


@lru_cache(maxsize=None)
def feature_table() -> np.ndarray:
    table = np.zeros((TABLE_SIZE, NUM_SMALL_FEATURES), dtype=np.float64)
    for one, two in legal_mask_pairs():
        table[one | two << 9] = small_board_features(BitBoard(one, two))
    table.setflags(write=False)
    return table
