import random
from typing import Optional

from ultimate_ttt.player import Player
from ultimate_ttt.ultimate_board import UltimateBoard

from .base import Agent


class RandomAgent(Agent):
    """Plays a uniformly random legal move."""

    name = "Random"

    def __init__(self, seed: Optional[int] = None):
        super().__init__()
        self.rng = random.Random(seed)

    def act(self, board: UltimateBoard, player: Player, turn: int) -> Optional[int]:
        self.player, self.turn = player, turn
        moves = list(board.legal_moves())
        if not moves:
            return None
        return self.rng.choice(moves)
