from typing import Optional

from ultimate_ttt.player import Player
from ultimate_ttt.ultimate_board import UltimateBoard

from .base import Agent
from .random_agent import RandomAgent


class RandomStartAgent(Agent):
    """Plays random moves for the first ``random_turns`` plies, then hands
    over to ``agent``.  Used to diversify openings between deterministic
    agents."""

    def __init__(self, random_turns: int, agent: Agent, seed: Optional[int] = None):
        super().__init__()
        if random_turns < 0:
            raise ValueError(f"random_turns must be >= 0, got {random_turns}")
        self.random_turns = random_turns
        self.agent = agent
        self.random_agent = RandomAgent(seed)

    @property
    def name(self):
        return f"RandomStart({self.agent.name})"

    def act(self, board: UltimateBoard, player: Player, turn: int) -> Optional[int]:
        self.player, self.turn = player, turn
        if turn < self.random_turns:
            return self.random_agent.act(board, player, turn)
        return self.agent.act(board, player, turn)

    def config_summary(self) -> str:
        return f"random_turns={self.random_turns}, {self.agent.config_summary()}"
