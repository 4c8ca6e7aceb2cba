from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ultimate_ttt.player import Player
from ultimate_ttt.ultimate_board import UltimateBoard


@dataclass
class AgentInfo:
    name: str
    player: Optional[Player]
    turn: int
    config: str

    def __str__(self):
        return f"{self.name}[{self.config}]"


class Agent(ABC):
    """Something that picks moves.

    ``act`` receives a board the agent may freely mutate, the player to move
    and the ply number (0 for the first move of the game).  It returns a move
    in ``0..80`` or ``None`` when no legal move exists.
    """

    name = "Agent"

    def __init__(self):
        self.player: Optional[Player] = None
        self.turn = 0

    @abstractmethod
    def act(self, board: UltimateBoard, player: Player, turn: int) -> Optional[int]:
        ...

    def config_summary(self) -> str:
        return ""

    def info(self) -> AgentInfo:
        return AgentInfo(self.name, self.player, self.turn, self.config_summary())
