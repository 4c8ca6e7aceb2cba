from enum import Enum


class Player(Enum):
    """The two sides of the game. ``ONE`` always moves first and plays ``X``."""

    ONE = 0
    TWO = 1

    @property
    def symbol(self) -> str:
        return "X" if self is Player.ONE else "O"

    def opponent(self) -> "Player":
        return Player.TWO if self is Player.ONE else Player.ONE

    def __str__(self):
        return f"Player {self.symbol}"


def get_opponent(player: Player) -> Player:
    return player.opponent()
