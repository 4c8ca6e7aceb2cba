import logging
from typing import List, Optional

from .player import Player
from .ultimate_board import GameResult, IllegalMoveError, UltimateBoard

logger = logging.getLogger(__name__)


class AgentProtocolError(RuntimeError):
    """An agent returned no move although the game is still running."""


class Game:
    """Drives one game between two agents.

    Each agent receives a private copy of the board, so nothing an agent does
    during its search can touch the authoritative position.
    """

    def __init__(self, agent_one, agent_two, board: Optional[UltimateBoard] = None):
        self.agents = {Player.ONE: agent_one, Player.TWO: agent_two}
        self.board = board if board is not None else UltimateBoard()
        self.moves: List[int] = []

    def play(self) -> GameResult:
        turn = self.board.move_count
        while not self.board.game_status().is_terminal:
            player = self.board.to_move
            agent = self.agents[player]
            move = agent.act(self.board.copy(), player, turn)

            if move is None:
                self._report(f"{agent.info().name} ({player}) returned no move on turn {turn}")
                raise AgentProtocolError(
                    f"{player} returned no move although the game is still running")

            try:
                self.board.make_move(move)
            except IllegalMoveError:
                self._report(f"{agent.info().name} ({player}) played illegal move {move} on turn {turn}")
                raise

            self.moves.append(move)
            logger.debug("turn %d: %s played %d", turn, player, move)
            turn += 1

        logger.info("game finished after %d moves: %s", len(self.moves), self.board.game_status().name)
        return self.board.game_status()

    def _report(self, headline: str) -> None:
        logger.error(headline)
        logger.error("board:\n%s", self.board)
        logger.error("state: %s", self.board.describe())
        logger.error("legal moves: %s", list(self.board.legal_moves()))
