"""Fixed-depth negamax with alpha-beta pruning.

Optimizations:

* alpha-beta pruning over the board's deterministic move order
* a per-move transposition table keyed by the board's Zobrist hash, storing
  whether each value is exact or only a bound
* quiescence search past the depth limit, restricted to moves that close a
  sub-board, so a sub-board win just behind the horizon is not missed

Setting ``quiescence_depth`` to 0 disables the quiescence search.
"""
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from heuristics.base import Heuristic, clamp
from ultimate_ttt.player import Player
from ultimate_ttt.ultimate_board import UltimateBoard

from .base import Agent
from .config import MiniMaxConfig

logger = logging.getLogger(__name__)

# Larger than any heuristic score, so decided games always dominate.
WIN_SCORE = 1_000_000.0

EXACT = 0
LOWER_BOUND = 1
UPPER_BOUND = 2


@dataclass(slots=True)
class SearchStats:
    nodes: int = 0
    quiescence_nodes: int = 0
    table_hits: int = 0


class MiniMaxAgent(Agent):
    name = "MiniMax"

    def __init__(self, heuristic: Heuristic, config: Optional[MiniMaxConfig] = None):
        super().__init__()
        self.heuristic = heuristic
        self.search_config = config or MiniMaxConfig()
        self.stats = SearchStats()
        self._root_player = Player.ONE
        self._table: Optional[Dict[int, Tuple[int, float, int]]] = None

    def config_summary(self) -> str:
        cfg = self.search_config
        return (f"depth={cfg.depth}, quiescence_depth={cfg.quiescence_depth}, "
                f"heuristic={self.heuristic.describe()}")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def act(self, board: UltimateBoard, player: Player, turn: int) -> Optional[int]:
        self.player, self.turn = player, turn
        if board.to_move is not player:
            raise ValueError(f"asked to move for {player} but {board.to_move} is to move")
        move, value = self.best_move(board)
        if move is not None:
            logger.debug("%s turn %d: move %d value %.2f (%d nodes, %d quiescence, %d table hits)",
                         player, turn, move, value, self.stats.nodes,
                         self.stats.quiescence_nodes, self.stats.table_hits)
        return move

    def best_move(self, board: UltimateBoard) -> Tuple[Optional[int], float]:
        """Root of the search; returns the best move and its negamax value.

        Ties go to the move that comes first in ``legal_moves()`` order.
        """
        moves = list(board.legal_moves())
        if not moves:
            return None, 0.0

        self.stats = SearchStats()
        self._root_player = board.to_move
        self._table = {} if self.search_config.use_transposition_table else None
        depth = self.search_config.depth

        best_move, best_value = moves[0], -math.inf
        alpha, beta = -math.inf, math.inf
        for move in moves:
            record = board.make_move(move)
            value = -self._negamax(board, depth - 1, -beta, -alpha)
            board.undo_move(record)
            if value > best_value:
                best_move, best_value = move, value
            if value > alpha:
                alpha = value
        self._table = None
        return best_move, best_value

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------
    def _negamax(self, board: UltimateBoard, depth: int, alpha: float, beta: float) -> float:
        """Value of ``board`` for the player to move, searched ``depth`` plies."""
        self.stats.nodes += 1
        if board.game_status().is_terminal:
            return self._terminal_value(board, depth)
        if depth == 0:
            return self._quiescence(board, self.search_config.quiescence_depth, alpha, beta)

        original_alpha = alpha
        table = self._table
        if table is not None:
            entry = table.get(board.hash)
            if entry is not None and entry[0] == depth:
                _, value, flag = entry
                self.stats.table_hits += 1
                if flag == EXACT:
                    return value
                if flag == LOWER_BOUND:
                    alpha = max(alpha, value)
                else:
                    beta = min(beta, value)
                if alpha >= beta:
                    return value

        best = -math.inf
        for move in list(board.legal_moves()):
            record = board.make_move(move)
            value = -self._negamax(board, depth - 1, -beta, -alpha)
            board.undo_move(record)
            if value > best:
                best = value
            if value > alpha:
                alpha = value
            if alpha >= beta:
                break

        if table is not None:
            if best <= original_alpha:
                flag = UPPER_BOUND
            elif best >= beta:
                flag = LOWER_BOUND
            else:
                flag = EXACT
            table[board.hash] = (depth, best, flag)
        return best

    def _quiescence(self, board: UltimateBoard, depth: int, alpha: float, beta: float) -> float:
        self.stats.quiescence_nodes += 1
        if board.game_status().is_terminal:
            return self._terminal_value(board, 0)

        stand_pat = self._static_value(board)
        if depth == 0:
            return stand_pat
        noisy = self._noisy_moves(board)
        if not noisy or stand_pat >= beta:
            return stand_pat

        best = stand_pat
        alpha = max(alpha, stand_pat)
        for move in noisy:
            record = board.make_move(move)
            value = -self._quiescence(board, depth - 1, -beta, -alpha)
            board.undo_move(record)
            if value > best:
                best = value
            if value > alpha:
                alpha = value
            if alpha >= beta:
                break
        return best

    # ------------------------------------------------------------------
    # Leaf scoring
    # ------------------------------------------------------------------
    @staticmethod
    def _noisy_moves(board: UltimateBoard) -> List[int]:
        return [m for m in board.legal_moves() if board.closes_sub_board(m)]

    @staticmethod
    def _terminal_value(board: UltimateBoard, depth: int) -> float:
        # More remaining depth means the result came sooner.
        winner = board.game_status().winner
        if winner is None:
            return 0.0
        score = WIN_SCORE + depth
        return score if winner is board.to_move else -score

    def _static_value(self, board: UltimateBoard) -> float:
        # Always evaluate for the root player and flip the sign ourselves, so
        # a heuristic that is not antisymmetric still gives consistent bounds.
        score = clamp(self.heuristic.evaluate(board, self._root_player))
        return score if board.to_move is self._root_player else -score
