from __future__ import annotations

import dataclasses
import logging
import math
import random
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from agents.base import Agent
from agents.config import MCTSConfig
from ultimate_ttt.player import Player
from ultimate_ttt.ultimate_board import GameResult, UltimateBoard

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MCTSNode:
    """A single node of the search tree.

    Nodes do not keep a board; the position is rebuilt by replaying moves from
    the root.  ``total_reward`` is counted for the player who made ``move``
    (the player to move at the parent), so a parent simply prefers the child
    with the highest value.  ``parent`` and ``children`` hold handles into
    :attr:`SearchTree.nodes`.
    """

    move: Optional[int]
    parent: Optional[int]
    to_move: Player
    board_hash: int
    untried: List[int]
    terminal_result: GameResult
    children: Dict[int, int] = field(default_factory=dict)
    visit_count: int = 0
    total_reward: float = 0.0

    @property
    def is_terminal(self) -> bool:
        return self.terminal_result.is_terminal

    def is_fully_expanded(self) -> bool:
        return not self.untried

    def average_value(self) -> float:
        return 0.0 if self.visit_count == 0 else self.total_reward / self.visit_count

    def update(self, result: GameResult) -> None:
        self.visit_count += 1
        self.total_reward += result.reward_for(self.to_move.opponent())

    def __str__(self):
        return (f"MCTSNode(move={self.move}, visits={self.visit_count}, "
                f"avg={self.average_value():.3f}, children={len(self.children)})")


class SearchTree:
    """Arena of :class:`MCTSNode` objects addressed by integer handle."""

    def __init__(self, board: UltimateBoard):
        self.nodes: List[MCTSNode] = []
        self.root = self.add_node(board, move=None, parent=None)

    @property
    def root_node(self) -> MCTSNode:
        return self.nodes[self.root]

    def __len__(self):
        return len(self.nodes)

    def add_node(self, board: UltimateBoard, move: Optional[int], parent: Optional[int]) -> int:
        node = MCTSNode(
            move=move,
            parent=parent,
            to_move=board.to_move,
            board_hash=board.hash,
            untried=list(board.legal_moves()),
            terminal_result=board.game_status(),
        )
        self.nodes.append(node)
        handle = len(self.nodes) - 1
        if parent is not None:
            self.nodes[parent].children[move] = handle
        return handle

    def subtree(self, handle: int) -> "SearchTree":
        """Copy the subtree below ``handle`` into a fresh, compact arena."""
        tree = SearchTree.__new__(SearchTree)
        tree.nodes = []
        tree.root = 0
        remap = {handle: 0}
        queue = deque([handle])
        while queue:
            old = queue.popleft()
            node = self.nodes[old]
            tree.nodes.append(dataclasses.replace(
                node,
                parent=None if old == handle else remap[node.parent],
                untried=list(node.untried),
                children={},
            ))
            for move, child in node.children.items():
                remap[child] = len(remap)
                queue.append(child)
        for old, new in remap.items():
            tree.nodes[new].children = {
                move: remap[child] for move, child in self.nodes[old].children.items()
            }
        return tree


class MonteCarloTreeAgent(Agent):
    """UCT search with uniformly random rollouts.

    Each iteration selects down the tree by UCB1, expands one untried move,
    plays a random game to the end and backs the result up the path.  The
    move played is the root child with the most visits.
    """

    name = "MCTS"

    def __init__(self, config: Optional[MCTSConfig] = None):
        super().__init__()
        self.search_config = config or MCTSConfig()
        self.rng = random.Random(self.search_config.seed)
        self.tree: Optional[SearchTree] = None
        self.last_tree: Optional[SearchTree] = None
        self.last_iterations = 0
        self.reused_tree = False

    def config_summary(self) -> str:
        cfg = self.search_config
        return (f"iterations={cfg.iterations}, c={cfg.c_param:.3f}, "
                f"time_limit={cfg.time_limit}, reuse_tree={cfg.reuse_tree}")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def act(self, board: UltimateBoard, player: Player, turn: int) -> Optional[int]:
        self.player, self.turn = player, turn
        if board.to_move is not player:
            raise ValueError(f"asked to move for {player} but {board.to_move} is to move")
        if not board.has_legal_moves():
            self.tree = None
            return None

        tree = self._tree_for(board)
        self.search(tree, board)
        move = self._best_move(tree)
        self.last_tree = tree
        if self.search_config.reuse_tree:
            self.tree = tree.subtree(tree.root_node.children[move])
        else:
            self.tree = None

        child = tree.nodes[tree.root_node.children[move]]
        logger.debug("%s turn %d: move %d after %d iterations (visits=%d avg=%.3f tree=%d reused=%s)",
                     player, turn, move, self.last_iterations, child.visit_count,
                     child.average_value(), len(tree), self.reused_tree)
        return move

    def search(self, tree: SearchTree, board: UltimateBoard) -> int:
        """Run the iteration budget on ``tree`` rooted at ``board``.

        Returns the number of iterations actually run; fewer than configured
        only when the time limit cut the search short.
        """
        cfg = self.search_config
        root = tree.root_node
        start_visits = root.visit_count
        started = time.perf_counter()

        iterations = 0
        for i in range(cfg.iterations):
            if cfg.time_limit is not None and i > 0 and time.perf_counter() - started >= cfg.time_limit:
                break
            self._iterate(tree, board)
            iterations += 1

        assert root.visit_count == start_visits + iterations, (
            f"root.visit_count={root.visit_count} but expected {start_visits + iterations}")
        self.last_iterations = iterations
        return iterations

    def root_statistics(self, tree: Optional[SearchTree] = None) -> Dict[int, Tuple[int, float]]:
        tree = tree or self.last_tree
        if tree is None:
            return {}
        return {
            move: (tree.nodes[h].visit_count, tree.nodes[h].average_value())
            for move, h in tree.root_node.children.items()
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _tree_for(self, board: UltimateBoard) -> SearchTree:
        self.reused_tree = False
        previous = self.tree
        if not self.search_config.reuse_tree or previous is None:
            return SearchTree(board)
        # The retained root is the position after our last move; the new board
        # should be one of its children unless the game was set up elsewhere.
        for handle in previous.root_node.children.values():
            node = previous.nodes[handle]
            if node.board_hash == board.hash and node.to_move is board.to_move:
                self.reused_tree = True
                return previous.subtree(handle)
        return SearchTree(board)

    def _iterate(self, tree: SearchTree, board: UltimateBoard) -> None:
        nodes = tree.nodes
        scratch = board.copy()
        handle = tree.root
        node = nodes[handle]

        # --------------- SELECTION ------------------
        while not node.is_terminal and node.is_fully_expanded():
            handle = self._best_child(tree, node)
            node = nodes[handle]
            scratch.make_move(node.move)

        # --------------- EXPANSION ------------------
        if not node.is_terminal:
            move = node.untried.pop(self.rng.randrange(len(node.untried)))
            scratch.make_move(move)
            handle = tree.add_node(scratch, move, handle)
            node = nodes[handle]

        # --------------- SIMULATION -----------------
        if node.is_terminal:
            result = node.terminal_result
        else:
            result = scratch.random_playout(self.rng)

        # --------------- BACKPROP -------------------
        while handle is not None:
            node = nodes[handle]
            node.update(result)
            handle = node.parent

    def _best_child(self, tree: SearchTree, node: MCTSNode) -> int:
        """UCB1 selection among the node's expanded children."""
        assert node.children, "best_child called on a leaf"
        c_param = self.search_config.c_param
        ln_parent = math.log(node.visit_count)
        best_score = -math.inf
        best_children = []
        for handle in node.children.values():
            child = tree.nodes[handle]
            score = child.average_value() + c_param * math.sqrt(ln_parent / child.visit_count)
            if score > best_score + 1e-12:
                best_score = score
                best_children = [handle]
            elif abs(score - best_score) <= 1e-12:
                best_children.append(handle)
        return self.rng.choice(best_children)

    @staticmethod
    def _best_move(tree: SearchTree) -> int:
        root = tree.root_node
        assert root.children, "No actions available from root"
        best_move, best_key = None, None
        for move, handle in root.children.items():
            child = tree.nodes[handle]
            key = (child.visit_count, child.average_value())
            if best_key is None or key > best_key:
                best_move, best_key = move, key
        return best_move
