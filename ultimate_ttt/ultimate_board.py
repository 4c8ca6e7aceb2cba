"""The full Ultimate Tic-Tac-Toe position.

Nine :class:`BitBoard` sub-boards plus one outer :class:`BitBoard` that
records which sub-boards each player has won.  Moves are plain integers
``0..80``: ``move // 9`` is the sub-board and ``move % 9`` the cell inside it.

The board is mutated in place by :meth:`UltimateBoard.make_move`.  Search code
either works on :meth:`UltimateBoard.copy` or keeps the :class:`UndoRecord`
returned by ``make_move`` and hands it back to :meth:`UltimateBoard.undo_move`.
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import numpy as np

from .bitboard import FULL_MASK, WIN_MASKS, BitBoard, SubBoardStatus
from .player import Player, get_opponent

NUM_MOVES = 81

# One key per (move, player) followed by one key per active sub-board value.
_ZOBRIST_ACTIVE_OFFSET = NUM_MOVES * 2
_ZOBRIST_KEYS: Tuple[int, ...] = tuple(
    int(v) for v in np.random.default_rng(0).integers(
        1, 2 ** 63 - 1, size=_ZOBRIST_ACTIVE_OFFSET + 9, dtype=np.int64)
)

_OVERLAYS = {
    SubBoardStatus.WON_ONE: ("\\   /", "  X  ", "/   \\"),
    SubBoardStatus.WON_TWO: ("/ - \\", "|   |", "\\ - /"),
    SubBoardStatus.DRAWN: ("# # #", "# # #", "# # #"),
}
_RULE = "-" * 6 + "+" + "-" * 7 + "+" + "-" * 6
_SETUP_IGNORED = set(" \t\r\n|-+")


class IllegalMoveError(ValueError):
    """Raised when a move breaks the rules for the current position."""


class GameResult(Enum):
    CONTINUE = "continue"
    WIN_ONE = "win_one"
    WIN_TWO = "win_two"
    DRAW = "draw"

    @classmethod
    def win(cls, player: Player) -> "GameResult":
        return cls.WIN_ONE if player is Player.ONE else cls.WIN_TWO

    @property
    def winner(self) -> Optional[Player]:
        if self is GameResult.WIN_ONE:
            return Player.ONE
        if self is GameResult.WIN_TWO:
            return Player.TWO
        return None

    @property
    def is_terminal(self) -> bool:
        return self is not GameResult.CONTINUE

    def reward_for(self, player: Player) -> float:
        """+1 for a win, -1 for a loss, 0 for a draw or an unfinished game."""
        winner = self.winner
        if winner is None:
            return 0.0
        return 1.0 if winner is player else -1.0


def encode_move(sub_board: int, cell: int) -> int:
    if not (0 <= sub_board <= 8 and 0 <= cell <= 8):
        raise IllegalMoveError(f"sub-board {sub_board} / cell {cell} out of range 0..8")
    return sub_board * 9 + cell


def decode_move(move: int) -> Tuple[int, int]:
    if not 0 <= move < NUM_MOVES:
        raise IllegalMoveError(f"move {move} out of range 0..80")
    return divmod(move, 9)


@dataclass(frozen=True, slots=True)
class UndoRecord:
    """Everything ``make_move`` changes, captured before the move."""

    move: int
    player: Player
    active_sub_board: Optional[int]
    sub_board_status: SubBoardStatus
    outer: Tuple[int, int]
    closed: int
    result: GameResult
    hash: int


class UltimateBoard:
    __slots__ = ("sub_boards", "outer", "_statuses", "closed", "active_sub_board",
                 "to_move", "result", "move_count", "hash")

    def __init__(self):
        self.sub_boards: List[BitBoard] = [BitBoard() for _ in range(9)]
        self.outer = BitBoard()
        self._statuses: List[SubBoardStatus] = [SubBoardStatus.OPEN] * 9
        # bit b set once sub-board b is won or drawn
        self.closed = 0
        self.active_sub_board: Optional[int] = None
        self.to_move = Player.ONE
        self.result = GameResult.CONTINUE
        self.move_count = 0
        self.hash = 0

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    @classmethod
    def from_moves(cls, moves: Iterable[int]) -> "UltimateBoard":
        board = cls()
        for move in moves:
            board.make_move(move)
        return board

    @classmethod
    def from_string(cls, text: str, to_move: Optional[Player] = None,
                    active_sub_board: Optional[int] = None) -> "UltimateBoard":
        """Set up an arbitrary position.

        ``text`` holds 81 cells in move-index order (sub-board 0 cells 0..8,
        then sub-board 1, ...).  ``X`` and ``O`` are marks, ``.`` is empty;
        whitespace and the ``| - +`` separators are ignored.
        """
        cells = [ch for ch in text if ch not in _SETUP_IGNORED]
        if len(cells) != NUM_MOVES:
            raise IllegalMoveError(f"expected {NUM_MOVES} cells, got {len(cells)}")

        board = cls()
        counts = {Player.ONE: 0, Player.TWO: 0}
        for move, ch in enumerate(cells):
            if ch == ".":
                continue
            if ch in "Xx":
                player = Player.ONE
            elif ch in "Oo":
                player = Player.TWO
            else:
                raise IllegalMoveError(f"unexpected character {ch!r} at cell {move}")
            sub, cell = divmod(move, 9)
            board.sub_boards[sub].play(cell, player)
            board.hash ^= _piece_key(move, player)
            counts[player] += 1

        for sub, small in enumerate(board.sub_boards):
            if small.is_won_by(Player.ONE) and small.is_won_by(Player.TWO):
                raise IllegalMoveError(f"sub-board {sub} is won by both players")
            status = small.status()
            board._statuses[sub] = status
            if not status.is_open:
                board.closed |= 1 << sub
            if status.winner is not None:
                board.outer.play(sub, status.winner)
        board._check_outer_lines()
        board.result = board._compute_result()
        board.move_count = counts[Player.ONE] + counts[Player.TWO]

        if to_move is None:
            if counts[Player.ONE] == counts[Player.TWO]:
                to_move = Player.ONE
            elif counts[Player.ONE] == counts[Player.TWO] + 1:
                to_move = Player.TWO
            else:
                raise IllegalMoveError(
                    f"cannot infer player to move from {counts[Player.ONE]} X and "
                    f"{counts[Player.TWO]} O marks")
        board.to_move = to_move

        if active_sub_board is not None:
            if not 0 <= active_sub_board <= 8:
                raise IllegalMoveError(f"active sub-board {active_sub_board} out of range 0..8")
            if not board._statuses[active_sub_board].is_open:
                raise IllegalMoveError(f"active sub-board {active_sub_board} is already closed")
            board.active_sub_board = active_sub_board
            board.hash ^= _active_key(active_sub_board)
        return board

    def copy(self) -> "UltimateBoard":
        clone = UltimateBoard.__new__(UltimateBoard)
        clone.sub_boards = [BitBoard(b.one, b.two) for b in self.sub_boards]
        clone.outer = BitBoard(self.outer.one, self.outer.two)
        clone._statuses = list(self._statuses)
        clone.closed = self.closed
        clone.active_sub_board = self.active_sub_board
        clone.to_move = self.to_move
        clone.result = self.result
        clone.move_count = self.move_count
        clone.hash = self.hash
        return clone

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def game_status(self) -> GameResult:
        return self.result

    @property
    def winner(self) -> Optional[Player]:
        return self.result.winner

    def status(self, sub_board: int) -> SubBoardStatus:
        return self._statuses[sub_board]

    def sub_board_statuses(self) -> Tuple[SubBoardStatus, ...]:
        return tuple(self._statuses)

    def is_open(self, sub_board: int) -> bool:
        return not self.closed >> sub_board & 1

    def playable_sub_boards(self) -> List[int]:
        if self.result.is_terminal:
            return []
        active = self.active_sub_board
        if active is not None and self._statuses[active].is_open:
            return [active]
        return [b for b in range(9) if not self.closed >> b & 1]

    def legal_moves(self) -> Iterator[int]:
        """Yield legal moves in ascending order.

        The generator is lazy; call ``legal_moves()`` again to restart.  It
        must not be consumed across a ``make_move`` on the same board.
        """
        for sub in self.playable_sub_boards():
            for cell in self.sub_boards[sub].empty_cells():
                yield encode_move(sub, cell)

    def has_legal_moves(self) -> bool:
        return next(self.legal_moves(), None) is not None

    def is_legal(self, move: int) -> bool:
        if not 0 <= move < NUM_MOVES:
            return False
        sub, cell = divmod(move, 9)
        return sub in self.playable_sub_boards() and not self.sub_boards[sub].is_set(cell)

    def closes_sub_board(self, move: int) -> bool:
        """True if playing ``move`` now would win or fill its sub-board."""
        sub, cell = divmod(move, 9)
        small = self.sub_boards[sub]
        bit = 1 << cell
        if (small.occupied | bit) == FULL_MASK:
            return True
        marks = small.mask(self.to_move) | bit
        return any(marks & line == line for line in WIN_MASKS)

    def partial_wins_difference(self, player: Player) -> int:
        return self.outer.partial_wins_difference(player)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def make_move(self, move: int) -> UndoRecord:
        """Play ``move`` for :attr:`to_move` and return the undo record.

        Raises :class:`IllegalMoveError` if the game is over, the move is out
        of range, the sub-board is not the mandated one, the sub-board is
        closed or the cell is taken.
        """
        if self.result.is_terminal:
            raise IllegalMoveError(f"game is already over ({self.result.name})")
        sub, cell = decode_move(move)
        if self.active_sub_board is not None and sub != self.active_sub_board:
            raise IllegalMoveError(
                f"move {move} is in sub-board {sub} but sub-board {self.active_sub_board} is mandated")
        if not self._statuses[sub].is_open:
            raise IllegalMoveError(f"sub-board {sub} is closed ({self._statuses[sub].name})")
        small = self.sub_boards[sub]
        if small.is_set(cell):
            raise IllegalMoveError(f"cell {cell} of sub-board {sub} is already marked")

        player = self.to_move
        record = UndoRecord(
            move=move,
            player=player,
            active_sub_board=self.active_sub_board,
            sub_board_status=self._statuses[sub],
            outer=(self.outer.one, self.outer.two),
            closed=self.closed,
            result=self.result,
            hash=self.hash,
        )

        small.play(cell, player)
        self.hash ^= _piece_key(move, player)

        if small.is_won_by(player):
            status = SubBoardStatus.won_by(player)
        elif small.is_full():
            status = SubBoardStatus.DRAWN
        else:
            status = SubBoardStatus.OPEN
        if not status.is_open:
            self._statuses[sub] = status
            self.closed |= 1 << sub
            if status.winner is not None:
                self.outer.play(sub, player)
            self.result = self._compute_result()

        if self.active_sub_board is not None:
            self.hash ^= _active_key(self.active_sub_board)
        if self._statuses[cell].is_open:
            self.active_sub_board = cell
            self.hash ^= _active_key(cell)
        else:
            self.active_sub_board = None

        self.to_move = get_opponent(player)
        self.move_count += 1
        return record

    def undo_move(self, record: UndoRecord) -> None:
        """Revert the move described by ``record``.

        ``record`` must be the value returned by the most recent
        :meth:`make_move` that has not been undone yet.
        """
        sub, cell = divmod(record.move, 9)
        if self.sub_boards[sub].owner(cell) is not record.player or self.to_move is record.player:
            raise ValueError(f"undo record for move {record.move} does not match the last move")
        self.sub_boards[sub].clear(cell)
        self._statuses[sub] = record.sub_board_status
        self.outer.one, self.outer.two = record.outer
        self.closed = record.closed
        self.result = record.result
        self.active_sub_board = record.active_sub_board
        self.to_move = record.player
        self.hash = record.hash
        self.move_count -= 1

    def _check_outer_lines(self) -> None:
        """Reject outer boards no game can reach.

        Play stops at the first completed outer line, so only one player can
        own lines, and all of them must run through the sub-board won last.
        """
        winners = [p for p in Player if self.outer.is_won_by(p)]
        if len(winners) > 1:
            raise IllegalMoveError("both players have a line on the outer board")
        if winners:
            marks = self.outer.mask(winners[0])
            common = FULL_MASK
            for line in WIN_MASKS:
                if marks & line == line:
                    common &= line
            if not common:
                raise IllegalMoveError(
                    f"{winners[0]} has outer lines that no single sub-board win completes")

    def _compute_result(self) -> GameResult:
        for player in Player:
            if self.outer.is_won_by(player):
                return GameResult.win(player)
        if self.closed == FULL_MASK:
            return GameResult.DRAW
        return GameResult.CONTINUE

    # ------------------------------------------------------------------
    # Playouts
    # ------------------------------------------------------------------
    def random_playout(self, rng: Optional[random.Random] = None) -> GameResult:
        """Play uniformly random moves on a copy until the game ends."""
        rng = rng or random
        board = self.copy()
        while not board.result.is_terminal:
            moves = list(board.legal_moves())
            board.make_move(moves[rng.randrange(len(moves))])
        return board.result

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def _sub_board_rows(self, sub: int) -> Tuple[str, ...]:
        overlay = _OVERLAYS.get(self._statuses[sub])
        if overlay is not None:
            return overlay
        return tuple(self.sub_boards[sub].rows())

    def describe(self) -> Dict[str, object]:
        return {
            "cells": "".join(
                (owner.symbol if owner is not None else ".")
                for small in self.sub_boards
                for owner in (small.owner(c) for c in range(9))
            ),
            "sub_board_statuses": [s.name for s in self._statuses],
            "active_sub_board": self.active_sub_board,
            "to_move": self.to_move.name,
            "result": self.result.name,
            "move_count": self.move_count,
            "hash": self.hash,
        }

    def __str__(self):
        lines = []
        for big_row in range(3):
            rendered = [self._sub_board_rows(big_row * 3 + c) for c in range(3)]
            for r in range(3):
                lines.append(" | ".join(rendered[c][r] for c in range(3)))
            if big_row < 2:
                lines.append(_RULE)
        active = "any" if self.active_sub_board is None else str(self.active_sub_board)
        lines.append(f"Game status: {self.result.name}")
        lines.append(f"Active sub-board: {active}")
        lines.append(f"To move: {self.to_move}")
        return "\n".join(lines)

    def __repr__(self):
        masks = ", ".join(f"({b.one:#05x}, {b.two:#05x})" for b in self.sub_boards)
        return (f"UltimateBoard(sub_boards=[{masks}], "
                f"outer=({self.outer.one:#05x}, {self.outer.two:#05x}), "
                f"statuses={[s.name for s in self._statuses]}, "
                f"active_sub_board={self.active_sub_board}, to_move={self.to_move.name}, "
                f"result={self.result.name}, hash={self.hash:#018x})")

    def __eq__(self, other):
        if not isinstance(other, UltimateBoard):
            return NotImplemented
        return (self.to_move is other.to_move
                and self.active_sub_board == other.active_sub_board
                and all(a.one == b.one and a.two == b.two
                        for a, b in zip(self.sub_boards, other.sub_boards)))

    __hash__ = None


def _piece_key(move: int, player: Player) -> int:
    return _ZOBRIST_KEYS[move * 2 + player.value]


def _active_key(sub_board: int) -> int:
    return _ZOBRIST_KEYS[_ZOBRIST_ACTIVE_OFFSET + sub_board]
