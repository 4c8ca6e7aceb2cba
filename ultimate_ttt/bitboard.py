"""Packed 3x3 board used for both the sub-boards and the outer board.

Cells are numbered row-major::

    0 | 1 | 2
    --+---+--
    3 | 4 | 5
    --+---+--
    6 | 7 | 8

Each player owns a 9-bit mask; bit ``c`` set means that player marked cell
``c``.  The two masks never share a bit.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from .player import Player

FULL_MASK = 0b111111111

WIN_LINES: Tuple[Tuple[int, int, int], ...] = (
    # rows
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    # columns
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    # diagonals
    (0, 4, 8),
    (2, 4, 6),
)

WIN_MASKS: Tuple[int, ...] = tuple(sum(1 << c for c in line) for line in WIN_LINES)

CENTER_INDEX = 4
CORNER_INDICES = (0, 2, 6, 8)
EDGE_INDICES = (1, 3, 5, 7)

CENTER_MASK = 1 << CENTER_INDEX
CORNER_MASK = sum(1 << c for c in CORNER_INDICES)
EDGE_MASK = sum(1 << c for c in EDGE_INDICES)


class CellOccupiedError(ValueError):
    """Raised when a mark is placed on a cell that is already taken."""


class SubBoardStatus(Enum):
    OPEN = "open"
    WON_ONE = "won_one"
    WON_TWO = "won_two"
    DRAWN = "drawn"

    @classmethod
    def won_by(cls, player: Player) -> "SubBoardStatus":
        return cls.WON_ONE if player is Player.ONE else cls.WON_TWO

    @property
    def winner(self) -> Optional[Player]:
        if self is SubBoardStatus.WON_ONE:
            return Player.ONE
        if self is SubBoardStatus.WON_TWO:
            return Player.TWO
        return None

    @property
    def is_open(self) -> bool:
        return self is SubBoardStatus.OPEN


def _popcount(mask: int) -> int:
    return bin(mask).count("1")


@dataclass(slots=True)
class BitBoard:
    one: int = 0
    two: int = 0

    # ------------------------------------------------------------------
    # Cell access
    # ------------------------------------------------------------------
    def mask(self, player: Player) -> int:
        return self.one if player is Player.ONE else self.two

    @property
    def occupied(self) -> int:
        return self.one | self.two

    def is_set(self, cell: int) -> bool:
        return bool(self.occupied >> cell & 1)

    def owner(self, cell: int) -> Optional[Player]:
        bit = 1 << cell
        if self.one & bit:
            return Player.ONE
        if self.two & bit:
            return Player.TWO
        return None

    def play(self, cell: int, player: Player) -> None:
        """Mark ``cell`` for ``player``.

        This is the raw primitive: it only refuses to overwrite a mark.  Rule
        checks (active sub-board, closed boards) belong to the caller.
        """
        if not 0 <= cell <= 8:
            raise IndexError(f"cell index {cell} out of range 0..8")
        bit = 1 << cell
        if self.occupied & bit:
            raise CellOccupiedError(f"cell {cell} is already marked by {self.owner(cell)}")
        if player is Player.ONE:
            self.one |= bit
        else:
            self.two |= bit

    def clear(self, cell: int) -> None:
        bit = ~(1 << cell) & FULL_MASK
        self.one &= bit
        self.two &= bit

    def empty_cells(self) -> List[int]:
        free = ~self.occupied & FULL_MASK
        return [c for c in range(9) if free >> c & 1]

    def count(self, player: Player) -> int:
        return _popcount(self.mask(player))

    # ------------------------------------------------------------------
    # Outcome
    # ------------------------------------------------------------------
    def is_won_by(self, player: Player) -> bool:
        marks = self.mask(player)
        for line in WIN_MASKS:
            if marks & line == line:
                return True
        return False

    def is_full(self) -> bool:
        return self.occupied == FULL_MASK

    def status(self) -> SubBoardStatus:
        if self.is_won_by(Player.ONE):
            return SubBoardStatus.WON_ONE
        if self.is_won_by(Player.TWO):
            return SubBoardStatus.WON_TWO
        if self.is_full():
            return SubBoardStatus.DRAWN
        return SubBoardStatus.OPEN

    # ------------------------------------------------------------------
    # Features used by the heuristics
    # ------------------------------------------------------------------
    def partial_wins_difference(self, player: Player) -> int:
        """Lines holding two of ``player``'s marks and nothing of the
        opponent's, minus the same count for the opponent."""
        own = self.mask(player)
        other = self.mask(player.opponent())
        diff = 0
        for line in WIN_MASKS:
            if other & line == 0 and _popcount(own & line) == 2:
                diff += 1
            elif own & line == 0 and _popcount(other & line) == 2:
                diff -= 1
        return diff

    def positions_difference(self, player: Player) -> int:
        return self.count(player) - self.count(player.opponent())

    def center_difference(self, player: Player) -> int:
        return self._region_difference(player, CENTER_MASK)

    def corners_difference(self, player: Player) -> int:
        return self._region_difference(player, CORNER_MASK)

    def edges_difference(self, player: Player) -> int:
        return self._region_difference(player, EDGE_MASK)

    def _region_difference(self, player: Player, region: int) -> int:
        own = self.mask(player) & region
        other = self.mask(player.opponent()) & region
        return _popcount(own) - _popcount(other)

    # ------------------------------------------------------------------
    # Value semantics
    # ------------------------------------------------------------------
    def key(self) -> int:
        """Unique index of this position in ``range(2 ** 18)``."""
        return self.one | self.two << 9

    def copy(self) -> "BitBoard":
        return BitBoard(self.one, self.two)

    def rows(self) -> List[str]:
        symbols = []
        for cell in range(9):
            owner = self.owner(cell)
            symbols.append(owner.symbol if owner is not None else ".")
        return [" ".join(symbols[r * 3:r * 3 + 3]) for r in range(3)]

    def __str__(self):
        return "\n".join(self.rows())
