"""Search settings passed to the agent constructors."""
import math
from dataclasses import asdict, dataclass
from typing import Optional


@dataclass(frozen=True)
class MiniMaxConfig:
    depth: int = 4
    quiescence_depth: int = 1
    use_transposition_table: bool = True

    def __post_init__(self):
        if self.depth < 1:
            raise ValueError(f"depth must be >= 1, got {self.depth}")
        if self.quiescence_depth < 0:
            raise ValueError(f"quiescence_depth must be >= 0, got {self.quiescence_depth}")

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class MCTSConfig:
    iterations: int = 1000
    c_param: float = math.sqrt(2)
    # Seconds of wall-clock time per move; ``None`` runs all iterations.
    time_limit: Optional[float] = None
    # Keep the subtree of the chosen move for the next call.
    reuse_tree: bool = False
    seed: Optional[int] = None

    def __post_init__(self):
        if self.iterations < 1:
            raise ValueError(f"iterations must be >= 1, got {self.iterations}")
        if self.c_param < 0:
            raise ValueError(f"c_param must be >= 0, got {self.c_param}")
        if self.time_limit is not None and self.time_limit <= 0:
            raise ValueError(f"time_limit must be positive, got {self.time_limit}")

    def as_dict(self) -> dict:
        return asdict(self)
