"""Build agents from plain parameter dictionaries.

Player files are JSON objects such as::

    {"type": "minimax", "depth": 5, "quiescence_depth": 1,
     "heuristic": {"type": "parameterized", "weights": [...]}}

    {"type": "mcts", "iterations": 2000, "c_param": 1.4, "reuse_tree": true}

Any player may add ``"random_start": N`` to play its first ``N`` plies at
random.
"""
import json
from pathlib import Path
from typing import Dict, Optional, Union

from heuristics.base import Heuristic, HeuristicConfigError
from heuristics.custom_heuristic import CustomHeuristic
from heuristics.parameterized_heuristic import ParameterizedHeuristic
from heuristics.rollout_heuristic import RolloutHeuristic
from mcts.monte_carlo_tree import MonteCarloTreeAgent

from .base import Agent
from .config import MCTSConfig, MiniMaxConfig
from .minimax_agent import MiniMaxAgent
from .random_agent import RandomAgent
from .random_start import RandomStartAgent

BUILTIN_PLAYERS: Dict[str, dict] = {
    "random": {"type": "random"},
    "minimax": {"type": "minimax", "depth": 4, "quiescence_depth": 1,
                "heuristic": {"type": "custom"}},
    "mcts": {"type": "mcts", "iterations": 1000},
}


def heuristic_from_params(params: Union[str, dict, None]) -> Heuristic:
    if params is None:
        params = {"type": "custom"}
    elif isinstance(params, str):
        params = {"type": params}
    kind = params.get("type", "custom")
    if kind == "custom":
        return CustomHeuristic()
    if kind == "parameterized":
        if "weights_file" in params:
            return ParameterizedHeuristic.from_file(params["weights_file"])
        if "weights" in params:
            return ParameterizedHeuristic(params["weights"])
        return ParameterizedHeuristic()
    if kind == "rollout":
        return RolloutHeuristic(params.get("simulations", 20), params.get("seed", 0))
    raise HeuristicConfigError(f"unknown heuristic type {kind!r}")


def agent_from_params(params: dict, seed: Optional[int] = None) -> Agent:
    """Create an agent; ``seed`` fills in for agents whose params give none."""
    params = dict(params)
    kind = params.pop("type", None)
    random_start = params.pop("random_start", 0)

    if kind == "random":
        agent: Agent = RandomAgent(params.get("seed", seed))
    elif kind == "minimax":
        heuristic = heuristic_from_params(params.pop("heuristic", None))
        agent = MiniMaxAgent(heuristic, MiniMaxConfig(**params))
    elif kind == "mcts":
        params.setdefault("seed", seed)
        agent = MonteCarloTreeAgent(MCTSConfig(**params))
    else:
        raise ValueError(f"unknown agent type {kind!r}")

    if random_start:
        agent = RandomStartAgent(random_start, agent, seed)
    return agent


def load_player(spec: Union[str, Path]) -> dict:
    """Parameters for a built-in player name or a JSON file path."""
    if str(spec) in BUILTIN_PLAYERS:
        return dict(BUILTIN_PLAYERS[str(spec)])
    path = Path(spec)
    if not path.exists():
        raise FileNotFoundError(f"'{spec}' is neither a built-in player nor a file.")
    with path.open() as f:
        return json.load(f)


def load_players(directory: Union[str, Path]) -> Dict[str, dict]:
    directory = Path(directory)
    if not directory.exists():
        raise FileNotFoundError(f"'{directory}/' directory not found.")
    players = {}
    for path in sorted(directory.glob("*.json")):
        with path.open() as f:
            players[path.stem] = json.load(f)
    if not players:
        raise FileNotFoundError(f"No *.json files in '{directory}/'.")
    return players
