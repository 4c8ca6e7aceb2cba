import json
import os
import tempfile
import unittest

from agents.config import MCTSConfig
from agents.factory import (BUILTIN_PLAYERS, agent_from_params,
                            heuristic_from_params, load_player, load_players)
from agents.minimax_agent import MiniMaxAgent
from agents.random_agent import RandomAgent
from agents.random_start import RandomStartAgent
from heuristics.base import HeuristicConfigError
from heuristics.custom_heuristic import CustomHeuristic
from heuristics.parameterized_heuristic import ParameterizedHeuristic
from heuristics.rollout_heuristic import RolloutHeuristic
from mcts.monte_carlo_tree import MonteCarloTreeAgent
from tournament import (INITIAL_RATING, expected, main, round_robin,
                        run_match, summarize, update)


class TestFactory(unittest.TestCase):
    def test_builtin_players(self):
        self.assertIsInstance(agent_from_params(BUILTIN_PLAYERS["random"]), RandomAgent)
        minimax = agent_from_params(BUILTIN_PLAYERS["minimax"])
        self.assertIsInstance(minimax, MiniMaxAgent)
        self.assertIsInstance(minimax.heuristic, CustomHeuristic)
        self.assertEqual(minimax.search_config.depth, 4)
        mcts = agent_from_params(BUILTIN_PLAYERS["mcts"], seed=9)
        self.assertIsInstance(mcts, MonteCarloTreeAgent)
        self.assertEqual(mcts.search_config, MCTSConfig(iterations=1000, seed=9))

    def test_heuristics(self):
        self.assertIsInstance(heuristic_from_params(None), CustomHeuristic)
        self.assertIsInstance(heuristic_from_params("parameterized"), ParameterizedHeuristic)
        rollout = heuristic_from_params({"type": "rollout", "simulations": 3})
        self.assertIsInstance(rollout, RolloutHeuristic)
        self.assertEqual(rollout.simulations, 3)
        weights = heuristic_from_params({"type": "parameterized", "weights": [0.5] * 13})
        self.assertEqual(list(weights.weights), [0.5] * 13)
        with self.assertRaises(HeuristicConfigError):
            heuristic_from_params("neural")

    def test_random_start_wrapper(self):
        agent = agent_from_params({"type": "minimax", "depth": 2, "random_start": 4})
        self.assertIsInstance(agent, RandomStartAgent)
        self.assertEqual(agent.random_turns, 4)
        self.assertEqual(agent.agent.search_config.depth, 2)

    def test_bad_params(self):
        with self.assertRaises(ValueError):
            agent_from_params({"type": "alphazero"})
        with self.assertRaises(ValueError):
            agent_from_params({"type": "minimax", "depth": 0})
        with self.assertRaises(TypeError):
            agent_from_params({"type": "mcts", "iterations": 10, "depth": 3})

    def test_load_player_files(self):
        with tempfile.TemporaryDirectory() as tmp:
            with open(os.path.join(tmp, "quick.json"), "w") as f:
                json.dump({"type": "mcts", "iterations": 20}, f)
            with open(os.path.join(tmp, "deep.json"), "w") as f:
                json.dump({"type": "minimax", "depth": 3}, f)

            self.assertEqual(load_player(os.path.join(tmp, "quick.json"))["iterations"], 20)
            self.assertEqual(load_player("random"), {"type": "random"})
            players = load_players(tmp)
            self.assertEqual(list(players), ["deep", "quick"])
            with self.assertRaises(FileNotFoundError):
                load_player(os.path.join(tmp, "missing.json"))

        with tempfile.TemporaryDirectory() as empty:
            with self.assertRaises(FileNotFoundError):
                load_players(empty)


class TestTournament(unittest.TestCase):
    def test_summarize(self):
        self.assertEqual(summarize([1, 0, -1, 1]), {"wins": 2, "draws": 1, "losses": 1})

    def test_run_match_alternates_colours(self):
        quick = {"type": "mcts", "iterations": 5}
        results = run_match({"type": "random"}, quick, games=2, seed=3)
        self.assertEqual(len(results), 2)
        self.assertTrue(all(r in (-1, 0, 1) for r in results))
        self.assertEqual(results, run_match({"type": "random"}, quick, games=2, seed=3))

    def test_main(self):
        with self.assertLogs("tournament", level="INFO") as logs:
            score = main(["--player-one", "random", "--player-two", "random",
                          "--games", "2", "--seed", "1"])
        self.assertEqual(sum(score.values()), 2)
        self.assertTrue(any("Final score for A" in line for line in logs.output))

    def test_elo_update(self):
        self.assertAlmostEqual(expected(1500.0, 1500.0), 0.5)
        self.assertAlmostEqual(expected(1900.0, 1500.0), 10 / 11)
        self.assertEqual(update(1500.0, 1.0, 0.5), 1508.0)

    def test_round_robin(self):
        players = {"a": {"type": "random"}, "b": {"type": "random"},
                   "c": {"type": "mcts", "iterations": 5}}
        with self.assertLogs("tournament", level="INFO") as logs:
            ratings = round_robin(players, games=2, seed=0)
        self.assertEqual(set(ratings), {"a", "b", "c"})
        self.assertAlmostEqual(sum(ratings.values()), 3 * INITIAL_RATING)
        self.assertEqual(len(logs.output), 3)


if __name__ == "__main__":
    unittest.main()
