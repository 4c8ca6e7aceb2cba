#!/usr/bin/env python3
"""
Ultimate Tic-Tac-Toe match runner
=================================

Plays a series of games between two players and reports the score, or a
round robin between every player file in a directory with Elo ratings.

    $ python tournament.py --player-one minimax --player-two mcts --games 20
    $ python tournament.py --player-one players/minimax_deep.json --player-two random --workers 4
    $ python tournament.py --players-dir players --games 4

Players are either built-in names (``random``, ``minimax``, ``mcts``) or
JSON files in the format understood by :mod:`agents.factory`.  Colours
alternate between games so neither player always moves first.  With
``--workers`` whole games are spread over a process pool; each game owns
its board and agents.
"""
from __future__ import annotations

import argparse
import logging
import random
from concurrent.futures import ProcessPoolExecutor
from itertools import combinations
from typing import Dict, List, Tuple

from agents.factory import agent_from_params, load_player, load_players
from ultimate_ttt.game import Game
from ultimate_ttt.player import Player

logger = logging.getLogger("tournament")

K_FACTOR = 16
INITIAL_RATING = 1500.0


def expected(r_a: float, r_b: float) -> float:
    return 1.0 / (1.0 + 10 ** ((r_b - r_a) / 400))


def update(r: float, s: float, e: float, k: float = K_FACTOR) -> float:
    return r + k * (s - e)


def play_one_game(params_a: dict, params_b: dict, a_moves_first: bool, seed: int,
                  show_board: bool = False) -> int:
    """Return +1/0/-1 from player A's perspective."""
    random.seed(seed)
    agent_a = agent_from_params(params_a, seed=seed)
    agent_b = agent_from_params(params_b, seed=seed + 1)
    if a_moves_first:
        game = Game(agent_a, agent_b)
        a_side = Player.ONE
    else:
        game = Game(agent_b, agent_a)
        a_side = Player.TWO

    result = game.play()
    if show_board:
        print(game.board)
    return int(result.reward_for(a_side))


def run_match(params_a: dict, params_b: dict, games: int, seed: int,
              workers: int = 1, show_board: bool = False) -> List[int]:
    jobs: List[Tuple[dict, dict, bool, int, bool]] = [
        (params_a, params_b, g % 2 == 0, seed + 2 * g, show_board) for g in range(games)
    ]
    if workers <= 1:
        return [play_one_game(*job) for job in jobs]
    with ProcessPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(play_one_game, *job) for job in jobs]
        return [f.result() for f in futures]


def summarize(results: List[int]) -> Dict[str, int]:
    return {
        "wins": sum(1 for r in results if r > 0),
        "draws": sum(1 for r in results if r == 0),
        "losses": sum(1 for r in results if r < 0),
    }


def round_robin(players: Dict[str, dict], games: int, seed: int,
                workers: int = 1) -> Dict[str, float]:
    """Play ``games`` games for every pair and return the Elo ratings.

    Ratings are updated game by game in a fixed order, so the same seed
    gives the same table whatever ``workers`` is.
    """
    ratings = {name: INITIAL_RATING for name in players}
    for pair, (a, b) in enumerate(combinations(sorted(players), 2)):
        results = run_match(players[a], players[b], games, seed + 1000 * pair, workers)
        for r in results:
            score_a = 1.0 if r > 0 else 0.5 if r == 0 else 0.0
            ra, rb = ratings[a], ratings[b]
            ratings[a] = update(ra, score_a, expected(ra, rb))
            ratings[b] = update(rb, 1 - score_a, expected(rb, ra))
        score = summarize(results)
        logger.info(f"{a} vs {b}: {score['wins']}-{score['draws']}-{score['losses']}")
    return ratings


def main(argv=None):
    parser = argparse.ArgumentParser(description="Play Ultimate Tic-Tac-Toe matches between two agents.")
    parser.add_argument("--player-one", default="minimax", help="built-in name or JSON file (player A)")
    parser.add_argument("--player-two", default="mcts", help="built-in name or JSON file (player B)")
    parser.add_argument("--players-dir", default=None,
                        help="play a round robin between all *.json players in this directory")
    parser.add_argument("--games", type=int, default=10, help="games per pairing")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("--show-board", action="store_true", help="print the final position of each game")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%H:%M:%S'
    )

    if args.players_dir is not None:
        players = load_players(args.players_dir)
        logger.info(f"Round robin between {len(players)} players, {args.games} games per pairing")
        ratings = round_robin(players, args.games, args.seed, args.workers)
        logger.info("Elo standings:")
        for name, rating in sorted(ratings.items(), key=lambda x: -x[1]):
            logger.info(f"  {name:<20} {rating:6.1f}")
        return ratings

    params_a = load_player(args.player_one)
    params_b = load_player(args.player_two)
    logger.info(f"{args.games} games: A={args.player_one} vs B={args.player_two} "
                f"(seed={args.seed}, workers={args.workers})")

    results = run_match(params_a, params_b, args.games, args.seed, args.workers, args.show_board)
    for g, r in enumerate(results, 1):
        first = "A" if g % 2 == 1 else "B"
        logger.info(f"Game {g} ({first} moves first): "
                    f"{'A wins' if r > 0 else 'B wins' if r < 0 else 'draw'}")

    score = summarize(results)
    logger.info(f"Final score for A: {score['wins']} wins, {score['draws']} draws, "
                f"{score['losses']} losses")
    return score


if __name__ == "__main__":
    main()
