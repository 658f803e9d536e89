"""CLI entry point: python -m tilebattle <config.yaml>

Plays a match end to end with every seat driven by the move search
(the CPU seat by the match itself, other seats through the normal
command path), renders the final board, and writes telemetry.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console

from tilebattle.battle.match import Match
from tilebattle.config import load_config
from tilebattle.core.mongo_sink import MongoStore
from tilebattle.core.seed import SeedManager
from tilebattle.core.telemetry import TelemetryLogger
from tilebattle.cpu.search import find_best_move
from tilebattle.render import render_match

logger = logging.getLogger("tilebattle")


def autoplay_turn(match: Match, rng) -> None:
    """Play the active seat's turn through ``Match.submit``."""
    if match.is_cpu_turn():
        match.run_cpu()
        return
    side = match.current_player()
    player = match.state.game.player
    candidate = find_best_move(
        match.state.game.board,
        player.rack,
        match.dictionary,
        letter_limit=player.letter_limit,
        rng=rng,
    )
    if candidate is None:
        match.submit(side, {"action": "pass"})
        return

    # Arm the first card in hand whose word this move forms
    words = {w.word for w in candidate.words}
    for card in player.special_hand:
        if card.word in words:
            match.submit(side, {"action": "set_card", "instance_id": card.instance_id})
            break

    for p in candidate.placements:
        match.submit(
            side,
            {"action": "place", "row": p.row, "col": p.col, "rack_index": p.rack_index},
        )
    result = match.submit(side, {"action": "confirm"})
    if not result.accepted:
        logger.warning("%s: %s", side, result.rejection.reason)
        match.submit(side, {"action": "pass"})


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="tilebattle",
        description="Word tile battles with special cards",
    )
    parser.add_argument(
        "config",
        type=Path,
        help="Path to match YAML config file",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Telemetry directory (default: output/telemetry/)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Override the configured match seed",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Debug logging",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv()

    if not args.config.exists():
        print(f"Error: config file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    config = load_config(args.config)
    if args.seed is not None:
        config.seed = args.seed
    output_dir = args.output or config.paths.output_dir or Path("output/telemetry")

    store = None
    if config.storage.enabled:
        uri = os.environ.get(config.storage.mongo_uri_env)
        if uri:
            store = MongoStore(uri, config.storage.db_name)
        else:
            logger.warning("%s is not set, results stay local", config.storage.mongo_uri_env)

    match_id = f"{config.mode}-{config.category}-{config.seed}"
    telemetry = TelemetryLogger(output_dir, match_id, store=store)
    match = Match.create(config, telemetry=telemetry, store=store, auto_cpu=False)
    rng = SeedManager(config.seed).get_rng("autoplay")

    console = Console()
    console.print(f"Match: {match_id} (seats: {', '.join(config.players)})")
    while not match.is_terminal():
        autoplay_turn(match, rng)

    console.print(render_match(match.state))
    scores = match.get_scores()
    for side, value in scores.items():
        console.print(f"  {side:20s} {value:>6d}")
    if match.state.mode.two_sided:
        console.print(f"Winner: {match.winner() or 'draw'}")
    console.print(f"Telemetry: {telemetry.file_path}")

    if store:
        store.close()


if __name__ == "__main__":
    main()
