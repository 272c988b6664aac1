"""Command line entrypoint: run the HTTP API or play headless games."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence

import uvicorn

from diceconquest import savegame
from diceconquest.config import get_settings
from diceconquest.domain import engine
from diceconquest.domain.enums import AiDifficulty, GameMode
from diceconquest.domain.models import GameSettings

logger = logging.getLogger(__name__)


def _serve(args: argparse.Namespace) -> None:
    uvicorn.run(
        "diceconquest.api.app:create_app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        factory=True,
    )


def _simulate(args: argparse.Namespace) -> None:
    settings = GameSettings(
        players_count=args.players,
        human_count=0,
        cell_count=args.cells,
        water_level=args.water,
        ai_difficulty=AiDifficulty(args.difficulty),
        game_mode=GameMode(args.mode),
        seed=args.seed,
    )
    state = engine.simulate(
        settings, gameplay_seed=args.gameplay_seed, max_steps=get_settings().ai_max_steps
    )
    for line in state.logs[-args.tail :]:
        print(line)
    winner = state.player(state.winner) if state.winner is not None else None
    print(
        f"map seed {state.map_seed} | gameplay seed {state.seed} | "
        f"turn {int(state.turn)} | winner: {winner.name if winner else 'none'}"
    )
    if args.save:
        path = savegame.dump_game(state, args.save)
        logger.info("saved final state to %s", path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="diceconquest tools")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API server")
    serve.add_argument("--host", default="127.0.0.1", help="Host interface to bind")
    serve.add_argument("--port", type=int, default=8000, help="TCP port to listen on")
    serve.add_argument("--reload", action="store_true", help="Enable autoreload (dev mode)")
    serve.set_defaults(func=_serve)

    sim = sub.add_parser("simulate", help="Play one all-AI game and print the result")
    sim.add_argument("--players", type=int, default=4)
    sim.add_argument("--cells", type=int, default=120)
    sim.add_argument("--water", type=float, default=0.0)
    sim.add_argument("--difficulty", choices=[d.value for d in AiDifficulty], default="normal")
    sim.add_argument("--mode", choices=[m.value for m in GameMode], default="classic")
    sim.add_argument("--seed", default=None, help="Map seed")
    sim.add_argument("--gameplay-seed", default=None, help="Dice seed")
    sim.add_argument("--tail", type=int, default=10, help="Log lines to print")
    sim.add_argument("--save", default=None, help="Write the final state to this JSON file")
    sim.set_defaults(func=_simulate)
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
