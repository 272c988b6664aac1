"""Runtime primitives backing the diceconquest HTTP API."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from typing import Any

from diceconquest.config import Settings, get_settings
from diceconquest.domain import combat, engine, setup, turns
from diceconquest.domain import models as dm
from diceconquest.domain.ai import SurrenderMove
from diceconquest.domain.errors import IllegalMoveError
from diceconquest.domain.rules_config import DEFAULT_RULES, RulesConfig
from diceconquest.repository import GameID, JsonGameRepository
from diceconquest.schemas import CustomMap, export_custom_map

logger = logging.getLogger(__name__)


class GameService:
    """Load a game, apply one operation, save it back.

    Every load-mutate-save sequence holds the game's lock, so an AI run in a
    worker thread and a request on the event loop never overwrite each other.
    """

    def __init__(
        self,
        repository: JsonGameRepository,
        *,
        rules: RulesConfig = DEFAULT_RULES,
        ai_max_steps: int = engine.DEFAULT_MAX_STEPS,
    ) -> None:
        self._repository = repository
        self._rules = rules
        self._ai_max_steps = ai_max_steps
        self._locks: dict[GameID, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._create_lock = threading.Lock()

    # -- lifecycle ---------------------------------------------------------

    def list_games(self) -> list[tuple[GameID, dm.GameState]]:
        """Return every readable persisted game ordered by identifier."""

        games: list[tuple[GameID, dm.GameState]] = []
        for game_id in self._repository.list_games():
            try:
                games.append((game_id, self._repository.load(game_id)))
            except (FileNotFoundError, ValueError) as exc:
                logger.warning("skipping unreadable game %s: %s", int(game_id), exc)
        return games

    def get_game(self, game_id: GameID) -> dm.GameState:
        """Load a single game or raise ``FileNotFoundError``."""

        return self._repository.load(game_id)

    def create_game(
        self, settings: dm.GameSettings, *, gameplay_seed: str | None = None
    ) -> tuple[GameID, dm.GameState]:
        state = setup.new_game(settings, gameplay_seed=gameplay_seed, rules=self._rules)
        return self._store_new(state)

    def import_custom_map(
        self,
        custom_map: CustomMap,
        options: dm.GameOptions = dm.GameOptions(),
        *,
        gameplay_seed: str | None = None,
    ) -> tuple[GameID, dm.GameState]:
        state = setup.game_from_custom_map(
            custom_map, options, gameplay_seed=gameplay_seed, rules=self._rules
        )
        return self._store_new(state)

    def export_custom_map(self, game_id: GameID, name: str | None = None) -> CustomMap:
        state = self.get_game(game_id)
        return export_custom_map(state, name or state.map_seed or f"Game {int(game_id)}")

    def restart_game(self, game_id: GameID, *, gameplay_seed: str | None = None) -> dm.GameState:
        """Replace a game by a fresh one on the same board."""

        with self._locked(game_id):
            state = setup.restart_game(
                self.get_game(game_id), gameplay_seed=gameplay_seed, rules=self._rules
            )
            self._repository.save(game_id, state)
        return state

    def delete_game(self, game_id: GameID) -> None:
        with self._locked(game_id):
            self.get_game(game_id)
            self._repository.delete(game_id)

    def _store_new(self, state: dm.GameState) -> tuple[GameID, dm.GameState]:
        with self._create_lock:
            game_id = self._next_identifier()
            self._repository.save(game_id, state)
        logger.info("created game %s (map seed %s)", int(game_id), state.map_seed)
        return game_id, state

    def _next_identifier(self) -> GameID:
        existing = self._repository.list_games()
        if not existing:
            return GameID(1)
        return GameID(int(max(existing, key=int)) + 1)

    @contextmanager
    def _locked(self, game_id: GameID) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(game_id, threading.Lock())
        with lock:
            yield

    # -- moves -------------------------------------------------------------

    def attack(
        self, game_id: GameID, from_id: int, to_id: int
    ) -> tuple[dm.GameState, combat.AttackResult]:
        with self._locked(game_id):
            state = self._load_for_human(game_id)
            result = combat.resolve_attack(state, from_id, to_id, rules=self._rules)
            self._repository.save(game_id, state)
        return state, result

    def paratroop_targets(self, game_id: GameID) -> list[dm.CellID]:
        state = self.get_game(game_id)
        return sorted(combat.paratroop_targets(state, rules=self._rules))

    def paratroop(
        self, game_id: GameID, target_id: int
    ) -> tuple[dm.GameState, combat.AttackResult]:
        with self._locked(game_id):
            state = self._load_for_human(game_id)
            result = combat.resolve_paratroop(state, target_id, rules=self._rules)
            self._repository.save(game_id, state)
        return state, result

    def end_turn(self, game_id: GameID) -> dm.GameState:
        with self._locked(game_id):
            state = self._load_for_human(game_id)
            turns.end_turn(state, self._rules)
            self._repository.save(game_id, state)
        return state

    def surrender(self, game_id: GameID, recipient_id: int | None = None) -> dm.GameState:
        with self._locked(game_id):
            state = self._load_for_human(game_id)
            engine.apply_move(state, SurrenderMove(recipient_id), rules=self._rules)
            self._repository.save(game_id, state)
        return state

    def ai_step(self, game_id: GameID) -> tuple[dm.GameState, engine.StepOutcome]:
        with self._locked(game_id):
            state = self.get_game(game_id)
            outcome = engine.play_ai_step(state, rules=self._rules)
            self._repository.save(game_id, state)
        return state, outcome

    def ai_run(
        self, game_id: GameID, max_steps: int | None = None
    ) -> tuple[dm.GameState, list[engine.StepOutcome]]:
        """Let the AI play until a human is to move, the game ends or the guard trips."""

        limit = min(max_steps or self._ai_max_steps, self._ai_max_steps)
        with self._locked(game_id):
            state = self.get_game(game_id)
            outcomes = engine.run_ai_turns(state, limit, rules=self._rules)
            self._repository.save(game_id, state)
        return state, outcomes

    def surrender_prompt(self, game_id: GameID) -> bool:
        """One-time hint for the active human; remembered once shown."""

        with self._locked(game_id):
            state = self.get_game(game_id)
            prompt = turns.should_prompt_surrender(state, state.active, self._rules)
            if prompt:
                self._repository.save(game_id, state)
        return prompt

    def _load_for_human(self, game_id: GameID) -> dm.GameState:
        state = self.get_game(game_id)
        if not state.active_player.human:
            raise IllegalMoveError(f"{state.active_player.name} is AI-controlled")
        return state

    # -- views -------------------------------------------------------------

    @staticmethod
    def to_summary_dict(game_id: GameID, state: dm.GameState) -> dict[str, object]:
        """Return a JSON-friendly overview of a game."""

        return {
            "id": int(game_id),
            "map_seed": state.map_seed,
            "game_mode": str(state.game_mode),
            "ai_difficulty": str(state.ai_difficulty),
            "turn": int(state.turn),
            "active": int(state.active),
            "phase": str(state.phase),
            "winner": int(state.winner) if state.winner is not None else None,
            "move_count": state.move_count,
            "cell_count": len(state.cells),
            "alive_players": sum(1 for p in state.players if p.alive),
        }

    @staticmethod
    def to_detail_dict(game_id: GameID, state: dm.GameState) -> dict[str, object]:
        """Return the full board: cells, players and the event log."""

        data: dict[str, Any] = GameService.to_summary_dict(game_id, state)
        data["cells"] = [
            {
                "id": int(c.id),
                "q": c.q,
                "r": c.r,
                "owner": int(c.owner),
                "dice": c.dice,
                "neighbors": [int(n) for n in c.neighbors],
            }
            for c in state.cells
        ]
        data["players"] = [
            {
                "id": int(p.id),
                "name": p.name,
                "color": p.color,
                "human": p.human,
                "alive": p.alive,
                "is_barbarian": p.is_barbarian,
                "cell_count": len(p.cells),
                "reserve": p.reserve,
                "largest_region_size": p.largest_region_size,
                "total_dice": p.total_dice,
                "alliances": sorted(int(a) for a in p.alliances),
            }
            for p in state.players
        ]
        data["logs"] = list(state.logs)
        return data

    @staticmethod
    def to_attack_dict(result: combat.AttackResult) -> dict[str, object]:
        return {
            "from_id": int(result.from_id) if result.from_id is not None else None,
            "to_id": int(result.to_id),
            "attacker_id": int(result.attacker_id),
            "defender_id": int(result.defender_id),
            "attacker_rolls": list(result.attacker_roll.values),
            "attacker_total": result.attacker_roll.total,
            "defender_rolls": list(result.defender_roll.values),
            "defender_total": result.defender_roll.total,
            "attacker_won": result.attacker_won,
            "betrayal": result.betrayal,
            "paratroop": result.paratroop,
        }

    @staticmethod
    def to_step_dict(outcome: engine.StepOutcome) -> dict[str, object]:
        move = outcome.move
        if move is None:
            kind = "end_turn"
        elif isinstance(move, SurrenderMove):
            kind = "surrender"
        else:
            kind = "attack"
        return {
            "player_id": int(outcome.player_id),
            "kind": kind,
            "attack": GameService.to_attack_dict(outcome.attack) if outcome.attack else None,
            "next_active": int(outcome.next_active) if outcome.next_active is not None else None,
        }


class ApiState:
    """Aggregated services shared by the FastAPI layer."""

    def __init__(self, *, settings: Settings | None = None, rules: RulesConfig | None = None) -> None:
        self.settings = settings or get_settings()
        self.rules = rules or replace(
            DEFAULT_RULES, strict_invariants=self.settings.strict_invariants
        )
        self.repository = JsonGameRepository(self.settings.data_dir)
        self.games = GameService(
            self.repository, rules=self.rules, ai_max_steps=self.settings.ai_max_steps
        )
        self._game_locks: dict[int, asyncio.Lock] = {}

    def game_lock(self, game_id: int) -> asyncio.Lock:
        """Serialises mutating requests on one game, AI runs in worker threads included."""

        return self._game_locks.setdefault(int(game_id), asyncio.Lock())

    async def shutdown(self) -> None:
        logger.info("API shutting down; games are persisted after every move")


def build_state() -> ApiState:
    """Factory used by the API to initialize state."""

    return ApiState()
