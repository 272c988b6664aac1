"""Drive games forward one move at a time.

Human input and AI decisions are funnelled through :func:`apply_move`, so
both go through exactly the same validation and resolution code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from . import ai
from .combat import AttackResult, BattleOptions, resolve_attack
from .enums import Phase
from .errors import IllegalMoveError
from .models import GameSettings, GameState, PlayerID
from .rules_config import DEFAULT_RULES, RulesConfig
from .setup import new_game
from .turns import end_turn, surrender

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 20_000


@dataclass(slots=True)
class StepOutcome:
    """What a single engine step did."""

    player_id: PlayerID
    move: ai.Move
    attack: AttackResult | None = None
    next_active: PlayerID | None = None


def apply_move(
    state: GameState,
    move: ai.Move,
    *,
    options: BattleOptions | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> StepOutcome:
    """Apply ``move`` on behalf of the active player.

    Raises:
        IllegalMoveError: If the move is not legal; the state is unchanged.
    """

    if state.phase != Phase.PLAY:
        raise IllegalMoveError("the game is over")
    actor = state.active
    outcome = StepOutcome(player_id=actor, move=move)

    if isinstance(move, ai.AttackMove):
        outcome.attack = resolve_attack(state, move.from_id, move.to_id, options=options, rules=rules)
    elif isinstance(move, ai.SurrenderMove):
        surrender(state, actor, move.recipient_id, rules)
    else:
        end_turn(state, rules)

    outcome.next_active = state.active
    return outcome


def play_ai_step(state: GameState, *, rules: RulesConfig = DEFAULT_RULES) -> StepOutcome:
    """Ask the AI for the active player's next move and apply it.

    Raises:
        IllegalMoveError: If the game is over or a human is to move.
    """

    if state.phase != Phase.PLAY:
        raise IllegalMoveError("the game is over")
    if state.active_player.human:
        raise IllegalMoveError(f"{state.active_player.name} is not AI-controlled")

    move = ai.choose_move(state, rules=rules)
    try:
        return apply_move(state, move, rules=rules)
    except IllegalMoveError as exc:
        logger.warning("AI %s proposed an illegal move %r: %s", state.active, move, exc)
        return apply_move(state, None, rules=rules)


def run_ai_turns(
    state: GameState,
    max_steps: int = DEFAULT_MAX_STEPS,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> list[StepOutcome]:
    """Let AI players move until a human is to move or the game ends.

    ``max_steps`` guards against games that never settle.
    """

    outcomes: list[StepOutcome] = []
    while state.phase == Phase.PLAY and not state.active_player.human:
        if len(outcomes) >= max_steps:
            logger.warning(
                "AI stall guard tripped after %d steps at turn %.2f", max_steps, state.turn
            )
            break
        outcomes.append(play_ai_step(state, rules=rules))
    return outcomes


def simulate(
    settings: GameSettings,
    *,
    gameplay_seed: str | None = None,
    max_steps: int = DEFAULT_MAX_STEPS,
    rules: RulesConfig = DEFAULT_RULES,
) -> GameState:
    """Play a headless all-AI game and return its final state."""

    state = new_game(replace(settings, human_count=0), gameplay_seed=gameplay_seed, rules=rules)
    run_ai_turns(state, max_steps, rules=rules)
    return state
