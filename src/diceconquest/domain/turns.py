"""Turn progression: reinforcement, rotation, surrender and setup bonuses."""

from __future__ import annotations

import logging
import math

from diceconquest.utils.rng import SeededRng

from . import regions
from .combat import check_victory
from .enums import GameMode, Phase
from .errors import IllegalMoveError
from .models import UNOWNED, CellID, GameState, Player, PlayerID
from .rules_config import DEFAULT_RULES, RulesConfig

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def next_alive_player(state: GameState, start: int | None = None) -> PlayerID | None:
    """Next living player after ``start`` in forward rotation, or ``None``."""

    current = state.active if start is None else start
    count = len(state.players)
    for _ in range(count * 2):
        current = (current + 1) % count
        if state.players[current].alive:
            return PlayerID(current)
    logger.error("turn rotation guard tripped: no living player after %s", start)
    return None


def _advance_active(state: GameState) -> None:
    nxt = next_alive_player(state)
    if nxt is not None:
        state.active = nxt


def _countdown_betrayals(state: GameState, player: Player) -> None:
    remaining: dict[PlayerID, int] = {}
    for traitor_id, turns_left in player.betrayals.items():
        if turns_left > 1:
            remaining[traitor_id] = turns_left - 1
        else:
            state.log(f"{player.name} has forgiven {state.players[traitor_id].name}.")
    player.betrayals = remaining


def reinforce(state: GameState, player: Player, rules: RulesConfig = DEFAULT_RULES) -> int:
    """Place the player's income plus reserve; return the dice left in reserve."""

    if player.is_barbarian:
        income = len(player.cells) // rules.reinforcement.barbarian_income_divisor
        cap = rules.dice.barbarian_max_dice
    else:
        income = player.largest_region_size
        cap = rules.dice.max_dice

    to_place = income + player.reserve
    if to_place > 0:
        state.log(
            f"Reinforcements for {player.name}: +{income} (territory) "
            f"+{player.reserve} (reserve) = {to_place} total."
        )
    player.reserve = 0

    corruption = state.options.corruption and not player.is_barbarian
    guard = 0
    while to_place > 0 and guard < rules.reinforcement.placement_guard:
        guard += 1
        eligible = [cid for cid in sorted(player.cells) if state.cells[cid].dice < cap]
        if not eligible:
            break
        target = state.rng.choice(eligible)
        if corruption and target not in player.largest_region_cells:
            if state.rng.random() < rules.reinforcement.corruption_loss_chance:
                to_place -= 1
                state.log(f"-1 die for {player.name} lost to corruption!")
                continue
        state.cells[target].dice += 1
        to_place -= 1
    if guard >= rules.reinforcement.placement_guard and to_place > 0:
        logger.warning(
            "placement guard tripped for player %s with %d dice unplaced", player.id, to_place
        )

    if to_place > 0:
        player.reserve = to_place
        if player.reserve > player.largest_region_size:
            burned = player.reserve - player.largest_region_size
            player.reserve = player.largest_region_size
            state.log(f"{player.name} had too many reserves! {burned} dice burned.")
        else:
            state.log(f"{player.name} stored {to_place} dice in reserve.")
    return player.reserve


def end_turn(state: GameState, rules: RulesConfig = DEFAULT_RULES) -> PlayerID:
    """Finish the active player's turn and hand over to the next living player.

    Returns:
        The id of the new active player.

    Raises:
        IllegalMoveError: If the game is already over.
    """

    if state.phase != Phase.PLAY:
        raise IllegalMoveError("the game is over")

    state.pending_attack = None
    player = state.active_player
    _countdown_betrayals(state, player)

    if player.turn_dice_rolled > 0:
        average = player.turn_sum_of_rolls / player.turn_dice_rolled
        state.log(f"{player.name}'s turn avg roll: {average:.2f}")
    player.turn_dice_rolled = 0
    player.turn_sum_of_rolls = 0

    reinforce(state, player, rules)
    regions.recompute_all_regions(state, rules)
    regions.check_invariants(state, rules)

    _advance_active(state)
    alive = sum(1 for p in state.players if p.alive)
    if alive > 0:
        state.turn += 1 / alive
    state.move_count += 1
    return state.active


# ---------------------------------------------------------------------------
# Surrender


def surrender(
    state: GameState,
    player_id: int,
    recipient_id: int | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> None:
    """Remove ``player_id`` from the game, handing its cells over.

    With a living ``recipient_id`` every cell goes to the recipient at the
    recipient's average dice per cell. Otherwise each cell goes to the living
    civilisation owning most of its neighbours (dice preserved), falling back
    to the strongest civilisation, or to nobody.
    """

    if state.phase != Phase.PLAY:
        raise IllegalMoveError("the game is over")
    surrendering = state.player(player_id)
    if surrendering is None or not surrendering.alive:
        raise IllegalMoveError(f"player {player_id} cannot surrender")

    recipient = state.player(recipient_id) if recipient_id is not None else None
    if recipient is not None and recipient.alive and recipient.id != surrendering.id:
        _surrender_to(state, surrendering, recipient)
    else:
        _surrender_to_neighbors(state, surrendering)

    surrendering.cells.clear()
    surrendering.alive = False
    state.move_count += 1

    regions.recompute_all_regions(state, rules)
    regions.check_invariants(state, rules)
    if not check_victory(state) and state.active == surrendering.id:
        state.pending_attack = None
        _advance_active(state)


def _surrender_to(state: GameState, surrendering: Player, recipient: Player) -> None:
    state.log(f"{surrendering.name} surrenders to {recipient.name}!")
    dice_sum = sum(state.cells[cid].dice for cid in recipient.cells)
    average = max(1, _round_half_up(dice_sum / max(1, len(recipient.cells))))
    for cid in sorted(surrendering.cells):
        cell = state.cells[cid]
        cell.owner = recipient.id
        cell.dice = average
        recipient.cells.add(cid)


def _surrender_to_neighbors(state: GameState, surrendering: Player) -> None:
    state.log(
        f"{surrendering.name} has surrendered! Territories (and dice) are distributed to neighbors."
    )
    rivals = [
        p for p in state.players if p.alive and not p.is_barbarian and p.id != surrendering.id
    ]
    strongest = max(rivals, key=lambda p: len(p.cells), default=None)

    for cid in sorted(surrendering.cells):
        cell = state.cells[cid]
        counts: dict[PlayerID, int] = {}
        for nid in cell.neighbors:
            neighbor_owner = state.player(state.cells[nid].owner)
            if (
                neighbor_owner is not None
                and neighbor_owner.id != surrendering.id
                and neighbor_owner.alive
                and not neighbor_owner.is_barbarian
            ):
                counts[neighbor_owner.id] = counts.get(neighbor_owner.id, 0) + 1

        new_owner: PlayerID = UNOWNED
        if counts:
            top = max(counts.values())
            candidates = [pid for pid, count in counts.items() if count == top]
            new_owner = candidates[int(state.rng.random() * len(candidates))]
        elif strongest is not None:
            new_owner = strongest.id

        if new_owner != UNOWNED:
            cell.owner = new_owner
            state.players[new_owner].cells.add(CellID(cid))
        else:
            cell.owner = UNOWNED
            cell.dice = 1


def should_prompt_surrender(
    state: GameState, player_id: int, rules: RulesConfig = DEFAULT_RULES
) -> bool:
    """One-time hint that a human player's position is hopeless."""

    player = state.players[player_id]
    if (
        state.phase != Phase.PLAY
        or not player.human
        or not player.alive
        or player.surrender_prompted
    ):
        return False
    alive = state.alive_civilizations()
    if len(alive) <= 1:
        return False
    if state.game_mode == GameMode.CONQUEST and math.floor(state.turn) < rules.surrender.conquest_prompt_min_turn:
        return False

    strongest = max(alive, key=lambda p: len(p.cells))
    if strongest.id == player.id or not player.cells:
        return False
    strongest_dice = sum(state.cells[cid].dice for cid in strongest.cells)
    player_dice = sum(state.cells[cid].dice for cid in player.cells)
    if not strongest.cells or strongest_dice <= 0:
        return False

    ratio = rules.surrender.prompt_ratio
    if len(player.cells) / len(strongest.cells) < ratio and player_dice / strongest_dice < ratio:
        player.surrender_prompted = True
        return True
    return False


# ---------------------------------------------------------------------------
# Setup bonus


def turn_order_base_bonus(cell_count: int, rules: RulesConfig = DEFAULT_RULES) -> int:
    for lower_bound, base in rules.bonus.brackets:
        if cell_count >= lower_bound:
            return base
    return rules.bonus.default_base


def apply_turn_order_bonus(
    state: GameState, rng: SeededRng, rules: RulesConfig = DEFAULT_RULES
) -> None:
    """Compensate later movers with ``offset * base`` extra dice (classic mode)."""

    if state.game_mode != GameMode.CLASSIC:
        return
    base = turn_order_base_bonus(len(state.cells), rules)
    civilizations = [p for p in state.players if not p.is_barbarian]
    count = len(civilizations)
    awarded = False

    for offset in range(1, count):
        bonus = offset * base
        player = civilizations[(state.active + offset) % count]
        remaining = bonus
        for _ in range(rules.bonus.placement_guard):
            if remaining <= 0:
                break
            eligible = [cid for cid in sorted(player.cells) if state.cells[cid].dice < rules.dice.max_dice]
            if not eligible:
                break
            state.cells[rng.choice(eligible)].dice += 1
            remaining -= 1
        if remaining > 0:
            player.reserve += remaining
        state.log(f"{player.name} gets +{bonus} bonus dice.")
        awarded = True

    if awarded:
        state.log(f"Turn order bonus awarded! (Base: {base})")
