"""Attack resolution rules.

Every attack, human or AI, goes through :func:`resolve_attack` (or
:func:`resolve_paratroop`). Resolution is atomic: once dice are rolled the
outcome is applied, regions are recomputed and victory is checked before the
function returns, so callers never observe a reserve above the region cap.
"""

from __future__ import annotations

from dataclasses import dataclass

from diceconquest.utils.hex_math import hexes_in_range
from diceconquest.utils.rng import DiceRoll

from . import regions
from .enums import Phase
from .errors import IllegalMoveError
from .models import CellID, GameState, PendingAttack, Player, PlayerID
from .rules_config import DEFAULT_RULES, RulesConfig


@dataclass(slots=True)
class BattleOptions:
    """Overrides for resolving a battle.

    Fixed totals replace the corresponding roll entirely and consume nothing
    from the gameplay stream.
    """

    attacker_fixed_roll: int | None = None
    defender_fixed_roll: int | None = None


@dataclass(slots=True)
class AttackResult:
    """Summary of a resolved attack."""

    from_id: CellID | None
    to_id: CellID
    attacker_id: PlayerID
    defender_id: PlayerID
    attacker_roll: DiceRoll
    defender_roll: DiceRoll
    attacker_won: bool
    betrayal: bool = False
    paratroop: bool = False

    @property
    def tie(self) -> bool:
        return self.attacker_roll.total == self.defender_roll.total


def attack_rejection_reason(
    state: GameState,
    from_id: int,
    to_id: int,
    rules: RulesConfig = DEFAULT_RULES,
) -> str | None:
    """Explain why ``from_id -> to_id`` is not a legal attack, or ``None``."""

    if state.phase != Phase.PLAY:
        return "the game is over"
    if not (0 <= from_id < len(state.cells) and 0 <= to_id < len(state.cells)):
        return "unknown cell"
    source = state.cells[from_id]
    target = state.cells[to_id]
    if source.owner != state.active:
        return f"cell {from_id} is not owned by the active player"
    if source.dice < rules.dice.min_attack_dice:
        return f"cell {from_id} needs at least {rules.dice.min_attack_dice} dice to attack"
    if target.owner == source.owner:
        return f"cell {to_id} is already owned by the attacker"
    if to_id not in source.neighbors:
        return f"cell {to_id} is not adjacent to cell {from_id}"
    return None


def is_legal_attack(
    state: GameState, from_id: int, to_id: int, rules: RulesConfig = DEFAULT_RULES
) -> bool:
    return attack_rejection_reason(state, from_id, to_id, rules) is None


def _roll(state: GameState, dice: int, fixed: int | None) -> DiceRoll:
    if fixed is not None:
        # values are unknown for a forced total; spread it for the statistics
        return DiceRoll(values=(0,) * dice, total=fixed)
    return state.rng.roll(dice)


def _record_rolls(attacker: Player, defender: Player | None, att: DiceRoll, dfn: DiceRoll) -> None:
    attacker.my_rolls_count += att.count
    attacker.my_rolls_sum += att.total
    attacker.opponent_rolls_count += dfn.count
    attacker.opponent_rolls_sum += dfn.total
    attacker.turn_dice_rolled += att.count
    attacker.turn_sum_of_rolls += att.total
    if defender is not None:
        defender.my_rolls_count += dfn.count
        defender.my_rolls_sum += dfn.total
        defender.opponent_rolls_count += att.count
        defender.opponent_rolls_sum += att.total


def _transfer_cell(state: GameState, cell_id: CellID, new_owner: PlayerID) -> None:
    cell = state.cells[cell_id]
    previous = state.player(cell.owner)
    if previous is not None:
        previous.cells.discard(cell_id)
    cell.owner = new_owner
    new_player = state.player(new_owner)
    if new_player is not None:
        new_player.cells.add(cell_id)


def resolve_attack(
    state: GameState,
    from_id: int,
    to_id: int,
    *,
    options: BattleOptions | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> AttackResult:
    """Resolve a normal attack from ``from_id`` into the adjacent ``to_id``.

    Raises:
        IllegalMoveError: If the attack is not legal; the state is unchanged.
    """

    reason = attack_rejection_reason(state, from_id, to_id, rules)
    if reason is not None:
        raise IllegalMoveError(reason)

    options = options or BattleOptions()
    source = state.cells[from_id]
    target = state.cells[to_id]
    attacker = state.players[source.owner]
    defender = state.player(target.owner)
    defender_id = target.owner

    betrayal = False
    if defender is not None:
        if defender_id in attacker.alliances:
            betrayal = True
            defender.betrayals[attacker.id] = rules.reinforcement.betrayal_window
            state.log(f"{attacker.name} betrayed ally {defender.name}!")
        defender.grudges[attacker.id] = defender.grudges.get(attacker.id, 0) + 1

    att = _roll(state, source.dice, options.attacker_fixed_roll)
    dfn = _roll(state, target.dice, options.defender_fixed_roll)
    _record_rolls(attacker, defender, att, dfn)

    won = att.total > dfn.total
    if won:
        _transfer_cell(state, target.id, attacker.id)
        target.dice = source.dice - 1
        source.dice = 1
        outcome = "Attack successful."
    else:
        source.dice = 1
        outcome = "Draw - defender wins." if att.total == dfn.total else "Attack failed."

    state.log(
        f"{attacker.name}: {from_id}->{to_id} | {att.total} ({att.average:.2f}) "
        f"vs {dfn.total} ({dfn.average:.2f}). {outcome}"
    )
    state.last_attack = PendingAttack(source.id, target.id)
    state.move_count += 1
    _settle(state, rules)

    return AttackResult(
        from_id=source.id,
        to_id=target.id,
        attacker_id=attacker.id,
        defender_id=defender_id,
        attacker_roll=att,
        defender_roll=dfn,
        attacker_won=won,
        betrayal=betrayal,
    )


def declare_attack(
    state: GameState, from_id: int, to_id: int, rules: RulesConfig = DEFAULT_RULES
) -> PendingAttack:
    """Validate and remember an attack the presentation layer will animate."""

    reason = attack_rejection_reason(state, from_id, to_id, rules)
    if reason is not None:
        raise IllegalMoveError(reason)
    state.pending_attack = PendingAttack(CellID(from_id), CellID(to_id))
    return state.pending_attack


def cancel_attack(state: GameState) -> None:
    """Abandon a declared attack; only possible before it is resolved."""

    state.pending_attack = None


def resolve_pending_attack(
    state: GameState,
    *,
    options: BattleOptions | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> AttackResult:
    pending = state.pending_attack
    if pending is None:
        raise IllegalMoveError("no attack has been declared")
    state.pending_attack = None
    return resolve_attack(state, pending.from_id, pending.to_id, options=options, rules=rules)


# ---------------------------------------------------------------------------
# Paratroop


def paratroop_targets(
    state: GameState,
    player_id: int | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> set[CellID]:
    """Cells within paratroop range of the player's largest region."""

    player = state.players[state.active if player_id is None else player_id]
    if player.reserve < rules.paratroop.reserve_cost or not player.largest_region_cells:
        return set()

    by_coord = state.cell_by_coord()
    targets: set[CellID] = set()
    for cid in player.largest_region_cells:
        for coord in hexes_in_range(state.cells[cid].coord, rules.paratroop.max_range):
            target_id = by_coord.get(coord)
            if target_id is not None and state.cells[target_id].owner != player.id:
                targets.add(target_id)
    return targets


def resolve_paratroop(
    state: GameState,
    target_id: int,
    *,
    options: BattleOptions | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> AttackResult:
    """Drop reserve dice onto a cell within range of the largest region.

    Raises:
        IllegalMoveError: If the game is over, the reserve is too small or the
            target is out of range.
    """

    if state.phase != Phase.PLAY:
        raise IllegalMoveError("the game is over")
    attacker = state.active_player
    if attacker.reserve < rules.paratroop.reserve_cost:
        raise IllegalMoveError(
            f"paratroop needs {rules.paratroop.reserve_cost} reserve dice, have {attacker.reserve}"
        )
    if target_id not in paratroop_targets(state, attacker.id, rules):
        raise IllegalMoveError(f"cell {target_id} is not a valid paratroop target")

    options = options or BattleOptions()
    target = state.cells[target_id]
    defender = state.player(target.owner)
    defender_id = target.owner

    attacker.reserve -= rules.paratroop.reserve_cost
    strength = rules.paratroop.attack_strength
    att = _roll(state, strength, options.attacker_fixed_roll)
    dfn = _roll(state, target.dice, options.defender_fixed_roll)
    _record_rolls(attacker, defender, att, dfn)

    won = att.total > dfn.total
    if won:
        _transfer_cell(state, target.id, attacker.id)
        target.dice = strength - 1
        state.log(f"{attacker.name} paratrooped onto {target_id}! Victory!")
    else:
        state.log(f"{attacker.name} paratroop failed on {target_id}.")

    state.last_attack = None
    state.move_count += 1
    _settle(state, rules)

    return AttackResult(
        from_id=None,
        to_id=target.id,
        attacker_id=attacker.id,
        defender_id=defender_id,
        attacker_roll=att,
        defender_roll=dfn,
        attacker_won=won,
        paratroop=True,
    )


# ---------------------------------------------------------------------------
# Consistency and victory


def _settle(state: GameState, rules: RulesConfig) -> None:
    regions.refresh_alive(state)
    regions.recompute_all_regions(state, rules)
    regions.check_invariants(state, rules)
    check_victory(state)


def check_victory(state: GameState) -> bool:
    """Enter ``VICTORY`` once at most one non-barbarian player is alive."""

    if state.phase == Phase.VICTORY:
        return True
    survivors = state.alive_civilizations()
    if len(survivors) > 1:
        return False

    state.phase = Phase.VICTORY
    state.pending_attack = None
    if survivors:
        state.winner = survivors[0].id
        state.log(f"{survivors[0].name} has won the war!")
    else:
        state.log("All civilizations have been defeated.")
    return True
