"""Heuristic AI for computer-controlled players.

The AI only *reads* the game state. It proposes one of three move shapes and
the engine applies it through the same validated path as human input:

* :class:`AttackMove` - attack ``to_id`` from ``from_id``
* :class:`SurrenderMove` - give up, optionally to a preferred recipient
* ``None`` - end the turn

Strategies are chosen by a closed mapping from difficulty (or the barbarian
flag) to a :class:`Strategy` implementation.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Protocol

from diceconquest.utils.rng import SeededRng

from .enums import AiDifficulty, Personality, Phase
from .models import Cell, CellID, GameState, Player, PlayerID
from .rules_config import DEFAULT_RULES, RulesConfig


@dataclass(frozen=True, slots=True)
class AttackMove:
    from_id: CellID
    to_id: CellID


@dataclass(frozen=True, slots=True)
class SurrenderMove:
    recipient_id: PlayerID | None = None  # None: no preference


Move = AttackMove | SurrenderMove | None


@dataclass(frozen=True, slots=True)
class ScoredMove:
    from_id: CellID
    to_id: CellID
    score: float


# ---------------------------------------------------------------------------
# Shared heuristics


def win_probability(attacker_dice: int, defender_dice: int) -> float:
    """Cheap linear proxy for the chance an attack succeeds.

    Outnumbered attackers lose 12 points per missing die; ties go to
    the defender.
    """

    if attacker_dice <= 1:
        return 0.0
    diff = attacker_dice - defender_dice
    if diff == 0:
        return 0.45
    if diff > 0:
        return 0.5 + diff * 0.1
    return 0.5 + diff * 0.12


def are_cells_connected(state: GameState, id_a: int, id_b: int, owner_id: int) -> bool:
    """Whether two cells are linked through cells owned by ``owner_id``."""

    if id_a == id_b:
        return True
    owner = state.player(owner_id)
    if owner is not None and id_a in owner.largest_region_cells and id_b in owner.largest_region_cells:
        return True

    visited = {id_a}
    stack = [id_a]
    while stack:
        current = stack.pop()
        if current == id_b:
            return True
        for nid in state.cells[current].neighbors:
            if nid not in visited and state.cells[nid].owner == owner_id:
                visited.add(nid)
                stack.append(nid)
    return False


def is_move_connecting(state: GameState, source: Cell, target: Cell, player: Player) -> bool:
    """Whether capturing ``target`` would join ``source`` to a separate part of the empire."""

    others = [nid for nid in target.neighbors if nid != source.id and state.cells[nid].owner == player.id]
    if not others:
        return False
    return not are_cells_connected(state, source.id, others[0], player.id)


def _candidate_attacks(state: GameState, player: Player, rules: RulesConfig) -> Iterator[tuple[Cell, Cell]]:
    for cid in sorted(player.cells):
        source = state.cells[cid]
        if source.dice < rules.dice.min_attack_dice:
            continue
        for nid in source.neighbors:
            target = state.cells[nid]
            if target.owner != player.id:
                yield source, target


def _grudge_weight(player: Player, rules: RulesConfig) -> float:
    if player.personality == Personality.AGGRESSIVE:
        return rules.ai.grudge_weight_aggressive
    if player.personality == Personality.KIND:
        return rules.ai.grudge_weight_kind
    return rules.ai.grudge_weight_normal


def _ally_target_allowed(player: Player, target_owner: PlayerID, connects: bool) -> bool:
    """Allies are only attacked to connect territory or to retaliate a betrayal."""

    if target_owner not in player.alliances:
        return True
    return connects or target_owner in player.betrayals


def _best(moves: list[ScoredMove]) -> list[ScoredMove]:
    return sorted(moves, key=lambda m: m.score, reverse=True)


# ---------------------------------------------------------------------------
# Strategies


class Strategy(Protocol):
    def score_move(self, state: GameState, player: Player, source: Cell, target: Cell) -> float | None:
        """Score an attack, or ``None`` when it must not be made."""

    def choose_move(self, state: GameState, player: Player, rng: SeededRng) -> AttackMove | None:
        """Pick an attack for ``player`` or ``None`` to end the turn."""


class StandardStrategy:
    """Easy/normal scoring: odds first, plus connection, stack and cheap-target bonuses."""

    def __init__(self, difficulty: AiDifficulty, rules: RulesConfig = DEFAULT_RULES) -> None:
        self.difficulty = difficulty
        self.rules = rules

    def score_move(self, state: GameState, player: Player, source: Cell, target: Cell) -> float | None:
        ai = self.rules.ai
        prob = win_probability(source.dice, target.dice)
        if prob < ai.absolute_floor:
            return None
        if self.difficulty == AiDifficulty.EASY and prob < ai.easy_floor:
            return None
        if self.difficulty == AiDifficulty.NORMAL and prob < ai.normal_floor:
            return None

        connects = is_move_connecting(state, source, target, player)
        if not _ally_target_allowed(player, target.owner, connects):
            return None

        score = prob * 100
        if connects:
            score += ai.connect_bonus
        if source.dice == self.rules.dice.max_dice:
            score += ai.full_stack_bonus
        if target.dice == 1:
            score += ai.undefended_bonus
        score += player.grudges.get(target.owner, 0) * _grudge_weight(player, self.rules)
        return score

    def choose_move(self, state: GameState, player: Player, rng: SeededRng) -> AttackMove | None:
        moves = []
        for source, target in _candidate_attacks(state, player, self.rules):
            score = self.score_move(state, player, source, target)
            if score is not None and score > 0:
                moves.append(ScoredMove(source.id, target.id, score))
        ranked = _best(moves)
        if not ranked:
            return None

        top = self.rules.ai.easy_top_choices
        if self.difficulty == AiDifficulty.EASY and len(ranked) > top:
            pick = ranked[int(rng.random() * top)]
        else:
            pick = ranked[0]
        return AttackMove(pick.from_id, pick.to_id)


def capacity_overflow(state: GameState, player: Player, rules: RulesConfig = DEFAULT_RULES) -> int:
    """Dice expected next turn beyond the free room in the largest region."""

    incoming = player.largest_region_size + player.reserve
    room = sum(rules.dice.max_dice - state.cells[cid].dice for cid in player.largest_region_cells)
    return incoming - room


class HoardingStrategy:
    """Hard mode: sit on full stacks while there is room, spend only to relieve overflow."""

    def __init__(self, rules: RulesConfig = DEFAULT_RULES) -> None:
        self.rules = rules

    def score_move(self, state: GameState, player: Player, source: Cell, target: Cell) -> float | None:
        ai = self.rules.ai
        connects = is_move_connecting(state, source, target, player)
        if target.owner in player.alliances and not connects:
            return None

        prob = win_probability(source.dice, target.dice)
        overflow = capacity_overflow(state, player, self.rules)

        if overflow <= 0:
            if connects and prob > ai.hard_connect_min_probability:
                return ai.hard_connect_score_hoarding
            return None

        if connects and prob > ai.hard_connect_min_probability:
            return ai.hard_connect_score_spending
        if source.id not in player.largest_region_cells:
            return None

        if source.dice == self.rules.dice.max_dice:
            score = ai.hard_full_stack_weight * prob
            if target.dice <= ai.hard_weak_target_dice:
                score += ai.hard_weak_target_bonus
            if target.dice >= ai.hard_strong_target_dice:
                score -= ai.hard_strong_target_penalty
            return score
        if source.dice >= ai.hard_big_stack_dice:
            return ai.hard_big_stack_weight * prob
        if overflow > ai.hard_massive_overflow:
            return ai.hard_small_stack_weight * prob
        return None

    def choose_move(self, state: GameState, player: Player, rng: SeededRng) -> AttackMove | None:
        moves = []
        for source, target in _candidate_attacks(state, player, self.rules):
            score = self.score_move(state, player, source, target)
            if score is not None and score > 0:
                moves.append(ScoredMove(source.id, target.id, score))
        ranked = _best(moves)
        return AttackMove(ranked[0].from_id, ranked[0].to_id) if ranked else None


class BarbarianStrategy:
    """Greedy: biggest dice advantage first, never against other barbarians."""

    def __init__(self, rules: RulesConfig = DEFAULT_RULES) -> None:
        self.rules = rules

    def score_move(self, state: GameState, player: Player, source: Cell, target: Cell) -> float | None:
        owner = state.player(target.owner)
        if owner is not None and owner.is_barbarian:
            return None
        return float(source.dice - target.dice)

    def choose_move(self, state: GameState, player: Player, rng: SeededRng) -> AttackMove | None:
        best: ScoredMove | None = None
        for source, target in _candidate_attacks(state, player, self.rules):
            score = self.score_move(state, player, source, target)
            if score is not None and (best is None or score > best.score):
                best = ScoredMove(source.id, target.id, score)
        if best is not None and best.score >= 0:
            return AttackMove(best.from_id, best.to_id)
        return None


def strategy_for(
    player: Player, difficulty: AiDifficulty, rules: RulesConfig = DEFAULT_RULES
) -> Strategy:
    if player.is_barbarian:
        return BarbarianStrategy(rules)
    if difficulty == AiDifficulty.HARD:
        return HoardingStrategy(rules)
    return StandardStrategy(difficulty, rules)


# ---------------------------------------------------------------------------
# Entry point


def surrender_signal(
    state: GameState, player: Player, rules: RulesConfig = DEFAULT_RULES
) -> SurrenderMove | None:
    """Give up when hopelessly behind the strongest civilisation."""

    if player.is_barbarian or state.turn <= rules.surrender.ai_min_turn:
        return None
    alive = state.alive_civilizations()
    if len(alive) < rules.surrender.ai_min_civilizations:
        return None

    leader = max(alive, key=lambda p: len(p.cells))
    if leader.id == player.id or not leader.cells:
        return None
    leader_dice = sum(state.cells[cid].dice for cid in leader.cells)
    own_dice = sum(state.cells[cid].dice for cid in player.cells)
    if (
        len(player.cells) < len(leader.cells) * rules.surrender.ai_territory_ratio
        and own_dice < leader_dice * rules.surrender.ai_dice_ratio
    ):
        return SurrenderMove(recipient_id=leader.id)
    return None


def decision_rng(state: GameState) -> SeededRng:
    """AI-private stream; keeps AI sampling off the gameplay dice stream."""

    return SeededRng(f"{state.seed}:ai:{state.move_count}")


def choose_move(
    state: GameState,
    *,
    rng: SeededRng | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> Move:
    """Decide the active AI player's next move without mutating ``state``."""

    if state.phase != Phase.PLAY:
        return None
    player = state.active_player
    if not player.alive or player.human:
        return None

    strategy = strategy_for(player, state.ai_difficulty, rules)
    move = strategy.choose_move(state, player, rng or decision_rng(state))
    if move is not None:
        return move
    return surrender_signal(state, player, rules)
