"""Declarative rule configuration for the diceconquest domain."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class DiceRules:
    """Stack sizes and the minimum attacking stack."""

    max_dice: int = 8
    barbarian_max_dice: int = 3
    min_attack_dice: int = 2
    die_sides: int = 6


@dataclass(frozen=True, slots=True)
class ParatroopRules:
    """Reserve-funded drop attack."""

    reserve_cost: int = 8
    attack_strength: int = 7  # one die burned for the drop
    max_range: int = 4


@dataclass(frozen=True, slots=True)
class ReinforcementRules:
    """End-of-turn income and placement."""

    barbarian_income_divisor: int = 8
    corruption_loss_chance: float = 0.5
    placement_guard: int = 5000
    betrayal_window: int = 2


@dataclass(frozen=True, slots=True)
class MapRules:
    """Landmass growth and water carving parameters."""

    water_inflation: float = 1.5
    water_removal_fraction: float = 0.4
    lake_size_factor: int = 20
    min_landmass_fraction: float = 0.25
    compact_score_threshold: int = 2
    starting_dice_guard: int = 5000
    conquest_start_dice: int = 8
    conquest_candidate_sample: int = 100
    barbarian_start_dice_max: int = 3


@dataclass(frozen=True, slots=True)
class BonusRules:
    """Classic-mode turn-order compensation (lower bounds of cell-count brackets)."""

    brackets: tuple[tuple[int, int], ...] = ((300, 4), (200, 3), (100, 2))
    default_base: int = 1
    placement_guard: int = 500


@dataclass(frozen=True, slots=True)
class AiRules:
    """Scoring constants for the heuristic AI."""

    absolute_floor: float = 0.2
    easy_floor: float = 0.4
    normal_floor: float = 0.5
    connect_bonus: float = 500.0
    full_stack_bonus: float = 50.0
    undefended_bonus: float = 30.0
    easy_top_choices: int = 3
    hard_connect_min_probability: float = 0.4
    hard_connect_score_hoarding: float = 5000.0
    hard_connect_score_spending: float = 2000.0
    hard_full_stack_weight: float = 1000.0
    hard_weak_target_dice: int = 2
    hard_weak_target_bonus: float = 200.0
    hard_strong_target_dice: int = 6
    hard_strong_target_penalty: float = 100.0
    hard_big_stack_dice: int = 6
    hard_big_stack_weight: float = 500.0
    hard_massive_overflow: int = 10
    hard_small_stack_weight: float = 100.0
    grudge_weight_aggressive: float = 10.0
    grudge_weight_normal: float = 5.0
    grudge_weight_kind: float = 2.0


@dataclass(frozen=True, slots=True)
class SurrenderRules:
    """Thresholds for the AI surrender signal and the human prompt."""

    ai_min_turn: float = 20.0
    ai_min_civilizations: int = 3
    ai_territory_ratio: float = 0.15
    ai_dice_ratio: float = 0.2
    prompt_ratio: float = 0.2
    conquest_prompt_min_turn: int = 5


@dataclass(frozen=True, slots=True)
class RulesConfig:
    """Top-level configuration container for all subsystems."""

    dice: DiceRules = DiceRules()
    paratroop: ParatroopRules = ParatroopRules()
    reinforcement: ReinforcementRules = ReinforcementRules()
    map: MapRules = MapRules()
    bonus: BonusRules = BonusRules()
    ai: AiRules = AiRules()
    surrender: SurrenderRules = SurrenderRules()
    strict_invariants: bool = False
    # recorded in every save so a changed ruleset is noticed on load
    version: str = "1.0"


DEFAULT_RULES = RulesConfig()
