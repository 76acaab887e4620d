"""
Rules Configuration System.

Manages toggleable rule variants used by the combat engine: how diagonals
are measured, whether cantrips scale, whether weapon masteries apply, and a
few tunable DCs.

The active configuration starts from the preset named in settings
(``DND_TACTICS_RULES_PRESET``, default "standard").
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Any, Optional

from dnd_tactics.config import get_settings


class DiagonalRule(str, Enum):
    """How diagonal steps are priced on the grid."""
    CHEBYSHEV = "chebyshev"      # Every diagonal costs 5ft
    ALTERNATING = "alternating"  # 5-10-5: every second diagonal costs 10ft


@dataclass(frozen=True)
class RulesConfig:
    """
    Configuration for rules variants.

    Distance between combatants is always Chebyshev; the diagonal rules here
    apply to movement cost and to ranged range checks.
    """
    movement_diagonal_rule: DiagonalRule = DiagonalRule.ALTERNATING
    ranged_diagonal_rule: DiagonalRule = DiagonalRule.ALTERNATING

    cantrip_scaling: bool = True
    weapon_mastery_enabled: bool = True

    # Melee hits against paralyzed/unconscious targets within 5ft are crits
    auto_crit_helpless: bool = True

    death_save_dc: int = 10
    # Save DC used when a non-character uses a maneuver
    monster_maneuver_save_dc: int = 10

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return {
            "movement_diagonal_rule": self.movement_diagonal_rule.value,
            "ranged_diagonal_rule": self.ranged_diagonal_rule.value,
            "cantrip_scaling": self.cantrip_scaling,
            "weapon_mastery_enabled": self.weapon_mastery_enabled,
            "auto_crit_helpless": self.auto_crit_helpless,
            "death_save_dc": self.death_save_dc,
            "monster_maneuver_save_dc": self.monster_maneuver_save_dc,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RulesConfig":
        """Create config from dictionary."""
        return cls(
            movement_diagonal_rule=DiagonalRule(data.get("movement_diagonal_rule", "alternating")),
            ranged_diagonal_rule=DiagonalRule(data.get("ranged_diagonal_rule", "alternating")),
            cantrip_scaling=data.get("cantrip_scaling", True),
            weapon_mastery_enabled=data.get("weapon_mastery_enabled", True),
            auto_crit_helpless=data.get("auto_crit_helpless", True),
            death_save_dc=data.get("death_save_dc", 10),
            monster_maneuver_save_dc=data.get("monster_maneuver_save_dc", 10),
        )


# Preset configurations for quick setup
PRESET_CONFIGS: Dict[str, RulesConfig] = {
    "standard": RulesConfig(),
    "simple_grid": RulesConfig(
        movement_diagonal_rule=DiagonalRule.CHEBYSHEV,
        ranged_diagonal_rule=DiagonalRule.CHEBYSHEV,
    ),
    "classic_2014": RulesConfig(
        weapon_mastery_enabled=False,
    ),
}


_current_config: Optional[RulesConfig] = None


def get_rules_config() -> RulesConfig:
    """Get the active rules configuration."""
    global _current_config
    if _current_config is None:
        _current_config = PRESET_CONFIGS.get(get_settings().RULES_PRESET, RulesConfig())
    return _current_config


def set_rules_config(config: RulesConfig) -> None:
    """Replace the active rules configuration."""
    global _current_config
    _current_config = config


def reset_rules_config() -> None:
    """Reset to the settings-selected preset."""
    global _current_config
    _current_config = None


def apply_preset(preset_name: str) -> bool:
    """
    Apply a preset configuration.

    Returns:
        True if preset was applied, False if preset name is invalid
    """
    if preset_name not in PRESET_CONFIGS:
        return False

    set_rules_config(PRESET_CONFIGS[preset_name])
    return True


def is_cantrip_scaling_enabled() -> bool:
    """Check if cantrip scaling is enabled."""
    return get_rules_config().cantrip_scaling


def is_weapon_mastery_enabled() -> bool:
    """Check if weapon mastery properties apply."""
    return get_rules_config().weapon_mastery_enabled


class RulesContext:
    """
    Context manager for temporarily changing rules configuration.

    Example:
        with RulesContext(cantrip_scaling=False):
            # Cantrips keep their base dice here
            pass
        # Original config is restored
    """

    def __init__(self, **kwargs):
        self.overrides = kwargs
        self.original_config: Optional[RulesConfig] = None

    def __enter__(self) -> RulesConfig:
        self.original_config = get_rules_config()
        set_rules_config(replace(self.original_config, **self.overrides))
        return get_rules_config()

    def __exit__(self, exc_type, exc_val, exc_tb):
        set_rules_config(self.original_config)
        return False
