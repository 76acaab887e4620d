"""
D&D 5e Tactical Combat Engine.

Pure rules functions for grid combat: movement, line of sight, attacks,
damage, spells, class features, Battle Master maneuvers and monster AI.
"""
__version__ = "0.1.0"
