"""
Otogi Team Calculator - Deterministic team damage simulation

Reproduces the game's combat formulas for a configured squad: base stats,
ability targeting and stacking, enemy debuffs, crit expectation and damage
caps. Results are expectation values, never sampled outcomes.
"""

__version__ = "0.1.0"
