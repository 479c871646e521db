"""
Hexdice - Decision Engine for Hex-Grid Dice Strategy Games

A deterministic lookahead engine for games where territory is held by stacks of
dice and combat is resolved Risk-style. The engine provides:
- Immutable board snapshots with cheap fingerprints
- Exact combat outcome distributions
- Legal move enumeration
- Expectimax search over a memoised, pruned game tree
- Pluggable scoring personalities for bots
"""

__version__ = "0.1.0"
