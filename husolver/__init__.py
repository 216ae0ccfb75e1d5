"""
husolver: Heads-up Postflop MCCFR Solver

A Python poker solver that approximates equilibrium strategies for a
single heads-up postflop spot (board, ranges, stacks and bet sizes)
with external-sampling Monte Carlo CFR.
"""

__version__ = "0.1.0"
