"""dispute package.

This package implements the bisection game between a prover and a challenger.

Modules:
    - events: The messages of the game.
    - state: Contains the DisputeSetup and DisputeState classes.
    - engine: The transition function of the game, its replay, and the EventLog class.
    - participant: Contains the Participant class, the strategy of both roles, and the `play` driver.
    - registry: Contains the DisputeRegistry class, at most one dispute per execution instance.
"""
