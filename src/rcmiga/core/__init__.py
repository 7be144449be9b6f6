"""
RCMIGA Core Module - Genetic Algorithm Components.

This module contains the core components of the optimizer, including
configuration, genetic operators, constraint handling, evaluation strategies,
stopping criteria and the main evolution engine.
"""
