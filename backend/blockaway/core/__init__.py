"""Core engine package.

This package contains the path resolver, solvability checker, deadlock
tracer, play session rules, level generator and puzzle analyzer.
"""
from .analyzer import PuzzleAnalyzer, get_analyzer
from .clearability import is_clearable, is_unlocked, is_waiting
from .deadlock import DeadlockTracer, compute_deadlock_info
from .generator import LevelGenerator, generate_filled_board, get_generator
from .path_resolver import resolve_direction, resolve_path
from .session import GameState, Ruleset, TapOutcome, initialize_state, tap
from .solver import check_solvable, compute_clearable_set

__all__ = [
    "PuzzleAnalyzer",
    "get_analyzer",
    "is_clearable",
    "is_unlocked",
    "is_waiting",
    "DeadlockTracer",
    "compute_deadlock_info",
    "LevelGenerator",
    "generate_filled_board",
    "get_generator",
    "resolve_direction",
    "resolve_path",
    "GameState",
    "Ruleset",
    "TapOutcome",
    "initialize_state",
    "tap",
    "check_solvable",
    "compute_clearable_set",
]
