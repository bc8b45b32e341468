"""
Command-line interface for the noir engine.
"""

from src.cli.repl import GameREPL, run_game

__all__ = [
    "GameREPL",
    "run_game",
]
