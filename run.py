#!/usr/bin/env python3
"""
run.py - Main entry point for the connection-game core

Examples:

    # Play Connect Four against the medium engine
    python run.py play

    # Play Gomoku against the aggressive engine, engine moves first
    python run.py play --variant gomoku --tier aggressive --second

    # Analyze a Connect Four position (row-major, 0 empty, 1/2 players)
    python run.py analyze --position 0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,0,1,1,1,0,2,2,0

    # Benchmark with 5000 iterations and detailed timings
    python run.py --debug_level debug benchmark --iterations 5000

    # Watch only the engine and search logs while playing
    python run.py --debug_level debug --debug_components engine,search play --tier hard

    # Pit tiers against each other
    python run.py matrix --tiers beginner,balanced,aggressive,defensive --games 6
"""

import sys

from connectn.interfaces.cli import main

if __name__ == "__main__":
    sys.exit(main())
