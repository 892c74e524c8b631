"""Whale Swap Tracker - Personalized alerts for large on-chain token swaps."""

__version__ = "0.1.0"
