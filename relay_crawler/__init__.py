"""Bounded, concurrent fetch → transform → persist crawler pipeline."""

__version__ = "0.1.0"
