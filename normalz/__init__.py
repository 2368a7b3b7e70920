"""Normalz: answer-tally and outcome-decision service for the Normalz guessing game."""

__version__ = "0.1.0"
