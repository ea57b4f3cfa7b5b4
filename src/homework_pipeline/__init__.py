"""
Homework Pipeline

Normalizes batches of nested student archive submissions into one flat
notebook folder per student, extracts notebook statistics, and optionally
grades the notebooks with an LLM.
"""

__version__ = "0.1.0"
