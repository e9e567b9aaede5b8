"""
Ball-by-Ball Limited-Overs Scoring Engine

Takes one operator-entered delivery at a time and derives the next match
state: runs, wickets, overs, strike rotation, free hits, innings
transitions and the final result, with snapshot-based undo.
"""

__version__ = "0.1.0"
