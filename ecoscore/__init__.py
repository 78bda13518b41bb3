"""
Classroom Eco-Score engine.

Scores classroom sustainability evaluations into leaderboards, records
monthly division winners and rolls the active evaluations into an
archive at each month boundary.
"""

__version__ = "1.0.0"
