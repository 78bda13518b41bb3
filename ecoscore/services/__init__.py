"""Eco-Score services: winner declaration, archival rollover and evaluation records."""

from ecoscore.services.archival import ArchivalResult, archive_all_evaluations, run_archival_check
from ecoscore.services.evaluations import delete_evaluation, list_evaluations, record_evaluation
from ecoscore.services.winners import (
    DeclarationResult,
    classroom_win_counts,
    declare_winner,
    declare_winner_from_candidate,
    delete_winner,
    list_winners,
    winner_candidates,
)

__all__ = [
    "ArchivalResult",
    "DeclarationResult",
    "archive_all_evaluations",
    "classroom_win_counts",
    "declare_winner",
    "declare_winner_from_candidate",
    "delete_evaluation",
    "delete_winner",
    "list_evaluations",
    "list_winners",
    "record_evaluation",
    "run_archival_check",
    "winner_candidates",
]
