"""Decision routing for screened claims."""

from .decision_engine import (
    decide_status,
    generate_explanation,
    get_next_actions,
    make_decision,
)

__all__ = [
    "decide_status",
    "generate_explanation",
    "get_next_actions",
    "make_decision",
]
