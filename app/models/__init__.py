from .course import Course
from .insight import Insight
from .player import Player
from .round import Round, RoundHole

__all__ = [
    "Player",
    "Course",
    "Round",
    "RoundHole",
    "Insight",
]
