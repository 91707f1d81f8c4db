from porra import db  # noqa: F401 - imported for model imports

from .player import Player
from .point import Point
from .race import Race
from .rider import Rider
from .vote import Vote

__all__ = [
    "Player",
    "Rider",
    "Race",
    "Vote",
    "Point",
]
