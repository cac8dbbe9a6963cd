from .catalog import Gig
from .interaction import Review


__all__ = [
    "Gig",
    "Review",
]
