from studybuddy.models.user import User
from studybuddy.models.deck import Card, Deck

__all__ = ["User", "Deck", "Card"]
