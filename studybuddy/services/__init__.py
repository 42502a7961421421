from studybuddy.services.accounts import CredentialStore
from studybuddy.services.auth import Authenticator
from studybuddy.services.decks import DeckStore
from studybuddy.services.study import StudySession, open_study_session

__all__ = ["CredentialStore", "Authenticator", "DeckStore", "StudySession", "open_study_session"]
