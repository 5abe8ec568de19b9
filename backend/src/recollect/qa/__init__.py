"""Question answering over personal data and the web."""

from recollect.qa.schemas import AskMode, AskRequest, AskResponse
from recollect.qa.service import AskService

__all__ = ["AskMode", "AskRequest", "AskResponse", "AskService"]
