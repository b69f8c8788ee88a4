"""
Error taxonomy for quiz generation and profile persistence

Every error carries a ``user_message`` that routers hand back to the client
unchanged. Internal detail stays in the exception message and the logs.
"""
from typing import Optional


class QuizGeniusError(Exception):
    """Base class for all recoverable application errors"""

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        if user_message is not None:
            self.user_message = user_message


class ConfigurationError(QuizGeniusError):
    """A required credential or setting is missing"""

    user_message = "API configuration error. Please check server configuration."


class ModelRequestError(QuizGeniusError):
    """The language model call itself failed"""

    user_message = "Failed to generate quiz. Please try again."


class NormalizationError(QuizGeniusError):
    """Model output could not be turned into quiz questions"""

    user_message = "Failed to generate quiz. Please try again."


class ParseError(NormalizationError):
    """No JSON array could be recovered from the model output"""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class EmptyResultError(NormalizationError):
    """Parsed output held no usable questions"""


class ElementValidationError(NormalizationError):
    """A single malformed question aborted the batch (strict policy)"""

    def __init__(self, message: str, index: int):
        super().__init__(message)
        self.index = index


class PersistenceError(QuizGeniusError):
    """A profile write failed"""

    user_message = "Your score may not have been saved."


class StaleProfileError(PersistenceError):
    """The profile changed between read and write"""
