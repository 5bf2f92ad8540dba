from abc import ABC, abstractmethod

from docflow.documents.models import RecognitionResult


class BaseRecognizer(ABC):
    """Contract for all text recognition adapters."""

    @abstractmethod
    def recognize(self, content: bytes) -> RecognitionResult:
        """Recognize text in a document's binary payload.

        Args:
            content: Raw document bytes (image, PDF, ...).

        Returns:
            RecognitionResult with text, confidence in [0, 1] and language.

        Raises:
            RecognitionError: on any failure.
        """
