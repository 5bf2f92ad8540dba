class RecognitionError(Exception):
    """Raised when text recognition fails."""
