from docflow.config.settings import Settings
from docflow.recognition.base import BaseRecognizer
from docflow.recognition.simulated import SimulatedRecognizer


class RecognizerFactory:
    """Creates the configured recognition adapter."""

    ENGINES = ("simulated",)

    @classmethod
    def create(cls, settings: Settings) -> BaseRecognizer:
        engine = settings.recognition_engine.lower()
        if engine == "simulated":
            return SimulatedRecognizer(delay_seconds=settings.recognition_delay_seconds)
        raise ValueError(
            f"Unknown recognition engine '{engine}'. Choose from: {list(cls.ENGINES)}"
        )
