from docflow.stages.base import StageHandler
from docflow.stages.extraction import ExtractionHandler
from docflow.stages.persistence import PersistenceHandler
from docflow.stages.recognition import RecognitionHandler

__all__ = ["ExtractionHandler", "PersistenceHandler", "RecognitionHandler", "StageHandler"]
