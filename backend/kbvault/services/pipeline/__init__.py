from .orchestrator import PDFProcessingPipeline
from .steps import PIPELINE_STEPS

__all__ = ["PDFProcessingPipeline", "PIPELINE_STEPS"]
