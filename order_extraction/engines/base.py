"""
Extractor Interface.

Every extraction engine implements ``extract(context) -> ExtractionResult``
as a coroutine, so documents can be processed as independent concurrent
tasks regardless of whether an engine waits on the network or runs CPU
work in a worker thread.

Author: ML Engineering Team
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from order_extraction.input_handler.handler import DocumentPayload
from order_extraction.model_inference.extraction_result import ExtractionResult
from order_extraction.model_inference.schema import TrainingRules


@dataclass(frozen=True)
class ExtractionContext:
    """
    Everything one extraction invocation needs.

    Attributes:
        document: Source bytes, MIME type, filename, supplementary text
        rules: Schema and rule set in force
    """
    document: DocumentPayload
    rules: TrainingRules

    @property
    def filename(self) -> str:
        return self.document.filename

    @property
    def supplementary_text(self):
        return self.document.supplementary_text


class Extractor(ABC):
    """Base class for extraction engines."""

    #: Engine identifier used for selection and in degraded results
    engine_id: str = ''

    @abstractmethod
    async def extract(self, context: ExtractionContext) -> ExtractionResult:
        """
        Extract a structured record from a document.

        Args:
            context: Document and rules for this invocation.

        Returns:
            ExtractionResult in the uniform contract shape.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(engine_id={self.engine_id!r})"
