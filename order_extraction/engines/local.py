"""
Local OCR Extractor.

Runs the fully local pipeline, one stage feeding the next:

    render page -> whiten -> OCR -> spatial reconstruction
        -> line-item grammar -> header extraction

The stages are synchronous CPU work, so the whole pipeline runs in a
worker thread and the event loop stays free for other documents. Header
extraction uses the local text model in ``local-model`` mode and falls
back to alias matching on any failure or empty answer; ``local-regex``
mode uses alias matching only.

The local path never produces ``unmappedData``, ``termsAndConditions`` or
``confidence`` and always reports zero cost.

Author: ML Engineering Team
"""

import asyncio
from typing import Any, Dict, Optional

from config import get_config
from order_extraction.utils.logger import get_logger
from order_extraction.model_inference.extraction_result import ExtractionResult, UsageMetadata
from order_extraction.model_inference.header_extractor import (
    AliasHeaderExtractor,
    LocalModelHeaderExtractor,
)
from order_extraction.model_inference.schema import TrainingRules, build_field_list
from order_extraction.ocr_engine.spatial import reconstruct_spatial_text
from order_extraction.postprocessor.line_items import LineItemParser
from .base import ExtractionContext, Extractor
from .registry import EngineRegistry

# Initialize module logger
logger = get_logger(__name__)


class LocalOCRExtractor(Extractor):
    """
    Local OCR + heuristics extraction.

    Attributes:
        registry: Source of the shared OCR engine, text model and input handler
        use_model: Try the local text model for header fields first

    Example:
        >>> extractor = LocalOCRExtractor(registry, use_model=False)
        >>> result = await extractor.extract(context)
        >>> result.usage_metadata.estimated_cost
        0.0
    """

    def __init__(
        self,
        registry: Optional[EngineRegistry] = None,
        use_model: bool = False,
        line_item_parser: Optional[LineItemParser] = None,
        alias_extractor: Optional[AliasHeaderExtractor] = None
    ) -> None:
        self.registry = registry or EngineRegistry()
        self.use_model = use_model
        self.engine_id = 'local-model' if use_model else 'local-regex'
        self.line_item_parser = line_item_parser or LineItemParser()
        self.alias_extractor = alias_extractor or AliasHeaderExtractor()

        if use_model:
            self.display_name = get_config("local.model.display_name", "Local Model")
        else:
            self.display_name = get_config("local.ocr_display_name", "Tesseract (Local)")

    async def extract(self, context: ExtractionContext) -> ExtractionResult:
        """
        Run the local pipeline in a worker thread.

        Args:
            context: Document and rules for this invocation.

        Returns:
            ExtractionResult with header fields and line items.
        """
        return await asyncio.to_thread(self.run_pipeline, context)

    def run_pipeline(self, context: ExtractionContext) -> ExtractionResult:
        """
        Synchronous pipeline body.

        Raises:
            CorruptedFileError: If the document cannot be rendered.
            OCRProcessingError: If OCR fails.
        """
        document = context.document
        logger.info(f"Local extraction ({self.engine_id}) of {document.filename}")

        page = self.registry.get_input_handler().render_page(document)
        ocr_result = self.registry.get_ocr_engine().extract(page)
        if ocr_result.is_empty():
            logger.warning(f"OCR found no text on {document.filename}")

        spatial_text = reconstruct_spatial_text(ocr_result)
        line_items = self.line_item_parser.parse(spatial_text)
        mapped_data = self.extract_headers(spatial_text, ocr_result.text, context.rules)

        logger.info(
            f"Local extraction finished: {len(mapped_data)} header fields, "
            f"{len(line_items)} line items"
        )

        return ExtractionResult(
            mapped_data=mapped_data,
            line_items=tuple(line_items),
            usage_metadata=UsageMetadata(model_name=self.display_name, estimated_cost=0.0),
        )

    def extract_headers(
        self,
        spatial_text: str,
        raw_text: str,
        rules: TrainingRules
    ) -> Dict[str, Any]:
        """
        Extract header fields, model first when enabled.

        Args:
            spatial_text: Column-preserving text (model input).
            raw_text: Plain OCR text (alias matching input).
            rules: Rules object whose schema names the fields.

        Returns:
            Header values keyed by field name.
        """
        if self.use_model:
            try:
                model = self.registry.get_text_model()
                headers = LocalModelHeaderExtractor(model).extract(spatial_text, rules)
                if headers:
                    return headers
                logger.info("Local model returned no header fields; using alias matching")
            except Exception as e:
                logger.warning(f"Local model header extraction failed ({e}); using alias matching")

        return self.alias_extractor.extract(raw_text, build_field_list(rules))
