"""
Engine Selector.

Maps an engine identifier onto one of the extractor variants and runs it.
Whatever the engine, the caller receives the same ExtractionResult shape:

    cloud        CloudMultiStepExtractor
    local-regex  LocalOCRExtractor(use_model=False)
    local-model  LocalOCRExtractor(use_model=True)

An unknown identifier is a configuration mistake and raises
ConfigurationError. Every failure inside an engine is logged and turned
into a degraded result, so one bad document never blocks a batch.
Feedback refinement goes through the same selector but propagates its
errors.

Usage:
    selector = EngineSelector()
    result = await selector.extract(payload, rules, engine="local-regex")
    results = await selector.extract_many(payloads, rules)

Author: ML Engineering Team
"""

import asyncio
from typing import Callable, Dict, List, Optional, Sequence

from config import get_config
from order_extraction.utils.logger import get_logger
from order_extraction.utils.exceptions import ConfigurationError
from order_extraction.input_handler.handler import DocumentPayload
from order_extraction.model_inference.extraction_result import ExtractionResult
from order_extraction.model_inference.feedback import FeedbackRefiner, RefinementOutcome
from order_extraction.model_inference.schema import TrainingRules
from .base import ExtractionContext, Extractor
from .cloud import CloudMultiStepExtractor
from .local import LocalOCRExtractor
from .registry import EngineRegistry

# Initialize module logger
logger = get_logger(__name__)

ENGINES: Dict[str, Callable[[EngineRegistry], Extractor]] = {
    'cloud': lambda registry: CloudMultiStepExtractor(registry),
    'local-regex': lambda registry: LocalOCRExtractor(registry, use_model=False),
    'local-model': lambda registry: LocalOCRExtractor(registry, use_model=True),
}


class EngineSelector:
    """
    Dispatches extraction requests to the configured engine.

    Attributes:
        registry: Shared collaborators handed to every engine
        default_engine: Engine id used when a call names none
        default_rules: Rules object used when a call passes none

    Example:
        >>> selector = EngineSelector(registry=test_registry)
        >>> result = await selector.extract(payload, engine="local-regex")
        >>> sorted(result.to_dict())
        ['appliedRuleIds', 'confidence', 'lineItems', 'mappedData',
         'termsAndConditions', 'unmappedData', 'usageMetadata']
    """

    def __init__(
        self,
        registry: Optional[EngineRegistry] = None,
        default_engine: Optional[str] = None,
        default_rules: Optional[TrainingRules] = None
    ) -> None:
        self.registry = registry or EngineRegistry()
        self.default_engine = default_engine or get_config("extraction.engine", "cloud")
        self.default_rules = default_rules
        self._extractors: Dict[str, Extractor] = {}

    @staticmethod
    def available_engines() -> List[str]:
        return list(ENGINES)

    def resolve(self, engine: Optional[str] = None) -> Extractor:
        """
        Get the extractor for an engine id.

        Args:
            engine: Engine identifier; None selects the default.

        Returns:
            Extractor instance (cached per id).

        Raises:
            ConfigurationError: If the identifier is unknown.
        """
        engine_id = engine or self.default_engine
        factory = ENGINES.get(engine_id)
        if factory is None:
            raise ConfigurationError(
                f"Unknown extraction engine '{engine_id}'",
                {"engine": engine_id, "available": list(ENGINES)}
            )

        if engine_id not in self._extractors:
            self._extractors[engine_id] = factory(self.registry)
        return self._extractors[engine_id]

    def _rules(self, rules: Optional[TrainingRules]) -> TrainingRules:
        if rules is not None:
            return rules
        if self.default_rules is None:
            self.default_rules = TrainingRules.default()
        return self.default_rules

    async def extract(
        self,
        document: DocumentPayload,
        rules: Optional[TrainingRules] = None,
        engine: Optional[str] = None
    ) -> ExtractionResult:
        """
        Extract one document with the selected engine.

        Args:
            document: Document payload.
            rules: Rules object; defaults to ``rules.default`` from config.
            engine: Engine identifier; defaults to ``extraction.engine``.

        Returns:
            ExtractionResult. Engine failures yield a degraded result
            carrying an ``error`` entry in ``unmappedData``.

        Raises:
            ConfigurationError: If the engine identifier is unknown.
        """
        extractor = self.resolve(engine)
        context = ExtractionContext(document=document, rules=self._rules(rules))

        logger.info(f"Processing {document.filename} using engine: {extractor.engine_id}")

        try:
            return await extractor.extract(context)
        except Exception as e:
            logger.error(
                f"Error processing {document.filename} with {extractor.engine_id}: "
                f"{type(e).__name__}: {e}"
            )
            return ExtractionResult.degraded(extractor.engine_id, str(e))

    async def extract_many(
        self,
        documents: Sequence[DocumentPayload],
        rules: Optional[TrainingRules] = None,
        engine: Optional[str] = None
    ) -> List[ExtractionResult]:
        """
        Extract independent documents as concurrent tasks.

        Args:
            documents: Document payloads.
            rules: Rules object shared (read-only) by all documents.
            engine: Engine identifier.

        Returns:
            Results in the order of ``documents``; each document degrades
            independently.

        Raises:
            ConfigurationError: If the engine identifier is unknown.
        """
        self.resolve(engine)
        rules = self._rules(rules)

        results = await asyncio.gather(
            *(self.extract(document, rules, engine) for document in documents)
        )

        failed = sum(1 for result in results if result.has_error)
        logger.info(
            f"Batch complete: {len(results) - failed} succeeded, {failed} degraded"
        )
        return list(results)

    async def refine_with_feedback(
        self,
        document: DocumentPayload,
        current: ExtractionResult,
        feedback: str,
        rules: Optional[TrainingRules] = None
    ) -> RefinementOutcome:
        """
        Apply a user correction to a previous result.

        Errors propagate to the caller.

        Args:
            document: The document the result was extracted from.
            current: Current result snapshot.
            feedback: User's correction text.
            rules: Rules object in force.

        Returns:
            RefinementOutcome with the merged result and a suggested rule.
        """
        refiner = FeedbackRefiner(self.registry.get_client())
        return await refiner.refine(document, current, feedback, self._rules(rules))
