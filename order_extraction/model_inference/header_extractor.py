"""
Header Field Extractors for the Local Pipeline.

Two interchangeable strategies turn OCR text into ``mappedData``:

    LocalModelHeaderExtractor
        Prompts a small local text-to-text model with a truncated excerpt
        of the reconstructed text and the target field names, and recovers
        the JSON object between the first and last brace of its output.

    AliasHeaderExtractor
        For each schema field, tries an ordered list of human-readable
        label synonyms and captures the rest of the line after the first
        label found. Number-typed fields keep only the first number.

The local pipeline uses the model first (when enabled) and falls back to
the alias strategy on any failure or empty result.

Author: ML Engineering Team
"""

import json
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from config import get_config
from order_extraction.utils.logger import get_logger
from order_extraction.utils.exceptions import ModelLoadError, InferenceError
from order_extraction.postprocessor.normalizers import AmountNormalizer, TextNormalizer
from .schema import SchemaField, TrainingRules, build_field_list

# Initialize module logger
logger = get_logger(__name__)

HEADER_PROMPT = (
    "Extract these details from the invoice: {fields}.\n"
    "\n"
    "Text:\n"
    "{text}\n"
    "\n"
    'Return strict JSON format like {{"po_number": "...", "date": "..."}}.'
)


class LocalTextModel:
    """
    Small local sequence-to-sequence model used for header extraction.

    Loading downloads and initializes the weights, which is slow; the
    engine registry creates one shared instance per process.

    Attributes:
        model_name: Hugging Face model identifier
        display_name: Name reported in usage metadata
        max_new_tokens: Generation budget

    Example:
        >>> model = LocalTextModel()
        >>> model.generate("Extract these details from the invoice: po_number ...")
        '{"po_number": "4500012345"}'
    """

    DEFAULT_MODEL = "MBZUAI/LaMini-Flan-T5-248M"

    def __init__(
        self,
        model_name: Optional[str] = None,
        max_new_tokens: Optional[int] = None
    ) -> None:
        """
        Initialize and load the model.

        Args:
            model_name: Model identifier. If None, uses config.
            max_new_tokens: Generation budget. If None, uses config.

        Raises:
            ModelLoadError: If the model cannot be loaded.
        """
        self.model_name = model_name or get_config("local.model.name", self.DEFAULT_MODEL)
        self.display_name = get_config("local.model.display_name", self.model_name)
        self.max_new_tokens = max_new_tokens or get_config("local.model.max_new_tokens", 150)

        self._tokenizer = None
        self._model = None
        self._initialize_model()

        logger.info(f"LocalTextModel initialized with model: {self.model_name}")

    def _initialize_model(self) -> None:
        """
        Load tokenizer and weights.

        Raises:
            ModelLoadError: If transformers is missing or loading fails.
        """
        try:
            from transformers import AutoModelForSeq2SeqLM, AutoTokenizer
        except ImportError:
            raise ModelLoadError(
                self.model_name,
                "transformers package not installed. Install with: pip install transformers"
            )

        logger.info(f"Loading model: {self.model_name}")
        try:
            self._tokenizer = AutoTokenizer.from_pretrained(self.model_name)
            self._model = AutoModelForSeq2SeqLM.from_pretrained(self.model_name)
            self._model.eval()
        except Exception as e:
            raise ModelLoadError(self.model_name, str(e)) from e

    def generate(self, prompt: str) -> str:
        """
        Run greedy generation for one prompt.

        Args:
            prompt: Input text.

        Returns:
            Decoded model output.

        Raises:
            InferenceError: If generation fails.
        """
        try:
            inputs = self._tokenizer(prompt, return_tensors="pt", truncation=True)
            output_ids = self._model.generate(
                **inputs,
                max_new_tokens=self.max_new_tokens,
                do_sample=False
            )
            return self._tokenizer.decode(output_ids[0], skip_special_tokens=True)
        except Exception as e:
            logger.error(f"Local model inference failed: {e}")
            raise InferenceError(str(e), self.model_name) from e


class LocalModelHeaderExtractor:
    """
    Header extraction by prompting a local text model.

    Attributes:
        model: Object with ``generate(prompt) -> str``
        excerpt_chars: Characters of reconstructed text included in the prompt

    Example:
        >>> extractor = LocalModelHeaderExtractor(model)
        >>> extractor.extract(spatial_text, rules)
        {'po_number': '4500012345', 'total_amount': 125.0}
    """

    def __init__(self, model: Any, excerpt_chars: Optional[int] = None) -> None:
        self.model = model
        self.excerpt_chars = excerpt_chars or get_config("local.model.excerpt_chars", 1000)
        self._amounts = AmountNormalizer()

    def build_prompt(self, text: str, rules: TrainingRules) -> str:
        """Render the extraction prompt for the given text and schema."""
        return HEADER_PROMPT.format(
            fields=', '.join(f.name for f in build_field_list(rules)),
            text=text[:self.excerpt_chars]
        )

    def extract(self, text: str, rules: TrainingRules) -> Optional[Dict[str, Any]]:
        """
        Extract header fields with the local model.

        Args:
            text: Spatially reconstructed OCR text.
            rules: Rules object whose schema names the fields.

        Returns:
            Header values keyed by schema field name, or None when the
            output holds no usable JSON object.

        Raises:
            InferenceError: If the model call itself fails.
        """
        prompt = self.build_prompt(text, rules)
        logger.debug(f"Running local model for headers (prompt {len(prompt)} chars)")

        generated = self.model.generate(prompt) or ''

        start = generated.find('{')
        end = generated.rfind('}')
        if start == -1 or end <= start:
            logger.warning("Local model output contains no JSON object")
            return None

        try:
            payload = json.loads(generated[start:end + 1])
        except json.JSONDecodeError as e:
            logger.warning(f"Local model JSON parse error: {e}")
            return None

        if not isinstance(payload, dict):
            return None

        return self._coerce(payload, rules) or None

    def _coerce(self, payload: Mapping[str, Any], rules: TrainingRules) -> Dict[str, Any]:
        """Keep schema fields with non-empty values, typed per the schema."""
        headers = {}
        for name, value in payload.items():
            schema_field = rules.get_field(name)
            if schema_field is None or value is None or isinstance(value, (dict, list)):
                continue

            if schema_field.type == 'number' and not isinstance(value, (int, float)):
                value = self._amounts.extract_amount(str(value))
                if value is None:
                    continue
            elif isinstance(value, str):
                value = value.strip()
                if not value:
                    continue

            headers[name] = value
        return headers


class AliasHeaderExtractor:
    """
    Header extraction by label synonyms and regular expressions.

    Attributes:
        aliases: Field name -> ordered list of label synonyms

    Example:
        >>> extractor = AliasHeaderExtractor()
        >>> extractor.extract("PO Number: 4500012345\\nTotal: $1,250.00", rules.schema)
        {'po_number': '4500012345', 'total_amount': 1250.0}
    """

    def __init__(self, aliases: Optional[Mapping[str, List[str]]] = None) -> None:
        if aliases is None:
            aliases = get_config("local.header_aliases", {}) or {}
        self.aliases = {name: list(labels) for name, labels in aliases.items()}
        self._amounts = AmountNormalizer()
        self._text = TextNormalizer()

    def labels_for(self, schema_field: SchemaField) -> List[str]:
        """Label synonyms for a field, defaulting to its name with and without underscores."""
        labels = self.aliases.get(schema_field.name)
        if labels:
            return labels
        return [schema_field.name, schema_field.name.replace('_', ' ')]

    def extract(self, text: str, schema: Sequence[SchemaField]) -> Dict[str, Any]:
        """
        Extract header fields by label matching.

        Args:
            text: OCR text.
            schema: Fields to extract.

        Returns:
            Header values keyed by field name; fields with no usable
            match are absent.
        """
        headers = {}

        for schema_field in schema:
            for label in self.labels_for(schema_field):
                pattern = re.compile(re.escape(label) + r'[:\s\-.]*([^\n]+)', re.IGNORECASE)
                match = pattern.search(text)
                if not match:
                    continue

                captured = match.group(1).strip()
                if schema_field.type == 'number':
                    value = self._amounts.extract_amount(captured)
                    if value is not None:
                        headers[schema_field.name] = value
                        break
                else:
                    value = self._text.clean_value(captured)
                    if value:
                        headers[schema_field.name] = value
                        break

        logger.debug(f"Alias extraction found {len(headers)}/{len(schema)} fields")
        return headers
