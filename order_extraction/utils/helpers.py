"""
Helper Utilities Module.

This module provides common utility functions used throughout the
order extraction system. Functions here should be generic and
reusable across different modules.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - get_file_extension: Extract file extension safely
    - clean_json_string: Strip code fences and prose around a JSON object
    - parse_json_object: Recover a JSON object from model output
    - parse_number: Parse a currency/number token
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

from order_extraction.utils.exceptions import MalformedResponseError

_FENCE_PATTERN = re.compile(r'```(?:json)?', re.IGNORECASE)


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.

    Example:
        >>> ensure_directory("outputs/results")
        PosixPath('outputs/results')
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def get_file_extension(filepath: Union[str, Path]) -> str:
    """
    Extract the file extension from a filepath.

    Returns the extension in lowercase, including the dot.
    Returns empty string if no extension exists.

    Args:
        filepath: Path to the file.

    Returns:
        Lowercase file extension including dot (e.g., ".pdf").

    Example:
        >>> get_file_extension("order.PDF")
        ".pdf"
        >>> get_file_extension("noextension")
        ""
    """
    return Path(filepath).suffix.lower()


def clean_json_string(text: str) -> str:
    """
    Remove code-fence markers and surrounding prose from model output.

    The outermost ``{...}`` span is kept; if no braces are present the
    fence-stripped text is returned as is.

    Args:
        text: Raw model response text.

    Returns:
        Text that should contain only a JSON object.

    Example:
        >>> clean_json_string('```json\\n{"a": 1}\\n```')
        '{"a": 1}'
    """
    clean = _FENCE_PATTERN.sub('', text).strip()

    first_brace = clean.find('{')
    last_brace = clean.rfind('}')
    if first_brace != -1 and last_brace > first_brace:
        clean = clean[first_brace:last_brace + 1]

    return clean


def parse_json_object(text: Optional[str]) -> Dict[str, Any]:
    """
    Recover and parse a JSON object from model output.

    Args:
        text: Raw model response text.

    Returns:
        Parsed dictionary.

    Raises:
        MalformedResponseError: If the text is empty, not valid JSON,
            or does not contain an object at the top level.
    """
    if not text or not text.strip():
        raise MalformedResponseError("empty response text")

    clean = clean_json_string(text)

    try:
        payload = json.loads(clean)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"invalid JSON ({e.msg})", text)

    if not isinstance(payload, dict):
        raise MalformedResponseError(
            f"expected a JSON object, got {type(payload).__name__}", text
        )

    return payload


def parse_number(token: Optional[str]) -> Optional[float]:
    """
    Parse a currency/number token such as ``"$1,234.50"``.

    Thousands separators and dollar signs are stripped before parsing.

    Args:
        token: Captured numeric text.

    Returns:
        Parsed float, or None when the token is empty or not numeric.
    """
    if token is None:
        return None

    cleaned = token.replace(',', '').replace('$', '').strip()
    if not cleaned:
        return None

    try:
        return float(cleaned)
    except ValueError:
        return None
