"""
Layout file loading.

Layouts are read as JSON when the file name ends in ``.json`` and as YAML
otherwise. A path of ``-`` reads the layout from standard input.
"""
import json
import logging
import sys
from pathlib import Path
from typing import Any, Union

import yaml

from strata.core.exceptions import SchemaError

logger = logging.getLogger('strata')


def parse_layout_text(text: str, json_format: bool = False) -> Any:
    """
    Parse layout text.

    Args:
        text: Layout document
        json_format: Parse as JSON instead of YAML

    Returns:
        Raw layout tree

    Raises:
        SchemaError: If the document cannot be parsed
    """
    try:
        if json_format:
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SchemaError(f"Could not parse layout: {e}")


def load_layout(source: Union[str, Path]) -> Any:
    """
    Load a raw layout tree from a file or from standard input.

    Args:
        source: Path to the layout file, or '-' for standard input

    Returns:
        Raw layout tree

    Raises:
        SchemaError: If the file cannot be read or parsed
    """
    if str(source) == "-":
        logger.debug("Reading layout from standard input")
        return parse_layout_text(sys.stdin.read())

    path = Path(source)
    try:
        text = path.read_text()
    except OSError as e:
        raise SchemaError(f"Could not read layout file {path}: {e}")

    logger.debug(f"Loaded layout file {path}")
    return parse_layout_text(text, json_format=path.suffix == ".json")
