"""
Rule Loading
============
Builds the rule list from structured data or from a rules file.
"""

import json
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Union

from pydantic import ValidationError
import structlog

from .directives import parse_directives
from .exceptions import ConfigurationError
from .models import Rule

logger = structlog.get_logger(__name__)


def load_rules(data: Iterable[Union[Mapping[str, Any], Rule]]) -> List[Rule]:
    """
    Validate structured rule definitions.
    
    Args:
        data: Sequence of dicts using Rule field names (or Rule objects)
        
    Returns:
        Rules in the given order
        
    Raises:
        ConfigurationError: If any entry is invalid
    """
    if isinstance(data, (str, bytes)) or isinstance(data, Mapping):
        raise ConfigurationError("rules must be a list of rule objects")

    rules: List[Rule] = []
    for index, item in enumerate(data):
        if isinstance(item, Rule):
            rules.append(item)
            continue
        try:
            rules.append(Rule.model_validate(item))
        except ValidationError as e:
            raise ConfigurationError.from_validation_error(e, prefix=f"rule #{index + 1}: ")
    return rules


def load_rules_file(path: Union[str, Path]) -> List[Rule]:
    """
    Load rules from a file.
    
    Files ending in .json hold a list of rule objects; anything else is
    read as cauth directive blocks.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"couldn't read rules file: {e}", source=str(path))

    if path.suffix.lower() == ".json":
        try:
            data = json.loads(text)
        except ValueError as e:
            raise ConfigurationError(f"invalid JSON: {e}", source=str(path))
        try:
            rules = load_rules(data)
        except ConfigurationError as e:
            raise ConfigurationError(e.message, source=str(path))
    else:
        rules = parse_directives(text, source=str(path))

    logger.info("cauth_rules_loaded", source=str(path), count=len(rules))
    return rules
