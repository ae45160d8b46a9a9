import re
from typing import Any, Dict, Iterable, List, Tuple

from loguru import logger

from services.query_composer import NUMBER, RANGE_OPERATORS, to_number

# price[gte] -> ("price", "[gte]")
BRACKET_KEY = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]+\])+)$")
MAX_DEPTH = 5


def split_key(key: str) -> List[str]:
    match = BRACKET_KEY.match(key)
    if not match:
        return [key]
    parts = [match.group(1)] + re.findall(r"\[([^\[\]]+)\]", match.group(2))
    if len(parts) > MAX_DEPTH + 1:
        return [key]
    return parts


def coerce_operand(value: Any) -> Any:
    if isinstance(value, str) and NUMBER.match(value):
        return to_number(value)
    if isinstance(value, list):
        return [coerce_operand(item) for item in value]
    return value


def _insert(target: Dict[str, Any], path: List[str], value: str):
    *parents, leaf = path
    node = target
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            # a plain value already sits here, nested keys win
            child = {}
            node[part] = child
        node = child

    if len(path) > 1 and leaf in RANGE_OPERATORS:
        value = coerce_operand(value)

    if leaf in node and not isinstance(node[leaf], dict):
        existing = node[leaf]
        node[leaf] = existing + [value] if isinstance(existing, list) else [existing, value]
    else:
        node[leaf] = value


def parse_query_params(items: Iterable[Tuple[str, str]]) -> Dict[str, Any]:
    """
    Build raw client parameters from a multi-valued query string.

    `price[gte]=100&color=red&color=blue` gives
    `{"price": {"gte": 100}, "color": ["red", "blue"]}`.
    """
    params: Dict[str, Any] = {}
    for key, value in items:
        if not key:
            continue
        path = split_key(key)
        # operator keys from the client never reach the query
        if any(part.startswith("$") for part in path):
            logger.warning(f"Dropped query parameter {key!r}")
            continue
        _insert(params, path, value)
    return params
