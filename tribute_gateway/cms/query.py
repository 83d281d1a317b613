"""
Query descriptor <-> query-string translation.

Outbound rules (what the CMS understands):
    - scalars become ``key=value``
    - lists become repeated ``key[]=value``
    - nested objects are JSON-stringified into a single value
    - ``pagination``, ``sort`` and ``filters`` use bracketed paths instead,
      e.g. ``filters[name][$eq]=Acme`` or ``pagination[page]=2``

Inbound parsing accepts what browsers send to the gateway: ``page`` /
``pageSize`` or ``pagination[...]``, ``filters[...]`` at any depth, and
comma-separated or bracketed ``sort`` / ``fields`` / ``populate``.
"""

import json
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlencode

from ..models import QueryDescriptor

QueryPairs = List[Tuple[str, str]]

BRACKETED_KEYS = ("pagination", "sort", "filters")

_KEY_RE = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_SEGMENT_RE = re.compile(r"\[([^\[\]]*)\]")


# ============================================================================
# Outbound
# ============================================================================

def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _flatten(prefix: str, value: Any) -> QueryPairs:
    if value is None:
        return []
    if isinstance(value, Mapping):
        pairs: QueryPairs = []
        for key, item in value.items():
            pairs.extend(_flatten(f"{prefix}[{key}]", item))
        return pairs
    if isinstance(value, (list, tuple)):
        pairs = []
        for index, item in enumerate(value):
            pairs.extend(_flatten(f"{prefix}[{index}]", item))
        return pairs
    return [(prefix, _scalar(value))]


def build_query_params(params: Optional[Union[QueryDescriptor, Mapping[str, Any]]]) -> QueryPairs:
    """
    Serialize a query descriptor into ordered ``(key, value)`` pairs.

    Args:
        params: QueryDescriptor or a plain mapping of query parameters

    Returns:
        List of pairs suitable for ``httpx`` ``params=`` or ``urlencode``
    """
    if params is None:
        return []
    if isinstance(params, QueryDescriptor):
        params = params.to_params()

    pairs: QueryPairs = []
    for key, value in params.items():
        if value is None:
            continue
        if key in BRACKETED_KEYS:
            pairs.extend(_flatten(key, value))
        elif isinstance(value, Mapping):
            pairs.append((key, json.dumps(value, separators=(",", ":"))))
        elif isinstance(value, (list, tuple)):
            pairs.extend((f"{key}[]", _scalar(item)) for item in value)
        else:
            pairs.append((key, _scalar(value)))
    return pairs


def build_query_string(params: Optional[Union[QueryDescriptor, Mapping[str, Any]]]) -> str:
    """Same as build_query_params, rendered as ``?a=b&...`` (or ``""``)."""
    pairs = build_query_params(params)
    if not pairs:
        return ""
    return "?" + urlencode(pairs, safe="[]$:,*")


# ============================================================================
# Inbound
# ============================================================================

def _split_key(key: str) -> Optional[List[str]]:
    match = _KEY_RE.match(key)
    if not match:
        return None
    return [match.group(1)] + _SEGMENT_RE.findall(match.group(2))


def _assign(target: Dict[str, Any], path: List[str], value: str) -> None:
    for segment in path[:-1]:
        child = target.get(segment)
        if not isinstance(child, dict):
            child = target[segment] = {}
        target = child
    target[path[-1]] = value


def _listify(node: Any) -> Any:
    """Turn ``{"0": a, "1": b}`` nodes (from ``[0]`` segments) back into lists."""
    if not isinstance(node, dict):
        return node
    converted = {key: _listify(value) for key, value in node.items()}
    if converted and all(key.isdigit() for key in converted):
        return [converted[key] for key in sorted(converted, key=int)]
    return converted


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_query_params(items: Iterable[Tuple[str, str]]) -> QueryDescriptor:
    """
    Build a QueryDescriptor from inbound query-string pairs.

    Args:
        items: ``(key, value)`` pairs, e.g. ``request.query_params.multi_items()``

    Returns:
        QueryDescriptor with only the parts present in the query

    Raises:
        pydantic.ValidationError: If pagination values are not integers
    """
    pagination: Dict[str, Any] = {}
    filters: Dict[str, Any] = {}
    lists: Dict[str, List[str]] = {"sort": [], "fields": [], "populate": []}
    populate_object: Optional[Dict[str, Any]] = None

    for key, value in items:
        path = _split_key(key)
        if not path:
            continue
        head, rest = path[0], path[1:]

        if head in ("page", "pageSize") and not rest:
            pagination[head] = value
        elif head == "pagination" and len(rest) == 1:
            pagination[rest[0]] = value
        elif head == "filters" and rest:
            _assign(filters, rest, value)
        elif head in lists:
            if head == "populate" and not rest and value.startswith("{"):
                try:
                    populate_object = json.loads(value)
                    continue
                except ValueError:
                    pass
            if rest:
                lists[head].append(value)
            else:
                lists[head].extend(_split_list(value))

    descriptor: Dict[str, Any] = {}
    if pagination:
        descriptor["pagination"] = pagination
    if filters:
        descriptor["filters"] = _listify(filters)
    for name, values in lists.items():
        if values:
            descriptor[name] = values
    if populate_object is not None:
        descriptor["populate"] = populate_object

    return QueryDescriptor.model_validate(descriptor)
