"""
Translation of URL query parameters into document-store filter expressions.
"""

from typing import Any, Dict, Mapping, Sequence

from starlette.datastructures import QueryParams

from audit_api.errors import BadRequest

IN = "$in"

# PostgreSQL text and jsonb cannot hold NUL
NUL = "\x00"


def build_filter(params: Mapping[str, Sequence[str]]) -> Dict[str, Any]:
    """
    Build a filter expression from query parameters.

    Each parameter becomes one clause and clauses are ANDed:

    - a single value requires equality: ``{"entity": "User"}``
    - several values require membership: ``{"action": {"$in": ["CREATE", "UPDATE"]}}``

    Parameter names are not checked against the event fields; an unknown
    name is kept as-is and simply matches nothing.

    Args:
        params: Parameter name to the list of values given for it

    Returns:
        Filter expression (an empty dict matches every event)

    Raises:
        BadRequest: If a name or value contains a NUL character
    """
    expression: Dict[str, Any] = {}

    for field, values in params.items():
        if NUL in field or any(NUL in v for v in values):
            raise BadRequest("Query parameters must not contain NUL characters")
        if not values:
            continue
        if len(values) > 1:
            expression[field] = {IN: list(values)}
        else:
            expression[field] = values[0]

    return expression


def filter_from_query(query_params: QueryParams) -> Dict[str, Any]:
    """Build a filter expression from a request's query string."""
    return build_filter({
        key: query_params.getlist(key) for key in query_params.keys()
    })
