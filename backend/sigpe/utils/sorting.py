from __future__ import annotations
from typing import List, Tuple
from flask import abort


def parse_sort_tokens(sort_expr: str) -> List[Tuple[str, bool]]:
    """'-expiry_date,permit_number' -> [('expiry_date', True), ('permit_number', False)]"""
    tokens = []
    for raw in sort_expr.split(','):
        token = raw.strip()
        if token:
            tokens.append((token.lstrip('-'), token.startswith('-')))
    return tokens


def apply_multi_sort(query, sort_expr: str | None, allowed: dict, tie_breaker, default: str | None = None):
    """Order query by a comma-separated sort expression restricted to `allowed` columns.

    Falls back to `default` when no expression is given; tie_breaker is always appended.
    """
    expr = sort_expr or default
    clauses = []
    for key, desc in parse_sort_tokens(expr or ''):
        col = allowed.get(key)
        if col is None:
            abort(400, description=f'Invalid sort field {key}')
        clauses.append(col.desc() if desc else col.asc())
    clauses.append(tie_breaker.asc())
    return query.order_by(*clauses)
