"""
Small SoQL query builder for the Socrata resource endpoint

Values are always quoted and escaped here; callers never interpolate user
input into filter strings themselves.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlencode

_IDENTIFIER_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


def _field(name: str) -> str:
    if not _IDENTIFIER_RE.match(name or ''):
        raise ValueError(f"Invalid field name: {name!r}")
    return name


def quote_literal(value) -> str:
    """Render a value as a single-quoted SoQL string literal"""
    text = str(value)
    return "'" + text.replace("'", "''") + "'"


@dataclass(frozen=True)
class Condition:
    """A single rendered filter clause"""
    expression: str

    def __and__(self, other: 'Condition') -> 'Condition':
        return Condition(f"{self.expression} AND {other.expression}")

    def __str__(self) -> str:
        return self.expression


def equals(field_name: str, value) -> Condition:
    return Condition(f"{_field(field_name)} = {quote_literal(value)}")


def equals_ci(field_name: str, value) -> Condition:
    """Case-insensitive exact match"""
    return Condition(f"upper({_field(field_name)}) = {quote_literal(str(value).strip().upper())}")


def contains_ci(field_name: str, value) -> Condition:
    """
    Case-insensitive substring match.

    Quotes are escaped, but `%` and `_` in the value keep their `like`
    meaning (any run, any single character); SoQL has no ESCAPE clause.
    """
    needle = str(value).strip().upper()
    return Condition(f"upper({_field(field_name)}) like {quote_literal('%' + needle + '%')}")


def at_least(field_name: str, value) -> Condition:
    return Condition(f"{_field(field_name)} >= {quote_literal(value)}")


@dataclass
class SoQLQuery:
    """Composable $where/$select/$group/$order/$limit parameters"""
    conditions: List[Condition] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)
    group_by: List[str] = field(default_factory=list)
    ordering: List[Tuple[str, str]] = field(default_factory=list)
    row_limit: Optional[int] = None

    def where(self, *conditions: Condition) -> 'SoQLQuery':
        self.conditions.extend(conditions)
        return self

    def select(self, *columns: str, **aggregates: str) -> 'SoQLQuery':
        """
        Plain columns positionally, aggregates as alias=expression,
        e.g. ``select('location_name', annual_sales='sum(total_receipts)')``.
        """
        self.columns.extend(_field(c) for c in columns)
        for alias, expression in aggregates.items():
            match = re.match(r'^(sum|count|avg|max|min)\(([A-Za-z_][A-Za-z0-9_]*)\)$', expression)
            if not match:
                raise ValueError(f"Unsupported aggregate: {expression!r}")
            self.columns.append(f"{expression} as {_field(alias)}")
        return self

    def group(self, *columns: str) -> 'SoQLQuery':
        self.group_by.extend(_field(c) for c in columns)
        return self

    def order(self, column: str, descending: bool = False) -> 'SoQLQuery':
        self.ordering.append((_field(column), 'DESC' if descending else 'ASC'))
        return self

    def limit(self, n: int) -> 'SoQLQuery':
        if n < 1:
            raise ValueError('Limit must be positive')
        self.row_limit = n
        return self

    def params(self) -> Dict[str, str]:
        params = {}
        if self.columns:
            params['$select'] = ', '.join(self.columns)
        if self.conditions:
            params['$where'] = ' AND '.join(c.expression for c in self.conditions)
        if self.group_by:
            params['$group'] = ', '.join(self.group_by)
        if self.ordering:
            params['$order'] = ', '.join(f"{c} {d}" for c, d in self.ordering)
        if self.row_limit is not None:
            params['$limit'] = str(self.row_limit)
        return params

    def to_url(self, base_url: str) -> str:
        return f"{base_url}?{urlencode(self.params())}"
