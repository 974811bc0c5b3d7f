"""
Compile sparse filter and update models into parameterized SQL fragments.

Every value is bound through a ``ParameterList`` and referenced by a
positional ``$n`` placeholder; column and table names only ever come from the
static ``FilterField``/``Assignment`` declarations in the repositories.

Presence is read from pydantic's ``model_fields_set``: a field that was never
passed is skipped, a field explicitly passed as ``None`` means ``IS NULL`` in a
filter and ``= NULL`` in an update (nullable columns only).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence

from pydantic import BaseModel

from document_retrieval.utils.errors import ValidationError


def escape_like(value: str) -> str:
    """Escape ``LIKE`` wildcards so ``value`` matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class FilterKind(str, Enum):
    """How a present filter value is compared to its column."""

    EQUALS = "equals"
    ANY = "any"
    ILIKE = "ilike"


class Conjunction(str, Enum):
    """How compiled conditions are combined."""

    AND = "AND"
    OR = "OR"


@dataclass(frozen=True)
class FilterField:
    """Maps a filter model attribute to the column it constrains."""

    name: str
    column: str
    kind: FilterKind = FilterKind.EQUALS
    nullable: bool = False
    join: Optional[str] = None


@dataclass(frozen=True)
class Assignment:
    """Maps an update model attribute to the column it sets."""

    name: str
    column: str
    nullable: bool = False


class ParameterList:
    """Positional parameters of a single statement, numbered from ``$1``."""

    def __init__(self) -> None:
        self._values: List[Any] = []

    def bind(self, value: Any, cast: Optional[str] = None) -> str:
        """Append ``value`` and return its placeholder."""
        self._values.append(value)
        placeholder = f"${len(self._values)}"
        if cast:
            placeholder += f"::{cast}"
        return placeholder

    @property
    def values(self) -> List[Any]:
        return list(self._values)

    def __len__(self) -> int:
        return len(self._values)


@dataclass
class Predicate:
    """Compiled conditions plus the joins the present fields require."""

    conditions: List[str] = field(default_factory=list)
    joins: List[str] = field(default_factory=list)

    def clause(self, conjunction: Conjunction = Conjunction.AND) -> str:
        """Render the WHERE body; degrades to ``TRUE`` when nothing is constrained."""
        if not self.conditions:
            return "TRUE"
        if len(self.conditions) == 1:
            return self.conditions[0]
        joined = f" {conjunction.value} ".join(self.conditions)
        return f"({joined})" if conjunction == Conjunction.OR else joined

    def require_join(self, join: str) -> None:
        if join not in self.joins:
            self.joins.append(join)


def compile_filters(
    filters: Optional[BaseModel],
    fields: Sequence[FilterField],
    params: ParameterList,
) -> Predicate:
    """
    Compile the present fields of ``filters`` in declaration order.

    Args:
        filters: Filter model, or None for no constraints
        fields: Filterable fields of the target table
        params: Parameter list shared with the rest of the statement

    Returns:
        Predicate with one condition per constrained field
    """
    predicate = Predicate()
    if filters is None:
        return predicate

    present = filters.model_fields_set
    for entry in fields:
        if entry.name not in present:
            continue

        value = getattr(filters, entry.name)
        if value is None:
            if not entry.nullable:
                continue
            condition = f"{entry.column} IS NULL"
        elif entry.kind == FilterKind.ANY:
            # the whole list travels as one array parameter
            condition = f"{entry.column} = ANY({params.bind(list(value))})"
        elif entry.kind == FilterKind.ILIKE:
            pattern = params.bind(f"%{escape_like(value)}%")
            condition = f"{entry.column} ILIKE {pattern} ESCAPE '\\'"
        else:
            condition = f"{entry.column} = {params.bind(value)}"

        predicate.conditions.append(condition)
        if entry.join:
            predicate.require_join(entry.join)

    return predicate


def compile_assignments(
    changes: BaseModel,
    fields: Sequence[Assignment],
    params: ParameterList,
    touch_column: Optional[str] = "updated_at",
) -> List[str]:
    """
    Compile the SET list of a partial update.

    Fields never passed are left out, fields passed as ``None`` are set to
    NULL, everything else is bound. ``touch_column`` is always refreshed so
    the SET list is never empty.

    Raises:
        ValidationError: If ``None`` is passed for a column that is NOT NULL
    """
    present = changes.model_fields_set
    not_nullable = [
        entry.name
        for entry in fields
        if entry.name in present and not entry.nullable and getattr(changes, entry.name) is None
    ]
    if not_nullable:
        raise ValidationError(
            "Fields cannot be cleared",
            errors={name: "must not be null" for name in not_nullable},
        )

    assignments: List[str] = []
    for entry in fields:
        if entry.name not in present:
            continue
        value = getattr(changes, entry.name)
        if value is None:
            assignments.append(f"{entry.column} = NULL")
        else:
            assignments.append(f"{entry.column} = {params.bind(value)}")

    if touch_column:
        assignments.append(f"{touch_column} = NOW()")
    return assignments


def compile_values(
    rows: Iterable[Sequence[Any]],
    params: ParameterList,
    casts: Optional[Sequence[Optional[str]]] = None,
) -> str:
    """Render a multi-row ``VALUES`` body, binding every cell."""
    tuples: List[str] = []
    for row in rows:
        placeholders = [
            params.bind(value, casts[position] if casts else None)
            for position, value in enumerate(row)
        ]
        tuples.append(f"({', '.join(placeholders)})")
    return ",\n".join(tuples)
