"""Regroup flat joined rows into nested parent/child entities."""

from typing import Any, Callable, Iterable, List, Mapping, Optional, Set, TypeVar

P = TypeVar("P")
C = TypeVar("C")

Row = Mapping[str, Any]


def materialize(
    rows: Iterable[Row],
    parent_key: str,
    build_parent: Callable[[Row], P],
    child_key: Optional[str] = None,
    build_child: Optional[Callable[[Row], C]] = None,
    attach_child: Optional[Callable[[P, C], None]] = None,
) -> List[P]:
    """
    Group rows by ``parent_key`` in a single pass, preserving arrival order.

    Rows of one parent must be contiguous; the producing query guarantees this
    by ordering on the parent first. A row whose ``child_key`` is NULL (a LEFT
    JOIN without a match) still establishes its parent but adds no child.
    When ``child_key`` is None children were not requested and the child step
    is skipped entirely.

    Raises:
        ValueError: If a parent's rows are interleaved with another parent's
    """
    parents: List[P] = []
    seen: Set[Any] = set()
    current: Optional[P] = None
    current_key: Any = None

    for row in rows:
        key = row[parent_key]
        if current is None or key != current_key:
            if key in seen:
                raise ValueError(f"Rows for parent {key!r} are not contiguous")
            seen.add(key)
            current = build_parent(row)
            current_key = key
            parents.append(current)

        if child_key is None or row.get(child_key) is None:
            continue
        attach_child(current, build_child(row))

    return parents


def append_to(attribute: str) -> Callable[[Any, Any], None]:
    """One-to-many attach: the list is created on the first real child."""

    def attach(parent: Any, child: Any) -> None:
        children = getattr(parent, attribute)
        if children is None:
            children = []
            setattr(parent, attribute, children)
        children.append(child)

    return attach


def assign_to(attribute: str) -> Callable[[Any, Any], None]:
    """One-to-one attach."""

    def attach(parent: Any, child: Any) -> None:
        setattr(parent, attribute, child)

    return attach
