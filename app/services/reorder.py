"""
Dense order_index maintenance for sibling collections.

Courses, modules (per course), materials (per module), homepage sections and
homepage elements (per section) all carry an integer order_index that must stay
a bijection onto 0..N-1 within their scope. Reordering computes the full
mapping in memory and then writes it row by row.

Two concurrent reorders of the same scope are last-write-wins per row; there is
no scope lock.
"""
import logging
from dataclasses import dataclass, field
from operator import attrgetter
from typing import Any, Callable, Iterable, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import PartialFailure, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderAssignment:
    id: int
    order_index: int


@dataclass
class BulkUpdateResult:
    updated: List[int] = field(default_factory=list)
    failed_ids: List[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_ids


def move_and_reindex(
    items: Sequence[Any],
    from_index: int,
    to_index: int,
    key: Callable[[Any], int] = attrgetter("id"),
) -> List[OrderAssignment]:
    """
    Move one item within an ordered list and return the new dense indices.

    Every item gets an assignment, not just the moved one. Indices must be in
    range for the current list; negative indices are rejected rather than
    wrapped.
    """
    size = len(items)
    if not (0 <= from_index < size) or not (0 <= to_index < size):
        raise IndexError(f"move({from_index}, {to_index}) out of range for {size} items")

    ordered = list(items)
    moved = ordered.pop(from_index)
    ordered.insert(to_index, moved)
    return [OrderAssignment(id=key(item), order_index=i) for i, item in enumerate(ordered)]


def reindex(ordered_ids: Sequence[int], current_ids: Iterable[int]) -> List[OrderAssignment]:
    """Dense mapping for an explicit ordering, which must be a permutation of current_ids"""
    ordered_ids = list(ordered_ids)
    current = set(current_ids)
    if len(ordered_ids) != len(set(ordered_ids)):
        raise ValidationError("Ordering contains duplicate ids")
    if set(ordered_ids) != current:
        missing = sorted(current - set(ordered_ids))
        unknown = sorted(set(ordered_ids) - current)
        raise ValidationError(
            f"Ordering must list every sibling exactly once (missing={missing}, unknown={unknown})"
        )
    return [OrderAssignment(id=item_id, order_index=i) for i, item_id in enumerate(ordered_ids)]


def bulk_update_order_index(db: Session, model, assignments: Iterable[OrderAssignment]) -> BulkUpdateResult:
    """
    Write each assignment independently.

    Every row goes through its own SAVEPOINT so a failing row leaves the rows
    already written intact. The outer transaction is committed once at the end.
    """
    result = BulkUpdateResult()
    for assignment in assignments:
        try:
            with db.begin_nested():
                updated = (
                    db.query(model)
                    .filter(model.id == assignment.id)
                    .update({model.order_index: assignment.order_index}, synchronize_session=False)
                )
            if updated:
                result.updated.append(assignment.id)
            else:
                logger.warning("%s %s vanished during reorder", model.__name__, assignment.id)
                result.failed_ids.append(assignment.id)
        except SQLAlchemyError as e:
            logger.error("Failed to reorder %s %s: %s", model.__name__, assignment.id, e)
            result.failed_ids.append(assignment.id)

    db.commit()
    if result.failed_ids:
        logger.warning(
            "Partial reorder of %s: %d updated, failed ids %s",
            model.__tablename__, len(result.updated), result.failed_ids,
        )
    return result


def apply_reorder(db: Session, model, assignments: List[OrderAssignment], scope: str) -> BulkUpdateResult:
    """Run bulk_update_order_index and raise PartialFailure if any row failed"""
    result = bulk_update_order_index(db, model, assignments)
    if not result.ok:
        raise PartialFailure(
            f"Reorder of {scope} partially applied; refetch the list",
            failed_ids=result.failed_ids,
            scope=scope,
        )
    logger.info("Reordered %d %s", len(result.updated), scope)
    return result


def next_order_index(db: Session, model, *filters) -> int:
    """Position for a new sibling: the current number of siblings in scope"""
    query = db.query(func.count(model.id))
    if filters:
        query = query.filter(*filters)
    return query.scalar() or 0


def plan_reorder(
    siblings: Sequence[Any],
    from_index: Optional[int] = None,
    to_index: Optional[int] = None,
    ordered_ids: Optional[Sequence[int]] = None,
) -> List[OrderAssignment]:
    """Assignments for either a single move or an explicit ordering of siblings"""
    if ordered_ids is not None:
        return reindex(ordered_ids, [item.id for item in siblings])
    try:
        return move_and_reindex(siblings, from_index, to_index)
    except IndexError as e:
        raise ValidationError(str(e))


def compact_order_index(db: Session, model, *filters) -> int:
    """
    Close gaps left by a removed sibling. Only rows whose index changes are
    written; the caller commits. Returns the number of rows touched.
    """
    siblings = db.query(model).filter(*filters).order_by(model.order_index, model.id).all()
    touched = 0
    for position, item in enumerate(siblings):
        if item.order_index != position:
            item.order_index = position
            touched += 1
    return touched


def reorder_siblings(
    db: Session,
    model,
    siblings: Sequence[Any],
    scope: str,
    from_index: Optional[int] = None,
    to_index: Optional[int] = None,
    ordered_ids: Optional[Sequence[int]] = None,
) -> List[OrderAssignment]:
    """Plan and persist a reorder of one sibling scope"""
    assignments = plan_reorder(siblings, from_index, to_index, ordered_ids)
    apply_reorder(db, model, assignments, scope)
    return assignments
