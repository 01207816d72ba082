# dao/tx.py
"""Unit-of-work helpers shared by the engine DAOs.

Helpers inside a transition only flush; the public operation commits exactly
once, either through commit() or by running inside atomic().
"""
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import Optional, Type
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from configs import db
from dao.errors import RecordNotFound, ConcurrentUpdateError


def commit(entity: str = "record", entity_id=None) -> None:
    try:
        db.session.commit()
    except StaleDataError as ex:
        db.session.rollback()
        raise ConcurrentUpdateError(entity, entity_id) from ex
    except SQLAlchemyError:
        db.session.rollback()
        raise


@contextmanager
def atomic(entity: str = "record", entity_id=None):
    """All writes in the block commit together or not at all."""
    try:
        yield
    except StaleDataError as ex:
        db.session.rollback()
        raise ConcurrentUpdateError(entity, entity_id) from ex
    except Exception:
        db.session.rollback()
        raise
    commit(entity, entity_id)


def get(model: Type, pk, entity: Optional[str] = None):
    obj = db.session.get(model, int(pk)) if pk is not None else None
    if obj is None:
        raise RecordNotFound(entity or model.__name__, pk)
    return obj


def lock(model: Type, pk, entity: Optional[str] = None):
    """SELECT ... FOR UPDATE, refreshing any copy already in the session."""
    if pk is None:
        raise RecordNotFound(entity or model.__name__, pk)
    db.session.flush()
    obj = db.session.execute(
        select(model)
        .where(model.id == int(pk))
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if obj is None:
        raise RecordNotFound(entity or model.__name__, pk)
    return obj


def dec(x) -> Decimal:
    """Parse a quantity or price, raising ValueError for non-numeric input."""
    try:
        value = Decimal(str(x or 0))
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"Invalid number: {x!r}") from None
    if not value.is_finite():
        raise ValueError(f"Invalid number: {x!r}")
    return value


def next_number(column, prefix: str) -> str:
    """PREFIX-00001 style document numbers; unique constraint guards races."""
    last = (
        db.session.query(column)
        .filter(column.like(f"{prefix}-%"))
        .order_by(func.length(column).desc(), column.desc())
        .first()
    )
    n = 1
    if last and last[0]:
        try:
            n = int(last[0].split("-", 1)[1]) + 1
        except ValueError:
            n = 1
    return f"{prefix}-{n:05d}"
