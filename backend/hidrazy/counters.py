"""Per-user, per-day counter rows (feature_usage, learning_analytics).

Counters are bumped with ``UPDATE ... SET c = c + n`` so concurrent requests
never lose an increment. The day's row is created first with an
insert-or-ignore on the (user_id, date) unique key.
"""

from __future__ import annotations
import logging
from datetime import date, datetime
from typing import Any, Dict, Optional, Type

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def utc_today() -> date:
	# Row timestamps are naive UTC, so day buckets are UTC days too
	return datetime.utcnow().date()


def ensure_daily_row(db: Session, model: Type[Any], user_id: str, day: date, **defaults: Any) -> None:
	values: Dict[str, Any] = {"user_id": user_id, "date": day, **defaults}
	dialect = db.get_bind().dialect.name
	if dialect == "postgresql":
		stmt = pg_insert(model).values(**values).on_conflict_do_nothing(index_elements=["user_id", "date"])
		db.execute(stmt)
	elif dialect == "sqlite":
		stmt = sqlite_insert(model).values(**values).on_conflict_do_nothing(index_elements=["user_id", "date"])
		db.execute(stmt)
	else:
		exists = db.execute(
			select(model.id).where(model.user_id == user_id, model.date == day)
		).first()
		if exists is None:
			db.add(model(**values))
			db.flush()


def increment_daily(db: Session, model: Type[Any], user_id: str, day: date, **increments: int) -> None:
	"""Atomically add ``increments`` to the named counter columns and commit."""
	if not increments:
		return
	ensure_daily_row(db, model, user_id, day)
	stmt = (
		update(model)
		.where(model.user_id == user_id, model.date == day)
		.values({getattr(model, name): getattr(model, name) + int(amount) for name, amount in increments.items()})
		.execution_options(synchronize_session=False)
	)
	db.execute(stmt)
	db.commit()
	logger.debug("Incremented %s for %s on %s: %s", model.__tablename__, user_id, day, increments)


def daily_row_query(model: Type[Any], user_id: str, day: date, *, for_update: bool = False):
	stmt = select(model).where(model.user_id == user_id, model.date == day)
	# Row lock for read-append-write on JSON columns; sqlite renders no FOR UPDATE
	if for_update:
		return stmt.with_for_update().execution_options(populate_existing=True)
	return stmt


def get_daily_row(db: Session, model: Type[Any], user_id: str, day: date, *, for_update: bool = False):
	return db.execute(daily_row_query(model, user_id, day, for_update=for_update)).scalar_one_or_none()


def running_mean(previous: Optional[float], value: float, count: int) -> float:
	"""Fold ``value`` into a mean that already covers ``count - 1`` samples."""
	if previous is None or count <= 1:
		return round(value, 2)
	return round(previous + (value - previous) / count, 2)
