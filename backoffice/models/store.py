from contextlib import contextmanager

from flask_sqlalchemy import SQLAlchemy

from ..exceptions import NotFoundError
from ..utils.dates import local_now, to_iso

# ---- Shared ORM handle; bound to the app in create_app() ----
db = SQLAlchemy()


class TimestampMixin:
    created_at = db.Column(db.DateTime, nullable=False, default=local_now)


class SoftDeleteMixin:
    """Rows are flagged rather than removed."""
    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    deleted_at = db.Column(db.DateTime, nullable=True)

    def soft_delete(self):
        self.is_deleted = True
        self.deleted_at = local_now()


@contextmanager
def atomic():
    """
    Run a unit of work as one transaction: commit on success, roll back and
    re-raise on any error.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def get_or_raise(model, pk, label: str | None = None, *, for_update: bool = False):
    """Load ``model`` by primary key or raise NotFoundError."""
    label = label or model.__name__
    if pk is None:
        raise NotFoundError(f"{label} not found")
    stmt = db.select(model).filter_by(id=pk)
    if for_update:
        stmt = stmt.with_for_update()
    obj = db.session.execute(stmt).scalar_one_or_none()
    if obj is None or getattr(obj, "is_deleted", False):
        raise NotFoundError(f"{label} not found")
    return obj


def paginate(stmt, page: int, limit: int, key: str, serialize=None):
    """
    Run ``stmt`` one page at a time and shape the list response:
    {key: [...], "pagination": {total, page, limit, pages}}.
    """
    result = db.paginate(stmt, page=page, per_page=limit, error_out=False)
    serialize = serialize or (lambda obj: obj.to_dict())
    return {
        key: [serialize(obj) for obj in result.items],
        "pagination": {
            "total": result.total,
            "page": page,
            "limit": limit,
            "pages": result.pages,
        },
    }


__all__ = ["db", "atomic", "get_or_raise", "paginate", "TimestampMixin", "SoftDeleteMixin", "to_iso"]
