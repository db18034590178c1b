from __future__ import annotations

import math

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session


def paginate(db: Session, stmt: Select, *, page: int, limit: int) -> dict:
    """
    Run ``stmt`` for one page and count the full result set.

    Returns ``{"data": [...], "meta": {total, page, limit, totalPages}}``.
    """
    page = max(page, 1)
    limit = max(limit, 1)

    total = db.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    ).scalar_one()
    rows = db.execute(stmt.offset((page - 1) * limit).limit(limit)).scalars().all()

    return {
        "data": rows,
        "meta": {
            "total": int(total),
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit),
        },
    }
