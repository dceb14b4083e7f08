"""
Page/limit pagination shared by the list endpoints.
"""
import math
from typing import List, Tuple

from sqlalchemy.orm import Query

from schemas import PaginationInfo


def paginate(query: Query, page: int, limit: int) -> Tuple[List, PaginationInfo]:
    """
    Count the (already scoped and filtered) query, then fetch one page.

    Returns:
        (rows for the page, pagination metadata)
    """
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, PaginationInfo(
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit) if total else 0,
    )
