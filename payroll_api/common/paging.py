# payroll_api/common/paging.py
import math

from flask import request

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

def page_limit():
    """
    ?page=&limit= (``size`` accepted as an alias for limit).
    Out-of-range or non-numeric values fall back to the defaults.
    """
    try:
        page = int(request.args.get("page", DEFAULT_PAGE))
        if page < 1:
            page = DEFAULT_PAGE
    except (TypeError, ValueError):
        page = DEFAULT_PAGE
    raw = request.args.get("limit", request.args.get("size"))
    try:
        limit = int(raw) if raw is not None else DEFAULT_LIMIT
        if limit < 1 or limit > MAX_LIMIT:
            limit = DEFAULT_LIMIT
    except (TypeError, ValueError):
        limit = DEFAULT_LIMIT
    return page, limit

def paginate_query(q, page: int, limit: int):
    """Returns (rows, meta) for a SQLAlchemy query."""
    total = q.count()
    rows = q.offset((page - 1) * limit).limit(limit).all()
    return rows, page_meta(page, limit, total)

def paginate_list(items, page: int, limit: int):
    offset = (page - 1) * limit
    return items[offset:offset + limit], page_meta(page, limit, len(items))

def page_meta(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }
