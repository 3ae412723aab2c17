# File: easylearn_app/utils/pagination.py
# Pagination helpers for SQLAlchemy list endpoints.

from flask import current_app


def get_pagination_data(query, page, per_page=None):
    """Paginate a SQLAlchemy query. ``page`` is 0-based like the public API."""

    if per_page is None:
        per_page = current_app.config.get('ITEMS_PER_PAGE', 10)

    # error_out=False returns an empty page instead of a 404 past the end
    return query.paginate(page=max(page, 0) + 1, per_page=per_page, error_out=False)


def page_response(pagination, serializer, page):
    """Shape a pagination object the way list endpoints return it."""
    return {
        'data': [serializer(item) for item in pagination.items],
        'total': pagination.total,
        'page': page,
        'limit': pagination.per_page,
        'totalPages': pagination.pages,
    }


def apply_sort(query, model, sort_by, sort_order, allowed, default):
    """Order ``query`` by a whitelisted column of ``model``."""
    column_name = sort_by if sort_by in allowed else default
    column = getattr(model, column_name)
    if (sort_order or 'desc').lower() == 'desc':
        return query.order_by(column.desc())
    return query.order_by(column.asc())
