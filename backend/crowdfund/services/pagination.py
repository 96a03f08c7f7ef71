# Overview: Page-number pagination producing the {data, meta} list envelope.

from __future__ import annotations

import math

from flask import current_app


def clamp_page_args(page: int | None, per_page: int | None) -> tuple[int, int]:
    """
    Normalize page/per_page query values.

    page defaults to 1; per_page defaults to DEFAULT_PER_PAGE and is capped
    at MAX_PER_PAGE. Out-of-range values are clamped rather than rejected.
    """
    default_per_page = current_app.config.get("DEFAULT_PER_PAGE", 15)
    max_per_page = current_app.config.get("MAX_PER_PAGE", 100)

    if page is None or page < 1:
        page = 1
    if per_page is None or per_page < 1:
        per_page = default_per_page
    per_page = min(per_page, max_per_page)
    return page, per_page


def paginate(query, *, page: int | None = None, per_page: int | None = None, serialize=None) -> dict:
    """
    Run a paginated query.

    Returns {"data": [...], "meta": {current_page, last_page, per_page, total}}.
    last_page is at least 1 even when the result is empty.
    """
    page, per_page = clamp_page_args(page, per_page)

    total = query.order_by(None).count()
    items = query.offset((page - 1) * per_page).limit(per_page).all()

    if serialize is None:
        serialize = lambda item: item.to_dict()  # noqa: E731

    return {
        "data": [serialize(item) for item in items],
        "meta": {
            "current_page": page,
            "last_page": max(1, math.ceil(total / per_page)),
            "per_page": per_page,
            "total": total,
        },
    }
