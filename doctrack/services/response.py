class ListResponseMixin:
    """Adds ``list_response`` to services exposing a paginated ``list``."""

    @classmethod
    def list_response(cls, db, *args, **kwargs) -> dict:
        items = cls.list(db, *args, **kwargs)
        limit = kwargs.get("limit")
        offset = kwargs.get("offset")
        if limit is None and len(args) >= 2:
            limit, offset = args[-2], args[-1]
        return {
            "items": items,
            "count": len(items),
            "limit": limit,
            "offset": offset,
        }
