import uuid

from doctrack.errors import PermissionDeniedError, ValidationError


def coerce_uuid(value):
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid identifier: {value}")


def apply_ordering(query, order_by, order_dir, allowed_columns):
    if order_by not in allowed_columns:
        raise ValidationError(
            f"Invalid order_by. Allowed: {', '.join(sorted(allowed_columns))}"
        )
    column = allowed_columns[order_by]
    if order_dir == "desc":
        return query.order_by(column.desc())
    return query.order_by(column.asc())


def apply_pagination(query, limit, offset):
    return query.limit(limit).offset(offset)


def parse_enum(enum_cls, value, field: str):
    """Return ``enum_cls(value)`` or raise ValidationError naming the field."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = sorted(e.value for e in enum_cls)
        raise ValidationError(f"Invalid {field}. Allowed: {allowed}")


def ensure_role(actor, *roles) -> None:
    """Raise PermissionDeniedError unless ``actor.role`` is one of ``roles``."""
    if actor.role not in roles:
        allowed = ", ".join(role.value for role in roles)
        raise PermissionDeniedError(f"This action requires one of roles: {allowed}")
