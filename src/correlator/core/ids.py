import re
import uuid

UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")


def create_new_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def is_uuid(value: str | None) -> bool:
    return bool(value) and UUID_PATTERN.match(value) is not None
