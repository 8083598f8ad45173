from datetime import datetime, timezone


def utcnow():
    """Naive UTC now; every timestamp column in the schema is naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
