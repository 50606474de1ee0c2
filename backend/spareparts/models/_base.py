from datetime import datetime, timezone


def utcnow() -> datetime:
    # naive UTC, matches what SQLite and DATETIME2 hand back
    return datetime.now(timezone.utc).replace(tzinfo=None)
