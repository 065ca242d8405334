"""
Helper utility functions
"""
from bson import ObjectId
from typing import Optional
from datetime import datetime
import pytz

def utc_now() -> datetime:
    """Current time as an aware UTC datetime, truncated to what MongoDB stores"""
    now = datetime.now(pytz.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)

def to_utc(value: datetime) -> datetime:
    """MongoDB hands back naive datetimes that are implicitly UTC"""
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)

def to_object_id(value) -> Optional[ObjectId]:
    """Parse a 24-hex id, returning None for anything that is not one"""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None
