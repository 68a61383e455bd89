"""Data models for PS keys, stores, build definitions, and record files."""

from .pskeys import PSKey, ValueType, resolve_key, display_name, symbol
from .stores import Stores, MemoryType, parse_stores
from .psr import PSRecord, RecordCursor, open_records
