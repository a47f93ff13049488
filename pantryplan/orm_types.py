# pantryplan/orm_types.py
from sqlalchemy.types import JSON
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on PostgreSQL, plain JSON on SQLite (tests) and other dialects.
JSONDocument = JSON().with_variant(JSONB(), "postgresql")
