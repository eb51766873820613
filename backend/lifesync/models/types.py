"""Column types that are native on Postgres and degrade to JSON on SQLite."""

from sqlalchemy import JSON, Integer
from sqlalchemy.dialects.postgresql import ARRAY

IntArray = ARRAY(Integer).with_variant(JSON(), "sqlite")
