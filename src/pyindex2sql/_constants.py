"""Default settings for index-backed query generation."""

DEFAULT_SCOPE_PREFIX = "index_"
"""Prefix for constructor names derived from column lists or expressions."""

DEFAULT_SEPARATOR = "_"
"""Separator joining normalized column names of composite indexes."""

DEFAULT_SCHEMA_NAME = "public"

DEFAULT_FULLTEXT_LANGUAGE = "english"
"""Text search configuration passed to plainto_tsquery."""

DEFAULT_SIMILARITY_THRESHOLD = 0.3
"""pg_trgm similarity cut-off used when a caller does not supply one."""

DEFAULT_ACCESS_METHOD = "btree"
"""Access method assumed when no native catalog row matches an index."""
