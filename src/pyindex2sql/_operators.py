"""Operator-class, type, and naming markers used to classify indexes."""

from pyindex2sql._types import AccessMethod

# Operator-class name fragments identifying a GIN sub-kind
JSONB_OPCLASS_MARKER = "jsonb"
TRIGRAM_OPCLASS_MARKER = "trgm"

# Calls that construct a text search vector inside an index expression
TSVECTOR_CONSTRUCTORS = ("to_tsvector", "setweight", "array_to_tsvector", "jsonb_to_tsvector")

# Column types
JSONB_TYPE = "jsonb"
TSVECTOR_TYPE = "tsvector"

# Tokens dropped when deriving a constructor name from an index name
STRUCTURAL_NAME_TOKENS: set[str] = {"index", "idx"} | {m.value for m in AccessMethod}
