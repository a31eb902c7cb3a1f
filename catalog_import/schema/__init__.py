from .catalog import (
    ALL_COLUMNS,
    PACK_DEPENDENCY_KEYS,
    PIPE_LIST_KEYS,
    PIPE_SEPARATOR,
    REQUIRED_COLUMNS,
    SCHEMA_VERSION,
    SPEC_COLUMN_DEFS,
    SPEC_COLUMNS,
    SpecColumnDef,
    columns_in_category,
    get_column_def,
    is_valid_pipe_list,
    split_pipe,
)

__all__ = [
    "ALL_COLUMNS",
    "PACK_DEPENDENCY_KEYS",
    "PIPE_LIST_KEYS",
    "PIPE_SEPARATOR",
    "REQUIRED_COLUMNS",
    "SCHEMA_VERSION",
    "SPEC_COLUMN_DEFS",
    "SPEC_COLUMNS",
    "SpecColumnDef",
    "columns_in_category",
    "get_column_def",
    "is_valid_pipe_list",
    "split_pipe",
]
