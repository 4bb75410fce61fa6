from .reader import (
    MissingHeadersError,
    TabularData,
    TabularSourceError,
    UnsupportedFormatError,
    read_tabular_file,
    write_template,
)

__all__ = [
    "MissingHeadersError",
    "TabularData",
    "TabularSourceError",
    "UnsupportedFormatError",
    "read_tabular_file",
    "write_template",
]
