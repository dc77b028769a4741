"""
Reader: all file reads go through here.

No other module should open store or projection files directly.
"""

from pathlib import Path
from typing import Optional, Union

import polars as pl


def read_store(path: Union[str, Path]) -> Optional[str]:
    """
    Read a serialized vector store.

    Returns:
        The UTF-8 text, or None if the file does not exist
    """
    p = Path(path)
    if not p.exists():
        return None
    return p.read_text(encoding='utf-8')


def load_projection(path: Union[str, Path]) -> Optional[pl.DataFrame]:
    """Load a projection parquet written by write_projection(), or None if absent."""
    p = Path(path)
    if not p.exists():
        return None
    return pl.read_parquet(str(p))
