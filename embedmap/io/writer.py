"""
Writer: all file writes go through here.

No other module should write store or projection files directly.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, Optional, Union

import polars as pl

from embedmap.validation.errors import DimensionMismatch


logger = logging.getLogger(__name__)


def write_store(text: str, path: Union[str, Path]) -> Path:
    """
    Write serialized store text as UTF-8.

    Writes to a sibling temp file first and swaps it in, so a failed write
    never leaves a truncated store behind.

    Returns:
        Path written
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    tmp = p.with_name(p.name + '.tmp')
    try:
        tmp.write_text(text, encoding='utf-8')
        os.replace(tmp, p)
    finally:
        if tmp.exists():
            tmp.unlink()

    return p


def write_projection(vectors: Iterable, path: Union[str, Path]) -> Optional[Path]:
    """
    Write reduced embeddings as parquet: id, component_0, component_1, ...

    Records without a reduced embedding are left out.

    Args:
        vectors: Vector records (a VectorStore works)
        path: Output parquet file

    Returns:
        Path written, or None if no record has a reduced embedding

    Raises:
        DimensionMismatch: If reduced embeddings differ in length
    """
    ids = []
    rows = []
    for vector in vectors:
        if not vector.reduced_embedding:
            continue
        if rows and len(vector.reduced_embedding) != len(rows[0]):
            raise DimensionMismatch(
                f"Reduced embedding of '{vector.id}' has dimension "
                f"{len(vector.reduced_embedding)}, expected {len(rows[0])}",
                expected=len(rows[0]),
                actual=len(vector.reduced_embedding),
            )
        ids.append(vector.id)
        rows.append(vector.reduced_embedding)

    if not rows:
        logger.info(f"Skipped {path} (no reduced embeddings)")
        return None

    columns = {'id': ids}
    for i in range(len(rows[0])):
        columns[f'component_{i}'] = [row[i] for row in rows]
    df = pl.DataFrame(columns)

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    df.write_parquet(str(p))
    logger.info(f"Wrote projection {p} ({df.height} rows)")
    return p
