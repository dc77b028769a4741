"""
embedmap I/O

File reads and writes for store persistence and projection export.
"""

from .reader import read_store, load_projection
from .writer import write_store, write_projection

__all__ = [
    'read_store',
    'load_projection',
    'write_store',
    'write_projection',
]
