"""
embedmap Configuration
======================

YAML-backed defaults for the SVD solver, the vector store, and projection.

Usage:
    from embedmap.config import load_config

    config = load_config()                 # defaults (or $EMBEDMAP_CONFIG)
    config = load_config('embedmap.yaml')  # file overrides defaults

File layout (every key optional):

    solver:
      eps: 2.220446049250313e-16
      tol: null
      qr_iters: 10
    store:
      path: data/vectors.json
    projection:
      n_components: 2
      strict: false
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from embedmap.validation.errors import ConfigError


logger = logging.getLogger(__name__)


CONFIG_ENV_VAR = 'EMBEDMAP_CONFIG'


@dataclass
class SolverConfig:
    """SVD solver parameters."""
    eps: float = 2.0 ** -52
    tol: Optional[float] = None
    qr_iters: int = 10

    def __post_init__(self):
        # PyYAML reads exponents without a dot ("1e-16") as strings
        self.eps = float(self.eps)
        if self.tol is not None:
            self.tol = float(self.tol)
        self.qr_iters = int(self.qr_iters)

        if self.eps <= 0:
            raise ConfigError(f"solver.eps must be positive, got {self.eps}")
        if self.tol is not None and self.tol < 0:
            raise ConfigError(f"solver.tol must be non-negative, got {self.tol}")
        if self.qr_iters < 1:
            raise ConfigError(f"solver.qr_iters must be at least 1, got {self.qr_iters}")

    def as_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for svd()."""
        return {'eps': self.eps, 'tol': self.tol, 'qr_iters': self.qr_iters}


@dataclass
class StoreConfig:
    """Vector store persistence."""
    path: Optional[str] = None


@dataclass
class ProjectionConfig:
    """Reduced-embedding projection."""
    n_components: int = 2
    strict: bool = False

    def __post_init__(self):
        self.n_components = int(self.n_components)
        if self.n_components < 1:
            raise ConfigError(
                f"projection.n_components must be at least 1, got {self.n_components}"
            )


@dataclass
class EmbedmapConfig:
    """Full configuration."""
    solver: SolverConfig = field(default_factory=SolverConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    projection: ProjectionConfig = field(default_factory=ProjectionConfig)


_SECTIONS = {
    'solver': SolverConfig,
    'store': StoreConfig,
    'projection': ProjectionConfig,
}


def load_config(path: Optional[Union[str, Path]] = None) -> EmbedmapConfig:
    """
    Load configuration, merging file values over defaults.

    Args:
        path: YAML file. If None, $EMBEDMAP_CONFIG is used when set.
              A missing file yields the defaults.

    Returns:
        EmbedmapConfig

    Raises:
        ConfigError: If the file is not a mapping or a value is out of range
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)
    if path is None:
        return EmbedmapConfig()

    config_file = Path(path)
    if not config_file.exists():
        logger.info(f"No config file at {config_file}, using defaults")
        return EmbedmapConfig()

    with open(config_file, encoding='utf-8') as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

    return config_from_dict(raw, source=str(config_file))


def config_from_dict(raw: Dict[str, Any], source: str = '<dict>') -> EmbedmapConfig:
    """Build an EmbedmapConfig from a parsed mapping."""
    if not isinstance(raw, dict):
        raise ConfigError(f"Config in {source} must be a mapping, got {type(raw).__name__}")

    sections = {}
    for name, section_raw in raw.items():
        section_cls = _SECTIONS.get(name)
        if section_cls is None:
            logger.warning(f"Ignoring unknown config section '{name}' in {source}")
            continue
        if section_raw is None:
            continue
        if not isinstance(section_raw, dict):
            raise ConfigError(f"Config section '{name}' in {source} must be a mapping")

        known = {f.name for f in fields(section_cls)}
        values = {}
        for key, value in section_raw.items():
            if key not in known:
                logger.warning(f"Ignoring unknown config key '{name}.{key}' in {source}")
                continue
            values[key] = value
        try:
            sections[name] = section_cls(**values)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid '{name}' section in {source}: {e}") from e

    return EmbedmapConfig(**sections)
