"""
Tests for YAML configuration loading.
"""

import pytest

from embedmap.config import (
    CONFIG_ENV_VAR,
    EmbedmapConfig,
    ProjectionConfig,
    SolverConfig,
    config_from_dict,
    load_config,
)
from embedmap.core import DEFAULT_QR_ITERS, MACHINE_EPS
from embedmap.validation import ConfigError


class TestDefaults:
    """Values used when no file is given."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        config = load_config()

        assert config == EmbedmapConfig()
        assert config.solver.eps == MACHINE_EPS
        assert config.solver.tol is None
        assert config.solver.qr_iters == DEFAULT_QR_ITERS
        assert config.store.path is None
        assert config.projection.n_components == 2
        assert config.projection.strict is False

    def test_missing_file(self, tmp_path):
        assert load_config(tmp_path / 'absent.yaml') == EmbedmapConfig()

    def test_solver_kwargs(self):
        assert SolverConfig(qr_iters=30).as_kwargs() == {
            'eps': MACHINE_EPS,
            'tol': None,
            'qr_iters': 30,
        }


class TestLoadFile:
    """File values override defaults."""

    def test_overrides(self, tmp_path):
        path = tmp_path / 'embedmap.yaml'
        path.write_text(
            "solver:\n"
            "  eps: 1e-12\n"
            "  qr_iters: 25\n"
            "store:\n"
            "  path: data/vectors.json\n"
            "projection:\n"
            "  n_components: 3\n"
            "  strict: true\n",
            encoding='utf-8',
        )
        config = load_config(path)

        assert config.solver.eps == pytest.approx(1e-12)
        assert config.solver.qr_iters == 25
        assert config.store.path == 'data/vectors.json'
        assert config.projection == ProjectionConfig(n_components=3, strict=True)

    def test_env_var(self, tmp_path, monkeypatch):
        path = tmp_path / 'env.yaml'
        path.write_text("projection:\n  n_components: 5\n", encoding='utf-8')
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert load_config().projection.n_components == 5

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text("", encoding='utf-8')
        assert load_config(path) == EmbedmapConfig()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("solver: [unclosed\n", encoding='utf-8')
        with pytest.raises(ConfigError):
            load_config(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text("- a\n- b\n", encoding='utf-8')
        with pytest.raises(ConfigError):
            load_config(path)


class TestValidation:
    """Out-of-range values and unknown keys."""

    @pytest.mark.parametrize("raw", [
        {'solver': {'qr_iters': 0}},
        {'solver': {'eps': 0}},
        {'solver': {'eps': 'abc'}},
        {'solver': {'tol': -1.0}},
        {'projection': {'n_components': 0}},
        {'store': 'vectors.json'},
    ])
    def test_invalid_values(self, raw):
        with pytest.raises(ConfigError):
            config_from_dict(raw)

    def test_unknown_keys_ignored(self, caplog):
        config = config_from_dict({
            'solver': {'qr_iters': 12, 'method': 'jacobi'},
            'plotting': {'dpi': 300},
        })

        assert config.solver.qr_iters == 12
        assert "solver.method" in caplog.text
        assert "plotting" in caplog.text

    def test_null_section(self):
        assert config_from_dict({'solver': None}) == EmbedmapConfig()
