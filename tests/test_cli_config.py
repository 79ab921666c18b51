"""Tests for configuration loading and CLI argument parsing."""

from types import SimpleNamespace

import pytest

from conftest import write_tree
from modupgrade.args import parse_args
from modupgrade.cli_config import UpgradeConfig, build_config, describe, load_config_file
from modupgrade.constants import Constants
from modupgrade.errors import InvalidConfiguration


def _args(**overrides):
    base = dict(DIRECTORY=".", VERBOSE=False, DRY_RUN=False, CONFIG=None, PROXY=None,
                BATCH_SIZE=None, MAX_WORKERS=None, TIMEOUT=None, LOOKUP=None)
    base.update(overrides)
    return SimpleNamespace(**base)


class TestParseArgs:
    """Command-line surface."""

    def test_defaults(self):
        args = parse_args([])
        assert (args.module, args.version) == ("", "")
        assert args.DIRECTORY == "."
        assert not args.VERBOSE and not args.DRY_RUN
        assert args.BATCH_SIZE is None and args.LOOKUP is None

    def test_positionals_and_flags(self):
        args = parse_args(["-d", "/src/app", "-v", "-n", "--workers", "2",
                           "--lookup", "go", "example.com/dep", "v3.1"])
        assert (args.module, args.version) == ("example.com/dep", "v3.1")
        assert args.DIRECTORY == "/src/app"
        assert args.VERBOSE and args.DRY_RUN
        assert args.MAX_WORKERS == 2
        assert args.LOOKUP == "go"

    @pytest.mark.parametrize("argv", [
        ["--batch-size", "0"],
        ["--workers", "-1"],
        ["--lookup", "guess"],
        ["a", "b", "c"],
    ])
    def test_rejected(self, argv):
        with pytest.raises(SystemExit):
            parse_args(argv)


class TestLoadConfigFile:
    """YAML configuration files."""

    def test_upgrade_section(self, tmp_path):
        write_tree(tmp_path, {"cfg.yml": """
            upgrade:
              proxy: https://proxy.example
              batch_size: 8
              timeout: 5
        """})

        values = load_config_file(str(tmp_path / "cfg.yml"))

        assert values == {"proxy": "https://proxy.example", "batch_size": 8, "timeout": 5.0}

    def test_top_level_keys_and_unknown_keys(self, tmp_path, caplog):
        write_tree(tmp_path, {"cfg.yml": "max_workers: 2\ncolour: blue\n"})

        values = load_config_file(str(tmp_path / "cfg.yml"))

        assert values == {"max_workers": 2}
        assert "colour" in caplog.text

    @pytest.mark.parametrize("content", [
        "batch_size: many\n",
        "- a\n- b\n",
        "upgrade: [1, 2]\n",
        "upgrade: {proxy: [unclosed\n",
    ])
    def test_invalid(self, tmp_path, content):
        write_tree(tmp_path, {"cfg.yml": content})
        with pytest.raises(InvalidConfiguration):
            load_config_file(str(tmp_path / "cfg.yml"))

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidConfiguration):
            load_config_file(str(tmp_path / "absent.yml"))

    def test_empty_file(self, tmp_path):
        write_tree(tmp_path, {"cfg.yml": "\n"})
        assert load_config_file(str(tmp_path / "cfg.yml")) == {}


class TestBuildConfig:
    """Precedence of defaults, config file and CLI flags."""

    def test_defaults(self):
        config = build_config(_args())
        assert config == UpgradeConfig()
        assert config.batch_size == Constants.BATCH_SIZE

    def test_config_file_in_module_directory_is_picked_up(self, tmp_path):
        write_tree(tmp_path, {Constants.CONFIG_FILE: "upgrade:\n  batch_size: 9\n  lookup: go\n"})

        config = build_config(_args(DIRECTORY=str(tmp_path)))

        assert config.batch_size == 9
        assert config.lookup == "go"

    def test_cli_flags_win(self, tmp_path):
        write_tree(tmp_path, {"cfg.yml": "batch_size: 9\nmax_workers: 3\n"})

        config = build_config(_args(CONFIG=str(tmp_path / "cfg.yml"), BATCH_SIZE=2, VERBOSE=True))

        assert (config.batch_size, config.max_workers, config.verbose) == (2, 3, True)

    @pytest.mark.parametrize("content", ["batch_size: 0\n", "timeout: -1\n", "lookup: magic\n"])
    def test_invalid_values(self, tmp_path, content):
        write_tree(tmp_path, {"cfg.yml": content})
        with pytest.raises(InvalidConfiguration):
            build_config(_args(CONFIG=str(tmp_path / "cfg.yml")))

    def test_describe(self):
        assert "batch_size=5" in describe(UpgradeConfig(batch_size=5))
