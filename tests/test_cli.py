"""Tests for command-line parsing and the SPMD entry point."""

import argparse
import dataclasses

import pytest

from Polar.cli import build_config, build_parser, main, parse_arguments, parse_range


class TestParseRange:
    def test_full_range(self):
        assert parse_range("1024:4096:512") == (1024, 4096, 512)

    def test_default_step(self):
        assert parse_range("100:200") == (100, 200, 1)

    @pytest.mark.parametrize("text", ["100", "1:2:3:4", "a:b:c"])
    def test_invalid(self, text):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_range(text)


class TestParseArguments:
    def test_defaults(self):
        config, help_requested, _ = parse_arguments([])
        assert not help_requested
        assert (config.start, config.stop, config.nb, config.mode) == (5120, 5120, 128, 4)
        assert config.cond == pytest.approx(9.0072e15)
        assert not config.check

    def test_fixed_size(self):
        config, _, _ = parse_arguments(["-n", "512", "-b", "64", "-c", "-k", "1e6"])
        assert (config.start, config.stop, config.step) == (512, 512, 1)
        assert config.check
        assert config.cond == 1e6

    def test_size_range_and_grid(self):
        config, _, _ = parse_arguments(["-p", "2", "-q", "3", "-r", "1000:3000:500", "-i", "4", "-o"])
        assert (config.nprow, config.npcol) == (2, 3)
        assert (config.start, config.stop, config.step) == (1000, 3000, 500)
        assert config.niter == 4
        assert config.optcond

    def test_fixed_size_and_range_exclusive(self):
        with pytest.raises(SystemExit):
            parse_arguments(["-n", "512", "-r", "1:2:1"])

    def test_help(self):
        config, help_requested, _ = parse_arguments(["-h"])
        assert help_requested and config is None

    @pytest.mark.parametrize("argv", [["-m", "9"], ["-k", "0.5"], ["-r", "200:100"], ["-i", "0"], ["-b", "0"]])
    def test_invalid_configuration_exits(self, argv):
        with pytest.raises(SystemExit) as exc:
            parse_arguments(argv)
        assert exc.value.code == 2

    def test_config_is_immutable(self):
        config = build_config(build_parser().parse_args(["-n", "64"]))
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.nb = 3


class TestMain:
    def test_help_exit_code(self, capsys):
        assert main(["-h"]) == 0
        assert "Polar decomposition timing" in capsys.readouterr().err

    def test_grid_too_large(self):
        # pytest runs as a single MPI process
        assert main(["-p", "2", "-q", "2", "-n", "64", "-b", "16"]) == 1

    def test_single_size_run(self, tmp_path, capsys):
        out = tmp_path / "records.csv"
        assert main(["-n", "64", "-b", "16", "-c", "--output", str(out)]) == 0
        err = capsys.readouterr().err
        assert "# NPROCS 1 P 1 Q 1" in err
        assert "Berr_UpH" in err
        assert out.exists()
