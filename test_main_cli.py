"""
Tests for the darwin-stress command line entry point.
"""
import json
import logging

import pytest

from darwin_stress.main import EXIT_INVALID, build_parser, main


@pytest.fixture(autouse=True)
def restore_logging(monkeypatch):
    """main() reconfigures the root logger; put it back afterwards."""
    for name in ("DARWIN_SEED", "DARWIN_SCENARIOS", "DARWIN_POPULATION",
                 "DARWIN_GENERATIONS", "DARWIN_ASSUMPTIONS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


def _missing_config(tmp_path):
    return ["--config", str(tmp_path / "none.yaml"), "--log-level", "WARNING"]


class TestCLI:
    def test_parser_requires_command(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_simulate_prints_summary(self, tmp_path, capsys):
        code = main(_missing_config(tmp_path) + [
            "simulate", "--seed", "42", "--scenarios", "100",
            "--alloc", "us_equities=0.6", "--alloc", "long_term_bonds=0.4",
        ])
        assert code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["config"]["num_scenarios"] == 100
        assert payload["portfolio"]["us_equities"] == 0.6
        assert "path" not in payload["median_scenario"]
        assert payload["tail_flags"]["inflation_shock_risk"] is True

    def test_simulate_is_reproducible(self, tmp_path, capsys):
        args = _missing_config(tmp_path) + ["simulate", "--seed", "3", "--scenarios", "50"]
        main(args)
        first = capsys.readouterr().out
        main(args)
        assert capsys.readouterr().out == first

    def test_simulate_with_paths(self, tmp_path, capsys):
        main(_missing_config(tmp_path) + [
            "simulate", "--seed", "1", "--scenarios", "20", "--horizon", "6", "--paths",
        ])
        payload = json.loads(capsys.readouterr().out)
        assert len(payload["median_scenario"]["path"]) == 7

    def test_evolve_prints_result(self, tmp_path, capsys):
        code = main(_missing_config(tmp_path) + [
            "evolve", "--seed", "5", "--scenarios", "40",
            "--population", "4", "--generations", "2", "--pressure", "0.3",
        ])
        assert code == 0
        payload = json.loads(capsys.readouterr().out)
        assert len(payload["generations"]) == 3
        assert "champion" in payload and "adversarial_findings" in payload

    def test_bad_total_exits_2(self, tmp_path, capsys):
        code = main(_missing_config(tmp_path) + ["simulate", "--alloc", "cash=0.5"])
        assert code == EXIT_INVALID
        assert capsys.readouterr().out == ""

    def test_unknown_asset_exits_2(self, tmp_path):
        code = main(_missing_config(tmp_path) + ["simulate", "--alloc", "bitcoin=1.0"])
        assert code == EXIT_INVALID

    def test_malformed_alloc_exits_2(self, tmp_path):
        code = main(_missing_config(tmp_path) + ["simulate", "--alloc", "cash"])
        assert code == EXIT_INVALID

    def test_invalid_config_exits_2(self, tmp_path):
        code = main(_missing_config(tmp_path) + [
            "evolve", "--population", "1", "--scenarios", "10",
        ])
        assert code == EXIT_INVALID

    def test_broken_config_file_exits_2(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("simulation: [unclosed\n")
        code = main(["--config", str(path), "simulate"])
        assert code == EXIT_INVALID

    def test_mistyped_config_value_exits_2(self, tmp_path, capsys):
        """A non-numeric population_size is reported, not raised."""
        path = tmp_path / "config.yaml"
        path.write_text("evolution:\n  population_size: twenty\n")
        code = main(["--config", str(path), "--log-level", "WARNING", "evolve"])
        assert code == EXIT_INVALID
        assert capsys.readouterr().out == ""
