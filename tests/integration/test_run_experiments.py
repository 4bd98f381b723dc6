"""End-to-end tests for the bitga command line entry point."""

from pathlib import Path

import matplotlib
import pytest

matplotlib.use("Agg")

from bitga import run_experiments  # noqa: E402
from bitga.eval.fitness import RandomFitness, TargetFitness  # noqa: E402
from bitga.eval.stats import CsvStatsSink  # noqa: E402
from bitga.ga.ga_core import RunConfig  # noqa: E402


def test_main_writes_stats_files(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    code = run_experiments.main([
        "--population-size", "6", "--generations", "3", "--seed", "1",
        "--elitist", "--out-dir", str(tmp_path), "--plot", "--log-level", "WARNING",
    ])
    assert code == 0

    csv_lines = (tmp_path / "GA_6_3_0.8_0.2.csv").read_text().splitlines()
    assert csv_lines[0] == "Iteration;WorstFitness;AvgFitness;BestFitness"
    assert [line.split(";")[0] for line in csv_lines[1:]] == ["0", "1", "2"]

    plain_lines = (tmp_path / "GA_6_3_0.8_0.2.txt").read_text().splitlines()
    assert len(plain_lines) == 3
    worst, avg, best = (int(v) for v in plain_lines[0].split()[1:])
    assert worst <= avg <= best

    diffs = (tmp_path / "GA_param_diffs.txt").read_text().splitlines()
    assert len(diffs) == 3
    assert len(diffs[0].split()) == 7

    assert (tmp_path / "GA_6_3_0.8_0.2.png").exists()
    assert "Best fitness:" in capsys.readouterr().out


def test_main_rejects_bad_rate(tmp_path: Path) -> None:
    assert run_experiments.main(["--crossover-rate", "1.5", "--out-dir", str(tmp_path)]) == 2
    assert not list(tmp_path.iterdir())


def test_main_rejects_short_hypotheses_for_target_fitness(tmp_path: Path) -> None:
    assert run_experiments.main(["--length", "10", "--out-dir", str(tmp_path)]) == 2


def test_random_fitness_runs_with_any_length(tmp_path: Path) -> None:
    code = run_experiments.main([
        "--fitness", "random", "--length", "5", "--population-size", "4",
        "--generations", "2", "--seed", "3", "--out-dir", str(tmp_path), "--log-level", "ERROR",
    ])
    assert code == 0
    assert not (tmp_path / "GA_param_diffs.txt").exists()


def test_build_fitness() -> None:
    assert isinstance(run_experiments.build_fitness("target"), TargetFitness)
    assert isinstance(run_experiments.build_fitness("random", seed=2), RandomFitness)
    with pytest.raises(ValueError):
        run_experiments.build_fitness("onemax")


def test_run_ga_is_reproducible(tmp_path: Path) -> None:
    cfg = RunConfig(population_size=8, generations=4, seed=5)
    best_a, history_a = run_experiments.run_ga(cfg, TargetFitness(), out_dir=str(tmp_path / "a"), verbose=False)
    best_b, history_b = run_experiments.run_ga(cfg, TargetFitness(), out_dir=str(tmp_path / "b"), verbose=False)
    assert history_a == history_b
    assert best_a[1] == best_b[1]
    assert (tmp_path / "a" / "GA_8_4_0.8_0.2.csv").read_text() == (tmp_path / "b" / "GA_8_4_0.8_0.2.csv").read_text()


def test_run_ga_closes_opened_sinks_when_a_later_one_fails(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    opened = []

    class TrackingCsvSink(CsvStatsSink):
        def __init__(self, path):
            super().__init__(path)
            opened.append(self)

    def unwritable(*args, **kwargs):
        raise OSError("no space left on device")

    monkeypatch.setattr(run_experiments, "CsvStatsSink", TrackingCsvSink)
    monkeypatch.setattr(run_experiments, "ParamDiffSink", unwritable)
    cfg = RunConfig(population_size=4, generations=1, seed=0)
    with pytest.raises(OSError, match="no space"):
        run_experiments.run_ga(cfg, TargetFitness(), out_dir=str(tmp_path), verbose=False)
    assert len(opened) == 1
    assert opened[0]._f.closed


def test_workers_help_mentions_reproducibility(capsys: pytest.CaptureFixture) -> None:
    with pytest.raises(SystemExit):
        run_experiments.parse_args(["--help"])
    assert "reproducible" in capsys.readouterr().out
