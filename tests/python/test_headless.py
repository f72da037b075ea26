import csv
import json

import pytest

from flocksim.headless import run_headless


def _read_csv(path):
    with path.open(newline="") as handle:
        return list(csv.reader(handle))


def test_headless_basic_log_header(tmp_path):
    log_path = tmp_path / "basic.csv"
    run_headless(steps=2, seed=1, log_path=log_path, deterministic_log=True, log_format="basic")
    rows = _read_csv(log_path)
    assert len(rows) == 3
    assert rows[0] == [
        "tick",
        "population",
        "separating",
        "aligning",
        "cohering",
        "idle",
        "neighbor_checks",
        "tick_ms",
    ]
    for row in rows[1:]:
        population = int(row[1])
        assert population == 40
        assert sum(int(value) for value in row[2:6]) == population
        assert row[7] == "0.000"


def test_headless_detailed_log_header_and_ratios(tmp_path):
    log_path = tmp_path / "detailed.csv"
    run_headless(steps=3, seed=2, log_path=log_path, deterministic_log=True, log_format="detailed")
    rows = _read_csv(log_path)
    assert len(rows) == 4
    header = rows[0]
    assert header == [
        "tick",
        "population",
        "separating",
        "aligning",
        "cohering",
        "idle",
        "neighbor_checks",
        "tick_ms",
        "separating_ratio",
        "aligning_ratio",
        "cohering_ratio",
        "idle_ratio",
        "neighbor_checks_per_boid",
        "tick_ms_per_boid",
        "polarization",
        "mean_nearest_neighbor",
        "min_nearest_neighbor",
        "mean_cohesion_flockmates",
        "centroid_x",
        "centroid_y",
        "world_width",
        "world_height",
    ]

    first_row = rows[1]
    idx = {name: i for i, name in enumerate(header)}
    population = int(first_row[idx["population"]])
    separating = int(first_row[idx["separating"]])
    neighbor_checks = int(first_row[idx["neighbor_checks"]])

    assert float(first_row[idx["separating_ratio"]]) == pytest.approx(separating / population, abs=1e-4)
    assert float(first_row[idx["neighbor_checks_per_boid"]]) == pytest.approx(
        neighbor_checks / population, abs=1e-4
    )
    ratios = sum(float(first_row[idx[name]]) for name in ["separating_ratio", "aligning_ratio", "cohering_ratio", "idle_ratio"])
    assert ratios == pytest.approx(1.0, abs=1e-3)
    assert 0.0 <= float(first_row[idx["polarization"]]) <= 1.0
    assert float(first_row[idx["min_nearest_neighbor"]]) <= float(first_row[idx["mean_nearest_neighbor"]])
    assert 0.0 <= float(first_row[idx["centroid_x"]]) <= 800.0
    assert float(first_row[idx["tick_ms"]]) == 0.0


def test_headless_deterministic_log_matches_for_same_seed(tmp_path):
    first = tmp_path / "a.csv"
    second = tmp_path / "b.csv"
    run_headless(steps=5, seed=4, log_path=first, deterministic_log=True)
    run_headless(steps=5, seed=4, log_path=second, deterministic_log=True)
    assert first.read_text() == second.read_text()


def test_headless_summary_output(tmp_path):
    log_path = tmp_path / "summary.csv"
    summary_path = tmp_path / "summary.json"
    run_headless(
        steps=4,
        seed=3,
        log_path=log_path,
        deterministic_log=True,
        log_format="basic",
        summary_path=summary_path,
        summary_window=2,
    )
    payload = json.loads(summary_path.read_text())
    assert payload["steps"] == 4
    assert payload["seed"] == 3
    assert payload["flock_size"] == 40
    assert payload["log_format"] == "basic"
    assert "tick_ms" in payload
    assert "neighbor_checks" in payload
    assert "polarization" in payload
    assert payload["tail_window"]["window"] == 2


def test_headless_reads_yaml_config(tmp_path):
    config_path = tmp_path / "small.yaml"
    config_path.write_text("flock_size: 6\nworld_width: 200\nworld_height: 100\n")
    log_path = tmp_path / "small.csv"
    run_headless(steps=2, seed=None, log_path=log_path, deterministic_log=True, log_format="basic", config_path=config_path)
    rows = _read_csv(log_path)
    assert all(int(row[1]) == 6 for row in rows[1:])


def test_headless_rejects_unknown_log_format(tmp_path):
    with pytest.raises(ValueError):
        run_headless(steps=1, seed=1, log_path=tmp_path / "x.csv", log_format="verbose")
