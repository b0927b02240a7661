import io
import json

import pandas as pd
import pytest

from csmacdSimpy import Config
from csmacdSimpy.logger_util import disable_logging
from csmacdSimpy.scenario_creator_helper import OutputParams, ReportParams, SimulationParams
from csmacdSimpy.simulation_runner import (
    calculate_throughput,
    describe_configuration,
    get_run_seed,
    prepare_report_dataframe,
    print_report_csv,
    run_report,
    run_scenario,
    run_test,
)


def small_params(**kwargs):
    config = Config(psize=100, lspeed=1_000_000)
    return SimulationParams(station_count=3, rate=500, duration=0.01, config=config, seed=2, **kwargs)


def test_calculate_throughput():
    assert calculate_throughput(10, 8000, 1) == pytest.approx(0.08)
    assert calculate_throughput(5, 100, 0) == 0.0


def test_run_seed_is_offset_per_run():
    assert get_run_seed(small_params(), 3) == 5
    assert get_run_seed(SimulationParams(), 3) is None


def test_describe_configuration():
    text = describe_configuration(small_params())
    assert text.startswith("Simulation configuration:")
    assert "Station count:         3 stations" in text
    assert "CSMA/CD Persistence:   false" in text
    assert "Resolution:            1µs" in text


def test_report_dataframe_averages_runs():
    df_full = pd.DataFrame({
        "rate": [4.0, 4.0, 6.0],
        "station_count": [2, 2, 2],
        "throughput": [1.0, 3.0, 5.0],
        "delay": [0.5, 1.5, 2.0],
        "generated": [10, 20, 30],
        "processed": [9, 19, 29],
        "dropped": [1, 1, 1],
    })
    df = prepare_report_dataframe(df_full)
    assert df["rate"].tolist() == [4.0, 6.0]
    assert df["throughput"].tolist() == pytest.approx([2.0, 5.0])
    assert df["delay"].tolist() == pytest.approx([1.0, 2.0])
    assert df["throughput_std"].iloc[0] == pytest.approx(2 ** 0.5)

    stream = io.StringIO()
    print_report_csv(df, stream)
    lines = stream.getvalue().splitlines()
    assert lines[0] == "A,N,Throughput,Delay"
    assert lines[1] == "4.0,2,2.0,1.0"


def test_run_scenario_prints_blocks(capsys):
    df_full = run_scenario(small_params(scenario_runs=2))
    out = capsys.readouterr().out
    assert out.count("Simulation configuration:") == 1
    assert out.count("Simulation results:") == 2
    assert "Running scenario : 2/2" in out
    assert len(df_full) == 2
    assert (df_full["generated"] == df_full["processed"] + df_full["dropped"] + df_full["pending"]).all()


def test_run_scenario_saves_results(tmp_path):
    output_params = OutputParams(str(tmp_path), "small", enable_logging=True, plots=False)
    try:
        run_scenario(small_params(output_params=output_params))
    finally:
        disable_logging("small")
    assert (tmp_path / "small_df_full.csv").exists()
    assert (tmp_path / "small_events.csv").exists()
    assert (tmp_path / "small.log").exists()


def test_run_report_prints_csv_and_plots(tmp_path):
    output_params = OutputParams(str(tmp_path), "report", enable_logging=False, plots=True)
    params = small_params(scenario_runs=2, output_params=output_params,
                          report_params=ReportParams(station_counts=[2, 3], rates=[200.0]))
    stream = io.StringIO()
    df = run_report(params, stream)
    lines = stream.getvalue().splitlines()
    assert lines[0] == "A,N,Throughput,Delay"
    assert len(lines) == 3
    assert df["station_count"].tolist() == [2, 3]
    assert (tmp_path / "report_report.csv").exists()
    assert (tmp_path / "report_report_full.csv").exists()
    assert (tmp_path / "report_throughput.svg").exists()
    assert (tmp_path / "report_delay.svg").exists()


def test_run_test_dispatches_report(tmp_path):
    path = tmp_path / "report.json"
    path.write_text(json.dumps({
        "SIMULATION_TIME": 0.005,
        "PACKET_SIZE": 100,
        "SEED": 1,
        "REPORT": {"station_counts": "2", "rates": "100"},
    }))
    stream = io.StringIO()
    df = run_test(str(path), stream)
    assert len(df) == 1
    assert stream.getvalue().startswith("A,N,Throughput,Delay")
