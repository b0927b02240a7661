import decimal
import os
import sys
from decimal import Decimal, getcontext

import duckdb
import numpy as np
import pandas as pd
import scipy.stats as st
from matplotlib import pyplot as plt

from csmacdSimpy.CsmaCd import SimulationResult, run_simulation
from csmacdSimpy.directory_manager_util import try_to_create_directory
from csmacdSimpy.logger_util import DEFAULT_LOG_NAME, enable_logging, log
from csmacdSimpy.scenario_creator_helper import OutputParams, SimulationParams, get_scenario_directly_from_json

getcontext().prec = 12
getcontext().rounding = decimal.ROUND_HALF_EVEN

marks = ['o', 'v', 's', 'P', '*', 'x', '+']
colors = ['r', 'g', 'b', 'c', 'm', 'y', 'k']
THROUGHPUT = 'throughput'
DELAY = 'delay'
REPORT_COLUMNS = {"rate": "A", "station_count": "N", THROUGHPUT: "Throughput", DELAY: "Delay"}


def describe_configuration(params: SimulationParams) -> str:
    config = params.config
    return "\n".join([
        "Simulation configuration:",
        f"\t Rate:                  {params.rate:g} packets/s",
        f"\t Packet size:           {config.psize} bits",
        f"\t LAN speed:             {config.lspeed} bits/s",
        f"\t Simulation duration:   {params.duration:g}s",
        f"\t Station count:         {params.station_count} stations",
        f"\t CSMA/CD Persistence:   {str(config.persistence).lower()}",
        f"\t Resolution:            {1e6 / config.resolution:g}µs",
        f"\t Ticks per packet:      {config.ticks_per_packet:g}",
    ])


def describe_results(result: SimulationResult) -> str:
    return "\n".join([
        "Simulation results:",
        f"\t Average sojourn time:              {result.mean_sojourn:.4f} +/- {result.stddev_sojourn:.4f} seconds",
        f"\t Packets generated:                 {result.generated} packets",
        f"\t Packets processed:                 {result.processed} packets",
        f"\t Packets dropped:                   {result.dropped} packets",
    ])


def calculate_throughput(processed, psize, duration):
    # delivered Mbit/s
    if duration == 0:
        return 0.0
    return float(Decimal(processed * psize) / Decimal(duration) / Decimal(10 ** 6))


def get_run_seed(params: SimulationParams, run_number):
    if params.seed is None:
        return None
    return params.seed + run_number


def get_log_name(params: SimulationParams):
    if params.output_params is not None and params.output_params.enable_logging:
        return params.output_params.file_name
    return DEFAULT_LOG_NAME


def prepare_logging(params: SimulationParams):
    log_name = get_log_name(params)
    if log_name != DEFAULT_LOG_NAME:
        enable_logging(log_name, get_path_to_folder(params.output_params))
    return log_name


def run_scenario(params: SimulationParams) -> pd.DataFrame:
    log_name = prepare_logging(params)
    output_params = params.output_params
    result_dict = {"run": [], "station_count": [], "rate": [], "generated": [], "processed": [], "dropped": [],
                   "collisions": [], "pending": [], THROUGHPUT: [], DELAY: [], "delay_std": []}
    event_dict_list = []
    print(describe_configuration(params))
    for run_number in range(params.scenario_runs):
        if params.scenario_runs > 1:
            print(f"Running scenario : {run_number + 1}/{params.scenario_runs}")
        log(f"Running scenario : {run_number + 1}/{params.scenario_runs}", log_name)
        result = run_simulation(params.station_count, params.rate, params.duration, params.config,
                                generator_type=params.generator_type, seed=get_run_seed(params, run_number),
                                logger_name=log_name)
        print(describe_results(result))
        collect_results(result_dict, result, params, run_number)
        events = dict(result.event_dict)
        events["run"] = [run_number] * len(events.get("time", []))
        event_dict_list.append(events)

    df_full = pd.DataFrame.from_dict(result_dict)
    if output_params is not None:
        path_to_folder = get_path_to_folder(output_params)
        sim_results_path = os.path.join(path_to_folder, output_params.file_name + "_df_full.csv")
        log(f"Saving simulation results to: {sim_results_path} ...", log_name)
        df_full.to_csv(sim_results_path)
        events_df = merge_dicts_into_df(event_dict_list)
        events_path = os.path.join(path_to_folder, output_params.file_name + "_events.csv")
        log(f"Saving simulation events to: {events_path} ...", log_name)
        events_df.to_csv(events_path)
    return df_full


def collect_results(result_dict, result: SimulationResult, params: SimulationParams, run_number):
    result_dict["run"].append(run_number)
    result_dict["station_count"].append(params.station_count)
    result_dict["rate"].append(params.rate)
    result_dict["generated"].append(result.generated)
    result_dict["processed"].append(result.processed)
    result_dict["dropped"].append(result.dropped)
    result_dict["collisions"].append(result.collisions)
    result_dict["pending"].append(result.pending)
    result_dict[THROUGHPUT].append(calculate_throughput(result.processed, params.config.psize, params.duration))
    result_dict[DELAY].append(result.mean_sojourn)
    result_dict["delay_std"].append(result.stddev_sojourn)


def run_report(params: SimulationParams, stream=sys.stdout) -> pd.DataFrame:
    log_name = prepare_logging(params)
    report_params = params.report_params
    result_dict = {"run": [], "station_count": [], "rate": [], "generated": [], "processed": [], "dropped": [],
                   "collisions": [], "pending": [], THROUGHPUT: [], DELAY: [], "delay_std": []}
    for rate in report_params.rates:
        for station_count in report_params.station_counts:
            point_params = SimulationParams(station_count=station_count, rate=rate, duration=params.duration,
                                            config=params.config, generator_type=params.generator_type,
                                            scenario_runs=params.scenario_runs, seed=params.seed)
            for run_number in range(params.scenario_runs):
                log(f"Report point A={rate:g} N={station_count}: run {run_number + 1}/{params.scenario_runs}",
                    log_name)
                result = run_simulation(station_count, rate, params.duration, params.config,
                                        generator_type=params.generator_type,
                                        seed=get_run_seed(point_params, run_number), logger_name=log_name)
                collect_results(result_dict, result, point_params, run_number)

    df_full = pd.DataFrame.from_dict(result_dict)
    df = prepare_report_dataframe(df_full)
    print_report_csv(df, stream)
    output_params = params.output_params
    if output_params is not None:
        path_to_folder = get_path_to_folder(output_params)
        df_full.to_csv(os.path.join(path_to_folder, output_params.file_name + "_report_full.csv"))
        report_path = os.path.join(path_to_folder, output_params.file_name + "_report.csv")
        log(f"Saving report to: {report_path} ...", log_name)
        df.to_csv(report_path)
        if output_params.plots:
            log("Plotting report ...", log_name)
            plot_report(df, output_params, params.scenario_runs)
    return df


def prepare_report_dataframe(df_full):
    return duckdb.query("SELECT rate, station_count, "
                        "avg(throughput) as throughput, "
                        "avg(delay) as delay, "
                        "avg(generated) as generated, "
                        "avg(processed) as processed, "
                        "avg(dropped) as dropped, "
                        "stddev_samp(throughput) as throughput_std, "
                        "stddev_samp(delay) as delay_std "
                        "FROM df_full "
                        "GROUP BY rate, station_count "
                        "ORDER BY rate, station_count").df()


def print_report_csv(df, stream=sys.stdout):
    report_df = df[list(REPORT_COLUMNS)].rename(columns=REPORT_COLUMNS)
    report_df.to_csv(stream, index=False)


def merge_dicts_into_df(dict_list):
    if not dict_list:
        return pd.DataFrame()
    return pd.concat([pd.DataFrame.from_dict(result_dict) for result_dict in dict_list], ignore_index=True)


def plot_report(df: pd.DataFrame, output_params: OutputParams, scenario_runs):
    for y_axis, y_label in [(THROUGHPUT, "Throughput [Mbps]"), (DELAY, "Average sojourn time [s]")]:
        fig, ax = plt.subplots()
        for i, (key, grp) in enumerate(df.groupby("rate")):
            ax = grp.plot(ax=ax, marker=marks[i % len(marks)], x="station_count", y=y_axis, label=f"A = {key:g}",
                          c=colors[i % len(colors)], linestyle='--', markersize=5)
            add_confidence_interval(grp["station_count"].tolist(), grp[y_axis].tolist(), ax,
                                    colors[i % len(colors)], scenario_runs=scenario_runs,
                                    std=grp[y_axis + "_std"].tolist())
        ax.set(xlabel="Number of stations (N)", ylabel=y_label, title=output_params.file_name)
        ax.set_ylim(bottom=0)
        plt.tight_layout()
        save_plot(output_params, y_axis)


def add_confidence_interval(x, y, ax, color, scenario_runs=1, std=None):
    if scenario_runs < 2 or std is None:
        return
    ci = np.asarray(std, dtype=float) / np.sqrt(scenario_runs) * st.t.ppf(1 - 0.05 / 2, scenario_runs - 1)
    ax.errorbar(x, y, yerr=ci, fmt=" ", ecolor=color)


def get_path_to_folder(output_params: OutputParams):
    if output_params.folder_name is None:
        return try_to_create_directory('')
    return try_to_create_directory(output_params.folder_name, include_default=False)


def save_plot(output_params: OutputParams, plot_type):
    path_to_save = os.path.join(get_path_to_folder(output_params), output_params.file_name + "_" + plot_type)
    plt.savefig(path_to_save + '.svg')
    plt.close()


def run_params(params: SimulationParams, stream=sys.stdout) -> pd.DataFrame:
    if params.report_params is not None:
        return run_report(params, stream)
    return run_scenario(params)


def run_test(json_path, stream=sys.stdout):
    simulation_params = get_scenario_directly_from_json(json_path)
    return run_params(simulation_params, stream)
