import json
from dataclasses import dataclass, field
from typing import List, Optional

from csmacdSimpy.CsmaCd import Config
from csmacdSimpy.generators import GeneratorType

DEFAULT_RATE = 10
DEFAULT_PSIZE = 1
DEFAULT_LSPEED = 1_000_000
DEFAULT_DURATION = 5
DEFAULT_STATION_COUNT = 10
DEFAULT_PERSISTENCE = False
DEFAULT_RESOLUTION = 1e6

REPORT_STATION_COUNTS = [4, 6, 8, 10, 12, 14, 16]
REPORT_RATES = [4, 6, 8]
REPORT_PSIZE = 8000
REPORT_LSPEED = 1_000_000
REPORT_DURATION = 10
REPORT_RUNS = 10


@dataclass
class OutputParams:
    folder_name: Optional[str]
    file_name: str
    enable_logging: bool
    plots: bool


@dataclass
class ReportParams:
    station_counts: List[int] = field(default_factory=lambda: list(REPORT_STATION_COUNTS))
    rates: List[float] = field(default_factory=lambda: list(REPORT_RATES))


@dataclass
class SimulationParams:
    station_count: int = DEFAULT_STATION_COUNT
    rate: float = DEFAULT_RATE
    duration: float = DEFAULT_DURATION
    config: Config = field(default_factory=Config)
    generator_type: GeneratorType = GeneratorType.MARKOV
    scenario_runs: int = 1
    seed: Optional[int] = None
    output_params: Optional[OutputParams] = None
    report_params: Optional[ReportParams] = None


def split_param_list(value, cast=int):
    # "4;6;8" in scenario files, plain JSON lists are accepted too
    if isinstance(value, (list, tuple)):
        return [cast(v) for v in value]
    if isinstance(value, str):
        return [cast(v) for v in value.split(';') if v.strip() != '']
    return [cast(value)]


def get_scenario_directly_from_json(json_path) -> SimulationParams:
    with open(json_path) as f:
        j = json.load(f)
    return build_simulation_params_obj(j)


def build_simulation_params_obj(j: dict) -> SimulationParams:
    config = Config(
        psize=int(j.get("PACKET_SIZE", DEFAULT_PSIZE)),
        lspeed=int(j.get("LAN_SPEED", DEFAULT_LSPEED)),
        resolution=float(j.get("RESOLUTION", DEFAULT_RESOLUTION)),
        persistence=bool(j.get("PERSISTENCE", DEFAULT_PERSISTENCE)),
        queue_limit=int(j["QUEUE_LIMIT"]) if j.get("QUEUE_LIMIT") is not None else None,
    )
    generator_name = j.get("GENERATOR", GeneratorType.MARKOV.name)
    if generator_name not in GeneratorType.__members__:
        raise RuntimeError(f'Not supported GeneratorType {generator_name}')
    return SimulationParams(
        station_count=int(j.get("STATION_COUNT", DEFAULT_STATION_COUNT)),
        rate=float(j.get("RATE", DEFAULT_RATE)),
        duration=float(j.get("SIMULATION_TIME", DEFAULT_DURATION)),
        config=config,
        generator_type=GeneratorType[generator_name],
        scenario_runs=int(j.get("SCENARIO_RUNS", 1)),
        seed=int(j["SEED"]) if j.get("SEED") is not None else None,
        output_params=build_output_params_obj(j.get("OUTPUT_PARAMS")),
        report_params=build_report_params_obj(j["REPORT"]) if "REPORT" in j else None,
    )


def build_output_params_obj(output_params_json) -> Optional[OutputParams]:
    if output_params_json is None:
        return None
    folder_name = output_params_json.get("folder_name")
    file_name = output_params_json.get("file_name", "csmacd")
    enable_logging = output_params_json["enable_logging"] if "enable_logging" in output_params_json else True
    plots = output_params_json["plots"] if "plots" in output_params_json else True
    return OutputParams(folder_name, file_name, enable_logging, plots)


def build_report_params_obj(report_json) -> ReportParams:
    if not report_json:
        return ReportParams()
    report_params = ReportParams()
    if "station_counts" in report_json:
        report_params.station_counts = split_param_list(report_json["station_counts"])
    if "rates" in report_json:
        report_params.rates = split_param_list(report_json["rates"], cast=float)
    return report_params


def get_report_simulation_params(persistence=DEFAULT_PERSISTENCE, seed=None) -> SimulationParams:
    config = Config(psize=REPORT_PSIZE, lspeed=REPORT_LSPEED, persistence=persistence)
    return SimulationParams(duration=REPORT_DURATION, config=config, scenario_runs=REPORT_RUNS, seed=seed,
                            report_params=ReportParams())
