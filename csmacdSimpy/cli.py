import argparse
import sys

from csmacdSimpy.CsmaCd import Config
from csmacdSimpy.directory_manager_util import get_scenario_paths
from csmacdSimpy.scenario_creator_helper import (
    DEFAULT_DURATION,
    DEFAULT_LSPEED,
    DEFAULT_PERSISTENCE,
    DEFAULT_PSIZE,
    DEFAULT_RATE,
    DEFAULT_RESOLUTION,
    DEFAULT_STATION_COUNT,
    SimulationParams,
    get_report_simulation_params,
)
from csmacdSimpy.simulation_runner import run_report, run_scenario, run_test


class SimulationArgumentParser(argparse.ArgumentParser):
    # argparse exits with 2 on bad usage, the simulator reports 1
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: illegal usage -- {message}\n")


def non_negative_int(value):
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"{value} is negative")
    return number


def construct_parser(prog=None):
    parser = SimulationArgumentParser(prog=prog, description="Discrete-time CSMA/CD LAN simulator")
    parser.add_argument("--rate", type=non_negative_int, default=DEFAULT_RATE, metavar="NUM",
                        help=f"Average number of generated packets/s per station (def: {DEFAULT_RATE})")
    parser.add_argument("--psize", type=non_negative_int, default=DEFAULT_PSIZE, metavar="NUM",
                        help=f"Packet size; bits (def: {DEFAULT_PSIZE})")
    parser.add_argument("--lspeed", type=non_negative_int, default=DEFAULT_LSPEED, metavar="NUM",
                        help=f"LAN speed in terms of bits read from/written to the medium; bits/s "
                             f"(def: {DEFAULT_LSPEED})")
    parser.add_argument("--duration", type=non_negative_int, default=DEFAULT_DURATION, metavar="NUM",
                        help=f"Duration of simulation; seconds (def: {DEFAULT_DURATION})")
    parser.add_argument("--ncount", type=non_negative_int, default=DEFAULT_STATION_COUNT, metavar="NUM",
                        help=f"Number of stations connected to the LAN (def: {DEFAULT_STATION_COUNT})")
    parser.add_argument("--persistence", action="store_true", default=DEFAULT_PERSISTENCE,
                        help=f"Simulate 1-persistent CSMA/CD protocol (def: {DEFAULT_PERSISTENCE})")
    parser.add_argument("--seed", type=int, default=None, metavar="NUM",
                        help="Seed for the random number generator")
    parser.add_argument("--report", action="store_true",
                        help="Sweep station counts and arrival rates, print CSV rows A, N, Throughput, Delay")
    parser.add_argument("--scenario", default=None, metavar="PATH",
                        help="Run a JSON scenario file, or every scenario in a directory")
    return parser


def parse_params(args) -> SimulationParams:
    config = Config(psize=args.psize, lspeed=args.lspeed, resolution=DEFAULT_RESOLUTION,
                    persistence=args.persistence)
    return SimulationParams(station_count=args.ncount, rate=args.rate, duration=args.duration, config=config,
                            seed=args.seed)


def validate_params(parser, params: SimulationParams):
    if params.station_count == 0:
        parser.error("--ncount must be at least 1")
    if params.rate == 0:
        parser.error("--rate must be at least 1")
    if params.config.psize == 0 or params.config.lspeed == 0:
        parser.error("--psize and --lspeed must be at least 1")


def main(argv=None):
    parser = construct_parser()
    args = parser.parse_args(argv)

    if args.scenario is not None:
        for scenario_path in get_scenario_paths(args.scenario):
            run_test(scenario_path)
        return 0

    if args.report:
        run_report(get_report_simulation_params(persistence=args.persistence, seed=args.seed))
        return 0

    params = parse_params(args)
    validate_params(parser, params)
    run_scenario(params)
    return 0


if __name__ == "__main__":
    sys.exit(main())
