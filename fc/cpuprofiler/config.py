"""Command line options and the immutable check configuration."""

import argparse
import math
from dataclasses import dataclass

from fc.cpuprofiler.errors import ConfigError

STRATEGIES = ["psutil", "command"]


@dataclass(frozen=True)
class CheckConfig:
    critical: float = 90.0
    warning: float = 75.0
    interval: int = 2
    top: int = 10
    strategy: str = "psutil"

    @classmethod
    def from_args(cls, args):
        config = cls(
            critical=args.critical,
            warning=args.warning,
            interval=args.sample_interval,
            top=args.top,
            strategy=args.strategy,
        )
        config.validate()
        return config

    def validate(self):
        for flag, value in [
            ("--critical", self.critical),
            ("--warning", self.warning),
        ]:
            if not math.isfinite(value):
                raise ConfigError(f"{flag} must be a finite number")
        if self.critical <= 0:
            raise ConfigError("--critical is required")
        if self.warning <= 0:
            raise ConfigError("--warning is required")
        if self.warning > self.critical:
            raise ConfigError("--warning cannot be greater than --critical")
        if self.interval <= 0:
            raise ConfigError("--sample-interval is required")
        if self.top <= 0:
            raise ConfigError("--top must be a positive number")
        if self.strategy not in STRATEGIES:
            raise ConfigError(f"unknown strategy: {self.strategy}")


class ArgumentParser(argparse.ArgumentParser):
    """Reports invalid options as `ConfigError` instead of exiting."""

    def error(self, message):
        raise ConfigError(message)


def parse_args(argv=None):
    p = ArgumentParser(
        description="Check CPU usage and list the top CPU-consuming processes"
    )
    p.add_argument(
        "-c",
        "--critical",
        type=float,
        default=90.0,
        help="critical threshold for overall CPU usage in percent "
        "(default: %(default)s)",
    )
    p.add_argument(
        "-w",
        "--warning",
        type=float,
        default=75.0,
        help="warning threshold for overall CPU usage in percent "
        "(default: %(default)s)",
    )
    p.add_argument(
        "-s",
        "--sample-interval",
        type=int,
        default=2,
        metavar="SECONDS",
        help="length of the sample interval (default: %(default)s)",
    )
    p.add_argument(
        "-n",
        "--top",
        type=int,
        default=10,
        help="number of processes to list (default: %(default)s)",
    )
    p.add_argument(
        "--strategy",
        choices=STRATEGIES,
        default="psutil",
        help="query processes directly or parse ps/tasklist output "
        "(default: %(default)s)",
    )
    p.add_argument(
        "-v",
        "--verbose",
        default=0,
        action="count",
        help="increase logging verbosity on stderr (use up to 2 times)",
    )
    return p.parse_args(argv)
