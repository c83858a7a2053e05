#!/usr/bin/env python3
"""CPU usage check with top processes.

Samples the aggregate CPU times of all cores over a configurable interval,
compares the used share against warning and critical thresholds and lists
the processes using the most CPU during that interval.
"""

import logging
import sys

from fc.cpuprofiler import processes, sampler
from fc.cpuprofiler.config import CheckConfig, parse_args
from fc.cpuprofiler.errors import (
    AcquisitionError,
    ConfigError,
    MeasurementError,
)
from fc.cpuprofiler.status import CheckResult, SensuStatus, evaluate

_log = logging.getLogger(__name__)


def run_check(config, lister=None):
    """Run one measurement and build the check result.

    Measurement and acquisition failures result in CRITICAL.
    """
    try:
        if lister is None:
            lister = processes.select_lister(config.strategy)
        # The process lister observes the same window the sampler sleeps for.
        lister.prime()
        utilization = sampler.sample(config.interval)
        top = processes.top_processes(lister, config.top)
    except MeasurementError as e:
        return CheckResult(SensuStatus.CRITICAL, str(e))
    except AcquisitionError as e:
        return CheckResult(
            SensuStatus.CRITICAL, f"error obtaining top CPU processes: {e}"
        )

    used = utilization.used
    status = evaluate(used, config.warning, config.critical)
    return CheckResult(
        status,
        f"{used:.2f}% CPU usage",
        utilization.perfdata(),
        ["Top CPU processes:"] + [p.format() for p in top],
    )


def setup_logging(verbose):
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
    )


def main(argv=None):
    try:
        args = parse_args(argv)
        setup_logging(args.verbose)
        config = CheckConfig.from_args(args)
    except ConfigError as e:
        result = CheckResult(SensuStatus.WARNING, str(e))
    else:
        _log.debug("configuration: %s", config)
        result = run_check(config)
    print(result.format_output())
    sys.exit(result.exit_code)


if __name__ == "__main__":
    main()
