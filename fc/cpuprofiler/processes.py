"""Find the processes using the most CPU.

Processes are listed through a `ProcessLister`. The psutil lister asks the
kernel for per-process CPU times directly. The command listers run the
platform's process listing tool and parse its output, which is less
accurate (ps reports the average since process start) but needs nothing
besides the tool itself.
"""

import csv
import logging
import subprocess
import sys
import time
from dataclasses import dataclass
from operator import attrgetter

import psutil

from fc.cpuprofiler.errors import AcquisitionError

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessSample:
    pid: int
    cpu_percent: float
    name: str

    def format(self):
        return f"PID {self.pid} ({self.name}): {self.cpu_percent:.2f}%"


class ProcessLister:
    def prime(self):
        """Start observing processes. Listers which need to see CPU times at
        two points in time take the first reading here."""

    def processes(self):
        raise NotImplementedError


class PsutilProcessLister(ProcessLister):
    """Per-process CPU usage from psutil.

    `cpu_percent(None)` compares against the CPU times seen in the previous
    call on the same `Process` object. `process_iter()` hands out cached
    `Process` objects, so priming before the CPU sampler sleeps yields the
    usage over the whole sample interval.
    """

    def __init__(self, interval=0.1):
        self.interval = interval
        self.primed = False

    def prime(self):
        try:
            for proc in psutil.process_iter():
                try:
                    proc.cpu_percent(None)
                except (psutil.NoSuchProcess, psutil.AccessDenied):
                    continue
        except (OSError, psutil.Error) as e:
            raise AcquisitionError(f"error listing processes: {e}") from e
        self.primed = True

    def processes(self):
        if not self.primed:
            self.prime()
            time.sleep(self.interval)
        for proc in psutil.process_iter():
            try:
                with proc.oneshot():
                    cpu_percent = proc.cpu_percent(None)
                    name = proc.name()
            except psutil.NoSuchProcess:
                # Also covers ZombieProcess.
                _log.debug("process %d vanished, skipping", proc.pid)
                continue
            except psutil.AccessDenied:
                _log.debug("access to process %d denied, skipping", proc.pid)
                continue
            yield ProcessSample(proc.pid, cpu_percent, name)


class CommandProcessLister(ProcessLister):
    command = []

    def run(self):
        _log.info('running "%s"', " ".join(self.command))
        try:
            result = subprocess.run(
                self.command, capture_output=True, check=True, text=True
            )
        except subprocess.CalledProcessError as e:
            raise AcquisitionError(
                f"error executing command: {e} {e.stderr or ''}".strip()
            ) from e
        except OSError as e:
            raise AcquisitionError(
                f"cannot run {self.command[0]}: {e}"
            ) from e
        return result.stdout

    def parse(self, output):
        raise NotImplementedError

    def processes(self):
        return self.parse(self.run())


class PsProcessLister(CommandProcessLister):
    """`ps aux` on Linux and macOS.

    Columns: USER PID %CPU %MEM VSZ RSS TTY STAT START TIME COMMAND. The
    command may contain spaces and is taken as the rest of the line.
    """

    def __init__(self, platform="linux"):
        if platform == "darwin":
            # BSD ps has no --sort, -r sorts by CPU.
            self.command = ["ps", "aux", "-r"]
        else:
            self.command = ["ps", "aux", "--sort=-pcpu"]

    def parse(self, output):
        samples = []
        for line in output.splitlines()[1:]:
            fields = line.split(None, 10)
            if len(fields) < 11:
                _log.debug("ignoring line: %s", line.strip())
                continue
            try:
                pid = int(fields[1])
                cpu_percent = float(fields[2])
            except ValueError:
                _log.debug("ignoring line: %s", line.strip())
                continue
            if cpu_percent < 0:
                continue
            samples.append(ProcessSample(pid, cpu_percent, fields[10].strip()))
        return samples


def parse_tasklist_cpu(value):
    """Convert tasklist's CPU column to a number.

    Memory-like values carry a " K" suffix. CPU time is given as H:MM:SS
    and converted to seconds.
    """
    value = value.strip().strip('"').strip()
    if value.endswith(" K"):
        value = value[: -len(" K")]
    if ":" in value:
        hours, minutes, seconds = value.split(":")
        return int(hours) * 3600 + int(minutes) * 60 + int(seconds)
    return float(value.replace(",", ""))


class TasklistProcessLister(CommandProcessLister):
    """`tasklist /v /fo csv /nh` on Windows.

    Columns: Image Name, PID, Session Name, Session#, Mem Usage, Status,
    User Name, CPU Time, Window Title.

    tasklist only reports the cumulative CPU time of each process, in whole
    seconds. The usage is derived from two listings: one taken in `prime()`
    and one in `processes()`. Like ps and psutil, 100% means one fully used
    CPU. The System Idle Process (PID 0) is not a real process and is left
    out.
    """

    command = ["tasklist", "/v", "/fo", "csv", "/nh"]

    def __init__(self, interval=1.0, clock=time.monotonic):
        self.interval = interval
        self.clock = clock
        self.baseline = None
        self.started = None

    def parse(self, output):
        """Return `(pid, name, cpu_seconds)` for each valid row."""
        rows = []
        for row in csv.reader(output.splitlines()):
            if len(row) < 8:
                _log.debug("ignoring row: %s", row)
                continue
            try:
                pid = int(row[1].strip())
                cpu_seconds = parse_tasklist_cpu(row[7])
            except ValueError:
                _log.debug("ignoring row: %s", row)
                continue
            if pid == 0:
                continue
            rows.append((pid, row[0].strip(), float(cpu_seconds)))
        return rows

    def prime(self):
        rows = self.parse(self.run())
        self.started = self.clock()
        self.baseline = {pid: cpu_seconds for pid, _, cpu_seconds in rows}

    def processes(self):
        if self.baseline is None:
            self.prime()
            time.sleep(self.interval)
        rows = self.parse(self.run())
        elapsed = self.clock() - self.started
        if elapsed <= 0:
            raise AcquisitionError("no time elapsed between process listings")
        samples = []
        for pid, name, cpu_seconds in rows:
            # Processes started during the window used all their CPU time
            # in it. A smaller value than before means the PID was reused.
            delta = cpu_seconds - self.baseline.get(pid, 0.0)
            if delta < 0:
                delta = cpu_seconds
            samples.append(ProcessSample(pid, delta / elapsed * 100, name))
        return samples


def select_lister(strategy="psutil", platform=None):
    if platform is None:
        platform = sys.platform
    if strategy == "psutil":
        return PsutilProcessLister()
    if strategy != "command":
        raise AcquisitionError(f"unknown strategy: {strategy}")
    if platform.startswith("linux") or platform == "darwin":
        return PsProcessLister(platform)
    if platform == "win32":
        return TasklistProcessLister()
    raise AcquisitionError(f"unsupported operating system: {platform}")


def rank(samples, limit=10):
    """Sort by CPU usage, highest first, and keep at most `limit` entries.

    Samples with equal usage stay in the order they were listed.
    """
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")
    return sorted(samples, key=attrgetter("cpu_percent"), reverse=True)[:limit]


def top_processes(lister, limit=10):
    try:
        samples = list(lister.processes())
    except (OSError, psutil.Error) as e:
        raise AcquisitionError(f"error listing processes: {e}") from e
    ranked = rank(samples, limit)
    _log.info("%d processes seen, reporting %d", len(samples), len(ranked))
    return ranked
