# Sensu check status codes and output.
from dataclasses import dataclass, field
from enum import IntEnum


class SensuStatus(IntEnum):
    OK = 0
    WARNING = 1
    CRITICAL = 2


def evaluate(used_percent, warning, critical):
    """Map the used CPU percentage onto a status.

    Thresholds are exclusive: a value exactly at the threshold is not
    considered to exceed it.
    """
    if used_percent > critical:
        return SensuStatus.CRITICAL
    if used_percent > warning:
        return SensuStatus.WARNING
    return SensuStatus.OK


@dataclass
class CheckResult:
    status: SensuStatus = SensuStatus.OK
    summary: str = ""
    perfdata: list[str] = field(default_factory=list)
    details: list[str] = field(default_factory=list)

    def format_output(self) -> str:
        line = f"{self.status.name}: {self.summary}"
        if self.perfdata:
            line += " | " + " ".join(self.perfdata)
        return "\n".join([line] + self.details)

    @property
    def exit_code(self) -> int:
        return int(self.status)
