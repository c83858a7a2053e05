import contextlib
from collections import namedtuple
from unittest import mock

import pytest
from fc.cpuprofiler.processes import ProcessLister, ProcessSample

# field layout of psutil.cpu_times() on Linux
scputimes = namedtuple(
    "scputimes",
    [
        "user",
        "nice",
        "system",
        "idle",
        "iowait",
        "irq",
        "softirq",
        "steal",
        "guest",
        "guest_nice",
    ],
)


@pytest.fixture
def cpu_times():
    def _cpu_times(**kw):
        values = dict.fromkeys(scputimes._fields, 0.0)
        values.update(kw)
        return scputimes(**values)

    return _cpu_times


class FakeLister(ProcessLister):
    """Hands out a fixed list of samples and records priming."""

    def __init__(self, samples=(), error=None):
        self.samples = list(samples)
        self.error = error
        self.primed = False

    def prime(self):
        self.primed = True

    def processes(self):
        if self.error:
            raise self.error
        return iter(self.samples)


@pytest.fixture
def fake_lister():
    return FakeLister(
        [
            ProcessSample(1, 0.0, "systemd"),
            ProcessSample(4242, 55.1, "postgres"),
            ProcessSample(815, 12.5, "nginx: worker process"),
        ]
    )


@pytest.fixture
def fake_process():
    def _fake_process(pid, cpu_percent=0.0, name="proc", error=None):
        proc = mock.MagicMock()
        proc.pid = pid
        proc.oneshot.return_value = contextlib.nullcontext()
        if error is not None:
            proc.cpu_percent.side_effect = error
        else:
            proc.cpu_percent.return_value = cpu_percent
        proc.name.return_value = name
        return proc

    return _fake_process


@pytest.fixture
def ps_aux_output():
    return """\
USER         PID %CPU %MEM    VSZ   RSS TTY      STAT START   TIME COMMAND
postgres    4242 55.1  3.2 215344 65432 ?        Ss   08:00   1:23 postgres: writer process
www-data     815 12.5  0.4  55620  9120 ?        S    08:00   0:10 nginx: worker process
root           1  0.0  0.1 168932 11840 ?        Ss   08:00   0:02 /sbin/init splash
broken line
root          xx  1.0  0.1 168932 11840 ?        Ss   08:00   0:02 /bin/not-a-pid
root          77 n/a  0.1 168932 11840 ?        Ss   08:00   0:02 /bin/not-a-cpu

"""


@pytest.fixture
def tasklist_output():
    return """\
"Image Name","PID","Session Name","Session#","Mem Usage","Status","User Name","CPU Time","Window Title"
"System Idle Process","0","Services","0","8 K","Unknown","NT AUTHORITY\\SYSTEM","5:12:03","N/A"
"chrome.exe","7312","Console","1","215,432 K","Running","HOST\\user","0:04:10","New Tab - Google Chrome"
"svchost.exe","1044","Services","0","12,804 K","Unknown","N/A","0:00:07","N/A"
"truncated.exe","99","Console"
"weird.exe","abc","Console","1","1 K","Running","HOST\\user","0:00:01","N/A"
"""
