class ProfilerError(Exception):
    pass


class ConfigError(ProfilerError):
    """Invalid thresholds or options. Reported as WARNING."""


class MeasurementError(ProfilerError):
    """CPU counters could not be read or yield no usable delta."""


class AcquisitionError(ProfilerError):
    """The process table could not be listed as a whole."""
