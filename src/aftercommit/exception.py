class AfterCommitError(Exception):
    ...


class ConfigurationError(AfterCommitError):
    ...
