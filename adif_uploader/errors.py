"""Fatal error taxonomy. Each error maps to a sysexits-style process exit code."""

EX_USAGE = 64
EX_DATAERR = 65
EX_NOINPUT = 66
EX_OSERR = 71
EX_IOERR = 74


class UploaderError(Exception):
    """Base class for every error that terminates the uploader."""

    exit_code = 1


class UsageError(UploaderError):
    exit_code = EX_USAGE


class FormatError(UploaderError):
    """Bytes before a record boundary are not valid text."""

    exit_code = EX_DATAERR


class ConfigError(UploaderError):
    exit_code = EX_NOINPUT


class LogOpenError(UploaderError):
    exit_code = EX_NOINPUT


class WatchError(UploaderError):
    exit_code = EX_OSERR


class LogReadError(UploaderError):
    exit_code = EX_IOERR


class UploadError(UploaderError):
    exit_code = EX_IOERR


class LogRemovedError(UploaderError):
    """The watched log file disappeared from under us."""

    exit_code = EX_IOERR
