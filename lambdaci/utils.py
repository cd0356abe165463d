import datetime
import json
import logging
import subprocess
import uuid
from typing import Any, List, Optional

import click

NOISY_LOGGERS = ["urllib3", "boto3", "botocore", "s3transfer"]


class JSONSerializer(json.JSONEncoder):
    """
    JSON encoder for objects exposing a `serialize()` method.

    Falls back to `vars()` and finally `str()` for anything else.
    """

    def default(self, o: Any) -> Any:
        if hasattr(o, "serialize"):
            return o.serialize()
        try:
            return vars(o)
        except TypeError:
            return str(o)


def serialize(obj: Any) -> str:
    """
    Serialize an object to pretty-printed JSON.

    :param obj: object, list of objects or plain data.
    :return: JSON string with sorted keys and indent 2.
    """
    if hasattr(obj, "serialize"):
        return json.dumps(obj.serialize(), sort_keys=True, indent=2)
    return json.dumps(obj, cls=JSONSerializer, sort_keys=True, indent=2)


def execute(cmd: List[str], cwd: Optional[str] = None) -> str:
    """
    Run a command without a shell and capture its combined output.

    :param cmd: command and its arguments.
    :param cwd: optional working directory.
    :return: decoded stdout and stderr of the command.
    :raises RuntimeError: if the command returns a non-zero exit code.
    :raises OSError: if the command cannot be started.
    """
    ret = subprocess.run(cmd, cwd=cwd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
    output = ret.stdout.decode("utf-8", errors="replace")
    if ret.returncode != 0:
        raise RuntimeError(
            f"Running command '{' '.join(cmd)}' failed with exit code {ret.returncode}!\n"
            f"Output: {output}"
        )
    return output


def global_logging(verbose: bool = False):
    logging_format = "%(asctime)s,%(msecs)d %(levelname)s %(name)s: %(message)s"
    logging_date_format = "%H:%M:%S"
    logging.basicConfig(
        format=logging_format,
        datefmt=logging_date_format,
        level=logging.DEBUG if verbose else logging.INFO,
    )


def configure_logging():
    """
    Silence the AWS SDK and HTTP libraries; their INFO output drowns the
    per-function progress messages.
    """
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.ERROR)


class ColoredWrapper:
    """
    Console front end of a component logger.

    Every message is printed through `click.echo` with a timestamp, the
    component name and a color matching its severity. When `propagate` is
    set, the message is also passed to the underlying logger, which carries
    the log file handler of the run.
    """

    SUCCESS = "\033[92m"
    STATUS = "\033[94m"
    WARNING = "\033[93m"
    ERROR = "\033[91m"
    BOLD = "\033[1m"
    END = "\033[0m"

    def __init__(
        self, prefix: str, logger: logging.Logger, verbose: bool = True, propagate: bool = False
    ):
        """
        :param prefix: component name printed before each message.
        :param logger: logger receiving propagated messages.
        :param verbose: print DEBUG messages to the console.
        :param propagate: forward messages to `logger`.
        """
        self.verbose = verbose
        self.propagate = propagate
        self.prefix = prefix
        self._logging = logger

    def debug(self, message: str):
        self._emit(logging.DEBUG, ColoredWrapper.STATUS, message, console=self.verbose)

    def info(self, message: str):
        self._emit(logging.INFO, ColoredWrapper.SUCCESS, message)

    def warning(self, message: str):
        self._emit(logging.WARNING, ColoredWrapper.WARNING, message)

    def error(self, message: str):
        self._emit(logging.ERROR, ColoredWrapper.ERROR, message)

    def _emit(self, level: int, color: str, message: str, console: bool = True):
        if console:
            timestamp = datetime.datetime.now().strftime("%H:%M:%S.%f")[:-3]
            click.echo(
                f"{color}{ColoredWrapper.BOLD}[{timestamp}]{ColoredWrapper.END} "
                f"{ColoredWrapper.BOLD}{self.prefix}{ColoredWrapper.END} {message}"
            )
        if self.propagate:
            self._logging.log(level, message)


class LoggingHandlers:
    """
    Logging settings shared by every component of a run.

    Attributes:
        verbosity: print DEBUG messages to the console, and write them to the log file.
        handler: optional file handler receiving every propagated message.
    """

    def __init__(self, verbose: bool = False, filename: Optional[str] = None):
        """
        :param verbose: enable DEBUG output.
        :param filename: log file, truncated on open; console only when None.
        """
        self.verbosity = verbose
        self.handler: Optional[logging.FileHandler] = None

        if filename:
            formatter = logging.Formatter(
                "%(asctime)s,%(msecs)d %(levelname)s %(name)s: %(message)s", "%H:%M:%S"
            )
            file_out = logging.FileHandler(filename=filename, mode="w")
            file_out.setFormatter(formatter)
            file_out.setLevel(logging.DEBUG if verbose else logging.INFO)
            self.handler = file_out


class LoggingBase:
    """
    Base class giving each component its own named logger.

    The name is the class `typename()` followed by a short random suffix, so
    that messages from two functions processed in the same run can be told
    apart in the log file. Console output goes through `logging`, a
    `ColoredWrapper`; assigning `logging_handlers` attaches the run's file
    handler and verbosity.
    """

    def __init__(self):
        uuid_prefix = str(uuid.uuid4())[0:4]
        class_name = getattr(self, "typename", lambda: self.__class__.__name__)()
        self.log_name = f"{class_name}-{uuid_prefix}"

        self._logging = logging.getLogger(self.log_name)
        self._logging.setLevel(logging.DEBUG)
        self.wrapper = ColoredWrapper(self.log_name, self._logging)
        self._logging_handlers: Optional[LoggingHandlers] = None

    @property
    def logging(self) -> ColoredWrapper:
        return self.wrapper

    @property
    def logging_handlers(self) -> Optional[LoggingHandlers]:
        return self._logging_handlers

    @logging_handlers.setter
    def logging_handlers(self, handlers: LoggingHandlers):
        previous = self._logging_handlers
        if previous and previous.handler and previous.handler != handlers.handler:
            self._logging.removeHandler(previous.handler)

        self._logging_handlers = handlers
        self.wrapper = ColoredWrapper(
            self.log_name,
            self._logging,
            verbose=handlers.verbosity,
            propagate=handlers.handler is not None,
        )
        if handlers.handler:
            self._logging.addHandler(handlers.handler)
        # console output goes through the wrapper, never the root logger
        self._logging.propagate = False
