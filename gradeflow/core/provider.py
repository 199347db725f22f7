import datetime
import inspect
import logging.config
import typing as t

from .logging import TRACE, TraceLogLevelLogger

TimestampProvider = t.Callable[..., datetime.datetime]


def trace(msg: str, *args: t.Any, **kwargs: t.Any):
    if len(logging.root.handlers) == 0:
        logging.basicConfig()
    t.cast(TraceLogLevelLogger, logging.root).trace(msg, *args, **kwargs)


class LoggingProvider(object):
    Function: t.Final[t.Literal["fn"]] = "fn"
    Class: t.Final[t.Literal["cls"]] = "cls"
    Module: t.Final[t.Literal["mod"]] = "mod"

    def __init__(self, config: dict[str, t.Any], debug: bool):
        LoggingProvider.create_trace_loglevel()
        logging.config.dictConfig(config)
        if debug:
            self.capture_warnings(True)

    @staticmethod
    def create_trace_loglevel():
        """
        Create a log level TRACE = 5
        """
        logging.setLoggerClass(TraceLogLevelLogger)
        logging.addLevelName(TRACE, "TRACE")
        logging.TRACE = TRACE  # pyright: ignore [reportAttributeAccessIssue]
        logging.trace = trace  # pyright: ignore [reportAttributeAccessIssue]

    @classmethod
    def get_logger(
        cls, scope: t.Literal["mod", "cls", "fn"] = "mod", name: str | None = None, n_frames: int = 1
    ) -> TraceLogLevelLogger:
        """
        Get a logger named after the caller: its module, its class, or its
        function (qualified by class, when called from a method)
        """
        if name:
            return t.cast(TraceLogLevelLogger, logging.getLogger(name))

        frame = inspect.stack()[n_frames].frame
        mod = frame.f_globals["__name__"]
        owner = frame.f_locals.get("self", frame.f_locals.get("cls"))
        owner_cls = owner if isinstance(owner, type) else getattr(owner, "__class__", None)

        match scope:
            case cls.Module:
                name = mod
            case cls.Function:
                fn = frame.f_code.co_name
                name = f"{mod}.{owner_cls.__name__}.{fn}" if owner_cls is not None else f"{mod}.{fn}"
            case cls.Class:
                if owner_cls is None:
                    raise RuntimeError("could not determine class")
                name = f"{owner_cls.__module__}.{owner_cls.__name__}"

        return t.cast(TraceLogLevelLogger, logging.getLogger(name))

    @staticmethod
    def capture_warnings(capture: bool):
        logging.captureWarnings(capture)
