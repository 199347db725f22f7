import json
import logging
import string
import textwrap
import typing as t

import pygments
from pygments.formatters import Terminal256Formatter
from pygments.lexers.data import JsonLexer  # pyright: ignore [reportMissingTypeStubs]
from pygments.style import Style

from .json import JSONEncoder
from .style import LogStyle

ReservedKeys = frozenset(logging.makeLogRecord({}).__dict__) | {"asctime", "message", "color_message", "log_color"}


class ExtraFormatter(logging.Formatter):
    """
    Wraps a base formatter and appends any `extra={...}` attributes of the
    record as JSON, highlighted when the handler writes to a TTY
    """

    def __init__(
        self,
        base: type[logging.Formatter] | str,
        format: str | None = None,
        datefmt: str | None = None,
        indent: bool | None = None,
        pyg_style: type[Style] = LogStyle,
        style: t.Literal["%", "{", "$"] = "%",
        validate: bool = True,
        no_color: bool = False,
        *,
        defaults: t.Any = None,
        **kwargs: t.Any,
    ):
        if isinstance(base, str):
            base = _resolve(base)
        # settings dump unset options as None; only colorlog understands log_colors
        kwargs = {k: v for k, v in kwargs.items() if v is not None}
        self.base = base(format, datefmt=datefmt, style=style, validate=validate, defaults=defaults, **kwargs)
        self.pyg_style = pyg_style
        self.indent = bool(indent)
        self.no_color = no_color

    def format(self, record: logging.LogRecord) -> str:
        if "color_message" in record.__dict__:
            record.msg = record.__dict__.pop("color_message")

        msg = record.getMessage()
        if "\n" in msg:
            formatted = self.base.format(record)
            idx = formatted.find(msg)
            indent = " " * len([c for c in formatted[:idx] if c in string.printable])
            line, *lines = msg.splitlines()
            body = textwrap.indent("\n".join(lines), prefix=indent)
            record.msg = record.message = f"{line}\n{body}"
            record.args = None
        message = self.base.format(record)

        d = record.__dict__
        extra = {k: d[k] for k in d.keys() - ReservedKeys}
        if not extra:
            return message

        js = json.dumps(extra, sort_keys=True, indent=(4 if self.indent else None), cls=JSONEncoder)
        if self.no_color or not _isatty(record):
            return f"{message} {js}"

        hl = pygments.highlight  # pyright: ignore [reportUnknownMemberType, reportUnknownVariableType]
        ps = hl(js, JsonLexer(), Terminal256Formatter[str](style=self.pyg_style), None)
        return f"{message} {ps.strip()}"

    def __getattr__(self, name: str) -> t.Any:
        return getattr(self.base, name)


def _resolve(dotted: str) -> type[logging.Formatter]:
    import importlib

    mod, _, name = dotted.rpartition(".")
    return getattr(importlib.import_module(mod), name)


def _isatty(record: logging.LogRecord) -> bool:
    # the formatter does not know its handler; look at the root handlers' streams
    for handler in logging.getLogger(record.name).handlers or logging.root.handlers:
        stream = getattr(handler, "stream", None)
        if stream is not None and getattr(stream, "isatty", lambda: False)():
            return True
    return False
