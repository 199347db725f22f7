from __future__ import annotations

import datetime
import decimal
import enum
import functools
import json as pyjson
import typing as t

import fastapi
import pydantic as p
import starlette.background

JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]


# encoders
def encode_set(obj: set[t.Any] | frozenset[t.Any]) -> list[t.Any]:
    return sorted(obj)


def encode_datetime(obj: datetime.datetime | datetime.date) -> str:
    return obj.isoformat()


def encode_decimal(obj: decimal.Decimal) -> float:
    # scores are Numeric(5, 2), which a double represents exactly enough for clients
    return float(obj)


def encode_enum(obj: enum.Enum) -> JSONValue:
    return obj.value


def encode_pydantic(obj: p.BaseModel) -> dict[str, JSONValue]:
    return obj.model_dump(mode="json")


def encode_timedelta(obj: datetime.timedelta) -> float:
    return obj.total_seconds()


@functools.cache
def _encoder_map() -> dict[type, t.Callable[[t.Any], JSONValue]]:
    return {
        datetime.date: encode_datetime,
        datetime.datetime: encode_datetime,
        datetime.timedelta: encode_timedelta,
        decimal.Decimal: encode_decimal,
        enum.Enum: encode_enum,
        frozenset: encode_set,
        set: encode_set,
    }


# stdlib-compatible JSON encoder
class JSONEncoder(pyjson.JSONEncoder):
    def get_encoders(self) -> dict[type, t.Callable[[t.Any], JSONValue]]:
        return _encoder_map()

    def default(self, o: t.Any) -> JSONValue:
        if isinstance(o, p.BaseModel):
            return encode_pydantic(o)

        encoders = self.get_encoders()
        for tp, encoder in encoders.items():
            if isinstance(o, tp):
                return encoder(o)

        return pyjson.JSONEncoder.default(self, o)


def dumps(obj: t.Any, *, cls: type[pyjson.JSONEncoder] = JSONEncoder, **kw: t.Any) -> str:
    return pyjson.dumps(obj, cls=cls, **kw)


def loads(s: str | bytes | bytearray, **kw: t.Any) -> t.Any:
    """implemented for parity's sake"""
    return pyjson.loads(s, **kw)


# FastAPI compatibility
class FastAPIJSONResponse(fastapi.responses.JSONResponse):
    def __init__(
        self,
        content: t.Any,
        status_code: int = 200,
        headers: t.Mapping[str, str] | None = None,
        media_type: str | None = None,
        background: starlette.background.BackgroundTask | None = None,
    ):
        super().__init__(
            jsonable_encoder(content),
            status_code=status_code,
            headers=headers,
            media_type=media_type,
            background=background,
        )

    def render(self, content: t.Any) -> bytes:
        return pyjson.dumps(
            content, ensure_ascii=False, cls=JSONEncoder, allow_nan=False, indent=None, separators=(",", ":")
        ).encode("utf-8")


def jsonable_encoder(obj: t.Any) -> JSONValue:
    import fastapi.encoders

    if isinstance(obj, p.BaseModel):
        return jsonable_encoder(encode_pydantic(obj))
    return fastapi.encoders.jsonable_encoder(obj, custom_encoder=_encoder_map())
