import decimal
import typing as t
from collections.abc import Mapping

KT = t.TypeVar("KT")
VT = t.TypeVar("VT")
RecursiveMapping = VT | Mapping[KT, "RecursiveMapping[KT, VT]"]

TWO_PLACES = decimal.Decimal("0.01")


def deep_update(
    d1: dict[KT, RecursiveMapping[KT, VT]], d2: Mapping[KT, RecursiveMapping[KT, VT]]
) -> dict[KT, RecursiveMapping[KT, VT]]:
    result = d1.copy()
    for k, v in d2.items():
        if isinstance(v, Mapping) and k in result and isinstance(result[k], Mapping):
            result[k] = deep_update(result[k], v)  # type: ignore
        else:
            result[k] = v
    return result


def to_decimal(value: decimal.Decimal | float | int | str) -> decimal.Decimal:
    """Coerce a numeric value into a Decimal without float artifacts"""
    if isinstance(value, decimal.Decimal):
        return value
    return decimal.Decimal(str(value))


def round_score(value: decimal.Decimal | float | int | str) -> decimal.Decimal:
    """Round to two decimal places, half away from zero"""
    return to_decimal(value).quantize(TWO_PLACES, rounding=decimal.ROUND_HALF_UP)
