import enum
import typing as t

from sqlalchemy.engine import Dialect
from sqlalchemy.sql.type_api import TypeDecorator
from sqlalchemy.types import Enum, String

from gradeflow.model.id import KeyLength, ShortUUIDKey


class ShortUUIDKeyType(TypeDecorator[ShortUUIDKey]):
    impl = String
    cache_ok = True

    def __init__(self, key_type: type[ShortUUIDKey]):
        self.key_type = key_type
        super().__init__(KeyLength)

    def process_bind_param(self, value: ShortUUIDKey | str | None, dialect: Dialect) -> str | None:
        if value is None:
            return value
        if not isinstance(value, ShortUUIDKey):
            value = self.key_type(value)
        return value.key

    def process_result_value(self, value: str | None, dialect: Dialect) -> ShortUUIDKey | None:
        if value is not None:
            return self.key_type(key=value)
        return value


class ValueEnumType(Enum):
    """Persist enum members by value rather than by name, as a plain VARCHAR"""

    def __init__(self, enum_class: type[enum.Enum], **kwargs: t.Any):
        kwargs.setdefault("native_enum", False)
        kwargs.setdefault("validate_strings", True)
        kwargs.setdefault("length", 16)
        kwargs["values_callable"] = self._values
        super().__init__(enum_class, **kwargs)

    @staticmethod
    def _values(en: type[enum.Enum]) -> list[str]:
        return [e.value for e in en]
