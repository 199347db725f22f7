import typing as t

from pydantic_settings import BaseSettings as PydanticBaseSettings

from gradeflow.model import BaseModel


class _DictInitMixin(object):
    def __init__(self, cf: dict[str, t.Any] | None = None, **kwargs: t.Any):
        # specifically allow initialization with a dict
        if cf is not None:
            kwargs = {**cf, **kwargs}
        super().__init__(**kwargs)


# NOTE: our BaseModel follows pydantic-settings in the MRO so that its
#       by_alias=True model_dump is the one that applies
class BaseSettings(_DictInitMixin, PydanticBaseSettings, BaseModel): ...  # pyright: ignore [reportIncompatibleVariableOverride]


class BaseSecrets(_DictInitMixin, PydanticBaseSettings, BaseModel): ...  # pyright: ignore [reportIncompatibleVariableOverride]
