import functools
import getpass
import os
import typing as t
from pathlib import Path

import pydantic as p
import yaml
from ansible.parsing.vault import VaultLib, VaultSecret
from pydantic_settings import PydanticBaseSettingsSource
from pydantic_settings import SettingsError

import gradeflow.lib.util as util
from gradeflow.model import DeploymentEnvironment

VaultKeyVariable: t.Final[str] = "GRADEFLOW_VAULT_KEY"
SkipKeys: t.Final[frozenset[str]] = frozenset({"env", "root", "override"})


class CurrentState(t.TypedDict, total=False):
    root: t.Required[p.AnyUrl]
    env: t.Required[DeploymentEnvironment]


class SettingsCurrentState(CurrentState, total=False):
    override: t.Required[tuple[str, ...]]


def env_load_paths(root: p.AnyUrl, env: DeploymentEnvironment) -> list[Path]:
    """The config root, followed by `env.d/<env>/` for anything but local"""
    assert root.scheme == "file" and root.path is not None, "root is not a legible location of YAML files"
    paths = [Path(root.path)]
    if env is not DeploymentEnvironment.Local:
        paths.append(Path(root.path) / "env.d" / env.value)
    return paths


class SettingsSource(PydanticBaseSettingsSource):
    def __call__(self) -> dict[str, t.Any]:
        # init kwargs are expected to carry the config root and env
        data: dict[str, t.Any] = {}

        for field_name, field in self.settings_cls.model_fields.items():
            try:
                field_value, field_key, value_is_complex = self.get_field_value(field, field_name)
                field_value = self.prepare_field_value(field_name, field, field_value, value_is_complex)
            except KeyError:
                continue
            except ValueError as e:
                raise SettingsError(f"error parsing value for field {field_name!r} from source {self!r}") from e

            if field_value is not None:
                data[field_key] = field_value
        return data

    def prepare_field_value(
        self, field_name: str, field: p.fields.FieldInfo, value: t.Any, value_is_complex: bool
    ) -> t.Any:
        return value


class OverrideSettingsSource(SettingsSource):
    """`-o storage.persistent.database.name=foo` style overrides; values are parsed as YAML"""

    @functools.cached_property
    def parsed_options(self) -> dict[str, t.Any]:
        current_state = t.cast(SettingsCurrentState, self.current_state)
        od: dict[str, t.Any] = {}
        for o in current_state["override"]:
            k, v = [s.strip() for s in o.split("=", 1)]
            *path, key = k.split(".")
            target = od
            for part in path:
                target = target.setdefault(part, {})
            target[key] = yaml.safe_load(v)
        return od

    def get_field_value(self, field: p.fields.FieldInfo, field_name: str) -> tuple[t.Any, str, bool]:
        if field_name in SkipKeys or field_name not in self.parsed_options:
            raise KeyError(field_name)
        val = self.parsed_options[field_name]
        return val, field_name, isinstance(val, dict)


class YAMLCascadingSettingsSource(SettingsSource):
    """
    Each top-level field is read from `<field>.yaml`; a file under
    `env.d/<env>/` is deep-merged over the one at the config root
    """

    @functools.cached_property
    def load_paths(self) -> list[Path]:
        current_state = t.cast(SettingsCurrentState, self.current_state)
        return env_load_paths(current_state["root"], current_state["env"])

    def get_field_value(self, field: p.fields.FieldInfo, field_name: str) -> tuple[t.Any, str, bool]:
        yamls: list[str] = []
        for path in self.load_paths:
            fn = path / f"{field_name}.yaml"
            if fn.exists():
                yamls.append(fn.read_text(encoding="utf8"))
        if not yamls:
            raise KeyError(field_name)
        return yamls, field_name, True

    def prepare_field_value(
        self, field_name: str, field: p.fields.FieldInfo, value: t.Any, value_is_complex: bool
    ) -> t.Any:
        if not value_is_complex:
            return value
        if not isinstance(value, list):
            raise ValueError(field_name)

        merged: dict[t.Any, t.Any] = {}
        for text in t.cast(list[str], value):
            loaded = yaml.safe_load(text)
            if loaded is None:
                continue
            if not isinstance(loaded, dict):
                return loaded
            merged = util.deep_update(merged, t.cast(dict[t.Any, t.Any], loaded))
        return merged


class AnsibleVaultSecretsSource(SettingsSource):
    """
    Secrets come from an ansible-vault encrypted `secrets.vault.yaml` in the
    environment's config directory. The vault key is read from the
    environment, or prompted for when a terminal is attached.
    """

    @functools.cached_property
    def load_path(self) -> Path:
        current_state = t.cast(CurrentState, self.current_state)
        return env_load_paths(current_state["root"], current_state["env"])[-1]

    @functools.cached_property
    def secrets(self) -> dict[str, t.Any]:
        current_state = t.cast(CurrentState, self.current_state)
        vp = self.load_path / "secrets.vault.yaml"
        if not vp.exists():
            return {}

        key = os.environ.get(VaultKeyVariable)
        if not key:
            key = getpass.getpass(f"provide vault key ({current_state['env'].value}:{vp.name}): ")

        # None is the vault-id; specify one here if vault IDs are ever used
        vault = VaultLib(secrets=[(None, VaultSecret(key.encode()))])
        with vp.open() as f:
            content = vault.decrypt(f.read())
        return yaml.safe_load(content) or {}

    def get_field_value(self, field: p.fields.FieldInfo, field_name: str) -> tuple[t.Any, str, bool]:
        # check skip keys first: computing load_path needs current_state["root"]
        if field_name in SkipKeys or field_name not in self.secrets:
            raise KeyError(field_name)
        val = self.secrets[field_name]
        return val, field_name, isinstance(val, dict)
