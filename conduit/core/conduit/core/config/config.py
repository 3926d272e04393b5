import configparser
import json
import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union, get_args, get_origin

from pydantic import AnyUrl, BaseModel, SecretStr
from pydantic_settings import BaseSettings

from conduit.core.utils import expand_tilde_str


class CONDUIT_DIR_PATHS(BaseModel):
    ROOT: str
    LOGGER_DIR: str
    STRUCT_LOGGER_DIR: str


class CONDUIT_LOGGER(BaseModel):
    USE_STRUCTLOG: bool


class CONDUIT_MONGO(BaseModel):
    HOST: str
    PORT: int
    DATABASE: str
    USERNAME: str = ""
    PASSWORD: SecretStr = SecretStr("")
    AUTH_SOURCE: str = "admin"
    URI: str = ""
    CONNECT_TIMEOUT_MS: int = 10000
    SERVER_SELECTION_TIMEOUT_MS: int = 30000
    GRIDFS_BUCKET: str = "fs"


def load_ini_as_dict(ini_path: Path) -> Dict[str, Any]:
    """
    Load and parse an INI file into a nested dictionary with normalized keys.

    Sections and keys are converted to uppercase for uniform access. A leading tilde (`~`) in values is expanded to
    the user home directory. Values may reference other keys through extended interpolation (``${ROOT}/logs``).

    Args:
        ini_path (Path): Path to the `.ini` configuration file.

    Returns:
        Dict[str, Any]: A dictionary where each section is a key mapped to another
        dictionary of key-value pairs from that section. Empty if the file does not exist.

    Example:
        .. code-block:: ini

            [conduit_mongo]
            host = localhost

        .. code-block:: python

            config = load_ini_as_dict(Path("config.ini"))
            print(config["CONDUIT_MONGO"]["HOST"])
    """
    if not ini_path.exists():
        return {}

    parser = configparser.ConfigParser(interpolation=configparser.ExtendedInterpolation())
    parser.optionxform = str
    parser.read(ini_path)

    result: Dict[str, Any] = {}
    for section in parser.sections():
        result[section.upper()] = {key.upper(): expand_tilde_str(value) for key, value in parser[section].items()}
    return result


def load_ini_settings() -> Dict[str, Any]:
    return load_ini_as_dict(Path(__file__).parent / "config.ini")


class CoreSettings(BaseSettings):
    CONDUIT_DIR_PATHS: CONDUIT_DIR_PATHS
    CONDUIT_LOGGER: CONDUIT_LOGGER
    CONDUIT_MONGO: CONDUIT_MONGO

    model_config = {
        "env_nested_delimiter": "__",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        def _expand_tilde(obj):
            if isinstance(obj, str):
                return expand_tilde_str(obj)
            if isinstance(obj, dict):
                return {k: _expand_tilde(v) for k, v in obj.items()}
            if isinstance(obj, (list, tuple, set)):
                return type(obj)(_expand_tilde(v) for v in obj)
            return obj

        def env_settings_expanded():
            return _expand_tilde(env_settings())

        return (
            init_settings,
            env_settings_expanded,
            dotenv_settings,
            load_ini_settings,  # lowest precedence
            file_secret_settings,
        )


SettingsLike = Union[
    Dict[str, Any],
    List[Union[Dict[str, Any], BaseSettings, BaseModel]],
    BaseSettings,
    BaseModel,
    None,
]


def _to_dicts(settings: SettingsLike) -> List[Dict[str, Any]]:
    """Flatten any SettingsLike value into a list of plain dictionaries."""
    if settings is None:
        return []
    if isinstance(settings, (BaseSettings, BaseModel)):
        return [settings.model_dump()]
    if isinstance(settings, dict):
        return [settings]
    if isinstance(settings, list):
        dicts: List[Dict[str, Any]] = []
        for item in settings:
            dicts.extend(_to_dicts(item))
        return dicts
    return []


class _AttrView:
    """Attribute-access wrapper around a mapping, enabling ``obj.SECTION.KEY`` lookups."""

    def __init__(self, data: Dict[str, Any]):
        self._data = data

    @staticmethod
    def _wrap(value: Any) -> Any:
        if isinstance(value, dict):
            return _AttrView(value)
        if isinstance(value, list):
            return [(_AttrView(v) if isinstance(v, dict) else v) for v in value]
        return value

    def __getattr__(self, name: str):
        if name.startswith("_") or name not in self._data:
            raise AttributeError(f"No such attribute: {name}")
        return self._wrap(self._data[name])

    def __getitem__(self, key: str):
        return self._wrap(self._data[key])

    def __repr__(self) -> str:
        return f"_AttrView({self._data!r})"


class Config(dict):
    """
    Unified configuration manager for Conduit components.

    The `Config` class consolidates configuration from dictionaries and Pydantic `BaseSettings` or `BaseModel`
    objects. Values are stored as strings; `SecretStr` fields are masked and their real values are kept aside.

    Key Features:
    -------------
    - Accepts `dict`, `BaseModel`, `BaseSettings`, or lists of these.
    - Attr-style and dict-style access to nested keys.
    - Overlays environment variables (``SECTION__KEY``) over the given settings.
    - Cloning, JSON export and runtime overrides.

    Args:
        extra_settings: Configuration overrides or full config objects.
        apply_env: Whether environment variables are overlaid on top of the given settings.

    Example:
        >>> from conduit.core.config import Config
        >>> from conduit.core.config.config import CoreSettings
        >>> config = Config(CoreSettings())
        >>> config.CONDUIT_MONGO.PASSWORD  # '********'
        >>> config.get_secret("CONDUIT_MONGO", "PASSWORD")  # real value
    """

    MASK = "********"

    def __init__(self, extra_settings: SettingsLike = None, *, apply_env: bool = True):
        self._secret_paths: set[Tuple[str, ...]] = set()
        self._secrets: Dict[Tuple[str, ...], str] = {}

        for model in self._iter_models(extra_settings):
            self._secret_paths.update(self._collect_secret_paths_from_model(type(model)))

        merged: Dict[str, Any] = {}
        for override in _to_dicts(extra_settings):
            merged = self._deep_update(merged, override)

        if apply_env:
            merged = self._apply_env_overrides(merged)

        super().__init__(self._stringify_and_mask(merged))

    def __getattr__(self, name: str):
        """Enable attribute-style access for top-level keys."""
        if name.startswith("_") or name not in self:
            raise AttributeError(f"No such attribute: {name}")
        return _AttrView._wrap(self[name])

    @staticmethod
    def _iter_models(settings: SettingsLike):
        if isinstance(settings, (BaseSettings, BaseModel)):
            yield settings
        elif isinstance(settings, list):
            for item in settings:
                if isinstance(item, (BaseSettings, BaseModel)):
                    yield item

    @classmethod
    def load(
        cls,
        *,
        defaults: Optional[Union[Dict[str, Any], BaseSettings, BaseModel]] = None,
        overrides: SettingsLike = None,
        file_loader: Optional[Callable[[], Dict[str, Any]]] = None,
    ) -> "Config":
        """Create a Config from optional defaults, an optional file loader, and runtime overrides.

        Precedence, lowest first: defaults, file contents, environment variables, overrides.
        """
        base: Dict[str, Any] = {}
        for item in _to_dicts(defaults):
            base = cls._deep_update(base, item)
        if file_loader is not None:
            base = cls._deep_update(base, file_loader() or {})
        base = cls._apply_env_overrides(base)
        for item in _to_dicts(overrides):
            base = cls._deep_update(base, item)
        return cls([base], apply_env=False)

    @classmethod
    def load_json(cls, path: str | Path) -> "Config":
        """Load from a JSON file and apply environment overrides."""

        def _loader() -> Dict[str, Any]:
            with open(path, "r") as f:
                return json.load(f)

        return cls.load(file_loader=_loader)

    def save_json(self, path: str | Path, *, reveal_secrets: bool = False, indent: int = 4) -> None:
        """Save to JSON; secrets stay masked unless reveal_secrets is True."""
        data = deepcopy(dict(self))
        if reveal_secrets:
            for secret_path, value in self._secrets.items():
                node = data
                for key in secret_path[:-1]:
                    node = node[key]
                node[secret_path[-1]] = value
        with open(path, "w") as f:
            json.dump(data, f, indent=indent)

    def clone_with_overrides(self, *overrides: SettingsLike) -> "Config":
        """Return a new Config with overrides applied; the original remains unchanged."""
        items: List[Dict[str, Any]] = [deepcopy(dict(self))]
        for override in overrides:
            items.extend(_to_dicts(override))
        clone = Config(items, apply_env=False)
        for secret_path, value in self._secrets.items():
            if clone._lookup(secret_path) == self.MASK:
                clone._secret_paths.add(secret_path)
                clone._secrets[secret_path] = value
        return clone

    def get_secret(self, *path: str) -> Optional[str]:
        """Retrieve a secret by path components, e.g. ``get_secret("CONDUIT_MONGO", "PASSWORD")``."""
        return self._secrets.get(tuple(path))

    def secret_paths(self) -> List[str]:
        """Return dotted paths of fields considered secrets."""
        return sorted(".".join(p) for p in self._secret_paths)

    def _lookup(self, path: Tuple[str, ...]) -> Any:
        node: Any = self
        for key in path:
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        return node

    @staticmethod
    def _deep_update(base: dict, override: dict) -> dict:
        for k, v in (override or {}).items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                base[k] = Config._deep_update(base.get(k, {}), v)
            else:
                base[k] = v
        return base

    @staticmethod
    def _apply_env_overrides(base: dict, delimiter: str = "__") -> dict:
        result = deepcopy(base)
        for env_key, env_value in os.environ.items():
            if delimiter not in env_key:
                continue
            parts = [p.strip().upper() for p in env_key.split(delimiter) if p.strip()]
            if not parts:
                continue
            node = result
            for key in parts[:-1]:
                if not isinstance(node.get(key), dict):
                    node[key] = {}
                node = node[key]
            node[parts[-1]] = Config._coerce_env_value(env_value)
        return result

    @staticmethod
    def _coerce_env_value(value: str) -> Any:
        lower = value.lower()
        if lower in {"true", "false"}:
            return lower == "true"
        if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
            return int(value)
        try:
            return float(value)
        except ValueError:
            return value

    def _stringify_and_mask(self, data: Dict[str, Any]) -> Dict[str, Any]:
        def convert(v: Any, path: Tuple[str, ...]) -> Any:
            if isinstance(v, SecretStr):
                self._secrets[path] = v.get_secret_value()
                return self.MASK
            if isinstance(v, dict):
                return {k: convert(x, path + (k,)) for k, x in v.items()}
            if isinstance(v, (list, tuple, set)):
                return [convert(x, path) for x in v]
            sval = str(v) if isinstance(v, AnyUrl) or not isinstance(v, str) else v
            if path in self._secret_paths:
                self._secrets[path] = sval
                return self.MASK
            return expand_tilde_str(sval)

        return convert(data, ())

    def _collect_secret_paths_from_model(
        self, model_cls: type[BaseModel], prefix: Tuple[str, ...] = ()
    ) -> set[Tuple[str, ...]]:
        paths: set[Tuple[str, ...]] = set()
        for name, field in getattr(model_cls, "__pydantic_fields__", {}).items():
            ann = getattr(field, "annotation", None)
            if self._is_secret_annotation(ann):
                paths.add(prefix + (name,))
                continue
            nested_cls = self._extract_model_class(ann)
            if nested_cls is not None:
                paths.update(self._collect_secret_paths_from_model(nested_cls, prefix + (name,)))
        return paths

    @staticmethod
    def _is_secret_annotation(ann: Any) -> bool:
        if ann is SecretStr:
            return True
        return get_origin(ann) is Union and any(a is SecretStr for a in get_args(ann))

    @staticmethod
    def _extract_model_class(ann: Any) -> Optional[type]:
        candidates = get_args(ann) if get_origin(ann) is Union else (ann,)
        for candidate in candidates:
            if isinstance(candidate, type) and issubclass(candidate, BaseModel):
                return candidate
        return None


class CoreConfig(Config):
    """
    `Config` that always includes `CoreSettings` underneath any overrides.

    Usage:
        from conduit.core.config import CoreConfig
        cfg = CoreConfig()  # CoreSettings from env + .env + bundled config.ini
        cfg = CoreConfig({"CONDUIT_MONGO": {"HOST": "db.internal"}})

    Overrides have the highest precedence. Environment variables are not re-applied at the Config layer since
    CoreSettings has already read them.
    """

    def __init__(self, extra_settings: SettingsLike = None):
        extras: List[Any] = [CoreSettings()]
        if isinstance(extra_settings, list):
            extras.extend(extra_settings)
        elif extra_settings is not None:
            extras.append(extra_settings)
        super().__init__(extra_settings=extras, apply_env=False)


def get_config(extra_settings: SettingsLike = None) -> CoreConfig:
    """Return a CoreConfig with the given overrides applied."""
    return CoreConfig(extra_settings)
