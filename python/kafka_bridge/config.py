from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar, Sequence, Type, TypeVar, Union, Optional
import os

import yaml
from pydantic import BaseModel, model_validator


# If constructor is invoked with a parameter of this name then extraction is done
WRAPPER_INVOKE_PATH: str = "source"

# Overrides the location of the YAML configuration file
CONFIG_ENV_VAR: str = "KAFKA_BRIDGE_CONFIG"


T = TypeVar("T", bound="BaseConfig")


def config_path() -> Path:
    """Return the YAML config location, honouring `KAFKA_BRIDGE_CONFIG`."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return Path(__file__).resolve().parents[1] / "config.yaml"


def load_config_from_yaml(path: Path) -> dict[str, Any]:
    content = Path(path).read_text(encoding="utf-8")
    data = yaml.safe_load(content)
    if not isinstance(data, dict):
        raise ValueError("config yaml must contain a mapping at top level")
    return data


class BaseConfig(BaseModel):
    """
    Base configuration model with support for wrapper-based constructor extraction.
    Subclasses may define `WRAPPER_DATA_PATH` to enable automatic extraction of
    nested configuration data when the constructor is invoked with a dictionary
    containing that data under a specific key and the constructor is called using the
    key defined in `WRAPPER_INVOKE_PATH`.

    Field aliases are librdkafka property names, so `model_dump()` can be handed
    straight to a confluent-kafka client.
    """

    model_config = {"populate_by_name": True}

    # Optional class variable that points what is the position of extracted data
    # in the input dictionary given to the constructor.
    WRAPPER_DATA_PATH: ClassVar[Optional[str]] = None

    def model_dump(self, *args, **kwargs):
        kwargs.setdefault("by_alias", True)
        return super().model_dump(*args, **kwargs)

    @staticmethod
    def _select_node(
        node: dict[str, Any], path: Union[str, Sequence[str]]
    ) -> dict[str, Any]:
        """Traverse `node` and return the sub-node selected by `path`.

        `path` may be a dot-separated string like "a.b.c" or a sequence of keys.
        """
        if isinstance(path, str):
            parts: list[str] = [p for p in path.split(".") if p != ""]
        else:
            parts = list(path)

        cur: Any = node
        parts.insert(0, WRAPPER_INVOKE_PATH)
        for token in parts:
            if isinstance(cur, dict):
                cur = cur[token]
            else:
                raise KeyError(
                    f"Cannot traverse into {type(cur)!r} with token {token!r}"
                )
        return cur

    @model_validator(mode="before")
    @classmethod
    def _maybe_extract_from_wrapper(cls, values: Any) -> Any:
        """
        If `WRAPPER_DATA_PATH` is set, extract the nested node from `values`
        using that path.
        The constructor must be invoked using the key defined in `WRAPPER_INVOKE_PATH`.
        """
        path_key = getattr(cls, "WRAPPER_DATA_PATH", None)
        if path_key and isinstance(values, dict) and WRAPPER_INVOKE_PATH in values:
            try:
                node = cls._select_node(values, path_key)
            except KeyError as exc:
                raise ValueError(f"invalid path {path_key!r}: {exc}") from exc
            return node

        return values

    @classmethod
    def from_yaml(cls: Type[T], path: Path) -> T:
        """Load configuration from a YAML file, extracting this model's node."""
        return cls(**{WRAPPER_INVOKE_PATH: load_config_from_yaml(path)})
