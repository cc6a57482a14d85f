"""Rig configuration loading and validation for YAML config files."""

from __future__ import annotations

import logging
import os
from collections.abc import Hashable
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError

from injctl.core.errors import ConfigLoadError, ConfigValidationError
from injctl.core.model import CommandSpec, RigConfig
from injctl.schemas import error_location, load_validator

DEFAULT_PROFILE = "default.yaml"
USER_CONFIG_NAME = "config.yaml"
_YAML_BOOL_TAG = "tag:yaml.org,2002:bool"
LOGGER = logging.getLogger(__name__)


class ConfigYamlLoader(yaml.SafeLoader):
    """SafeLoader for rig config files.

    Command tokens such as ``y``, ``n`` or ``on`` stay strings, and a key
    repeated in one mapping is an error instead of silently winning.
    """

    yaml_implicit_resolvers = {
        first_char: [(tag, regexp) for tag, regexp in resolvers if tag != _YAML_BOOL_TAG]
        for first_char, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
    }

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[Any, Any]:
        seen: set[Any] = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if not isinstance(key, Hashable):
                continue
            if key in seen:
                raise ConfigValidationError(
                    f"Duplicate key '{key}' at line {key_node.start_mark.line + 1}"
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


@dataclass(frozen=True)
class LoadedConfig:
    config: RigConfig
    warnings: tuple[str, ...]


def user_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "injctl" / USER_CONFIG_NAME


def _read_yaml(source: Path | Traversable) -> dict[str, Any]:
    try:
        content = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {source}: {exc}") from exc

    try:
        doc = yaml.load(content, Loader=ConfigYamlLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {source}: {exc}") from exc

    if doc is None:
        return {}
    if not isinstance(doc, dict):
        raise ConfigValidationError(f"Config file {source} must contain a mapping at root")
    return doc


def _validate(doc: dict[str, Any], source: Path | Traversable) -> None:
    try:
        load_validator("rig.schema.json").validate(doc)
    except ValidationError as exc:
        raise ConfigValidationError(
            f"Schema validation failed for {source}{error_location(exc)}: {exc.message}"
        ) from exc


def _normalize_bool(value: Any, *, context: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise ConfigValidationError(f"{context} must be boolean true/false")


def _build_commands(doc: dict[str, Any]) -> dict[str, CommandSpec]:
    commands: dict[str, CommandSpec] = {}
    for name, spec in doc.get("commands", {}).items():
        token = str(spec["token"]).strip()
        if not token:
            raise ConfigValidationError(f"commands.{name}.token must not be blank")
        commands[name] = CommandSpec(
            name=name,
            token=token,
            description=spec.get("description", ""),
        )
    return commands


def _build_config(doc: dict[str, Any], commands: dict[str, CommandSpec]) -> RigConfig:
    defaults = RigConfig()
    return RigConfig(
        port=doc.get("port", defaults.port),
        baudrate=int(doc.get("baudrate", defaults.baudrate)),
        read_chunk_size=int(doc.get("read_chunk_size", defaults.read_chunk_size)),
        status_poll_delay_s=float(doc.get("status_poll_delay_s", defaults.status_poll_delay_s)),
        pulse_width_step_delay_s=float(
            doc.get("pulse_width_step_delay_s", defaults.pulse_width_step_delay_s)
        ),
        strict_sequencing=_normalize_bool(
            doc.get("strict_sequencing", defaults.strict_sequencing),
            context="strict_sequencing",
        ),
        reset_on_disconnect=_normalize_bool(
            doc.get("reset_on_disconnect", defaults.reset_on_disconnect),
            context="reset_on_disconnect",
        ),
        commands=commands,
    )


def load_config(path: Path | None = None) -> LoadedConfig:
    """Load the packaged rig profile, then layer a user config on top.

    ``path`` replaces the XDG user config location when given; in that case
    the file must exist.
    """
    warnings: list[str] = []

    packaged = resources.files("injctl.profiles").joinpath(DEFAULT_PROFILE)
    doc = _read_yaml(packaged)
    _validate(doc, packaged)
    commands = _build_commands(doc)

    user_path = path if path is not None else user_config_path()
    if path is not None or user_path.is_file():
        user_doc = _read_yaml(user_path)
        _validate(user_doc, user_path)
        for name, spec in _build_commands(user_doc).items():
            if name in commands:
                warning = f"User command '{name}' overrides packaged command"
                LOGGER.warning(warning)
                warnings.append(warning)
            commands[name] = spec
        doc = {**doc, **{k: v for k, v in user_doc.items() if k != "commands"}}
        LOGGER.debug("Loaded user config from %s", user_path)

    return LoadedConfig(config=_build_config(doc, commands), warnings=tuple(warnings))
