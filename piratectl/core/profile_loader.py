"""Instrument profiles: packaged YAML plus user overrides from XDG directories."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from piratectl.core.errors import ProfileLoadError, ProfileValidationError
from piratectl.core.model import Profile, ResyncSettings, SerialSettings, UsbId

DEFAULT_PROFILE_ID = "buspirate_v3"
LOGGER = logging.getLogger(__name__)

_PROFILE_SUFFIXES = (".yml", ".yaml")


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ProfileValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG, _construct_mapping)


@dataclass(frozen=True)
class LoadedProfiles:
    profiles: dict[str, Profile]
    warnings: tuple[str, ...]


def _schema_validator() -> Any:
    schema_file = resources.files("piratectl.schemas").joinpath("profile.schema.json")
    schema = json.loads(schema_file.read_text(encoding="utf-8"))
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _user_profile_dirs() -> tuple[Path, Path]:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return xdg_config / "piratectl/profiles", xdg_data / "piratectl/profiles"


def _profile_files() -> Iterator[tuple[Path | Traversable, bool]]:
    """Yield ``(file, is_user)``; packaged profiles first, then user ones."""
    packaged = resources.files("piratectl.profiles").iterdir()
    for item in sorted(packaged, key=lambda item: item.name):
        if item.name.endswith(_PROFILE_SUFFIXES):
            yield item, False
    for directory in _user_profile_dirs():
        if directory.is_dir():
            for path in sorted(directory.iterdir()):
                if path.suffix in _PROFILE_SUFFIXES:
                    yield path, True


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProfileLoadError(f"Could not read profile file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ProfileValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ProfileValidationError(f"Profile file {path} must contain a mapping at root")
    return loaded


def _parse_usb_id(value: str) -> UsbId:
    # Shape is enforced by the schema pattern.
    vid, pid = value.split(":")
    return UsbId(vid=int(vid, 16), pid=int(pid, 16))


def _build_profile(doc: dict[str, Any], source: Path | Traversable, validator: Any) -> Profile:
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ProfileValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    serial_doc = dict(doc.get("serial", {}))
    if "parity" in serial_doc:
        serial_doc["parity"] = serial_doc["parity"].upper()

    return Profile(
        id=doc["id"],
        name=doc["name"],
        usb_ids=tuple(_parse_usb_id(value) for value in doc["match"]["usb_ids"]),
        serial=SerialSettings(**serial_doc),
        resync=ResyncSettings(**doc.get("resync", {})),
    )


def load_profiles() -> LoadedProfiles:
    validator = _schema_validator()
    profiles: dict[str, Profile] = {}
    warnings: list[str] = []

    for path, is_user in _profile_files():
        profile = _build_profile(_read_yaml(path), path, validator)
        if is_user and profile.id in profiles:
            warning = f"User profile '{profile.id}' overrides packaged profile"
            LOGGER.warning(warning)
            warnings.append(warning)
        profiles[profile.id] = profile

    return LoadedProfiles(profiles=profiles, warnings=tuple(warnings))
