import logging
import yaml
from pathlib import Path
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field, fields

from ..core.models import Unit
from ..core.exceptions import ConfigError


@dataclass
class PatchConfig:
    """Where image coordinates live in a values file"""
    section: str = "image"
    repository_field: str = "repository"
    tag_field: str = "tag"
    occurrence: int = 0


@dataclass
class ReleaseConfig:
    """Release loop settings"""
    tag_length: int = 7
    max_concurrent_updates: int = 4
    lock_timeout: int = 30


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def apply(self, level: Optional[str] = None):
        """Configure the root logger"""
        level_name = (level or self.level).upper()
        logging.basicConfig(
            level=getattr(logging, level_name, logging.INFO),
            format=self.format
        )


def _build(cls, data: Optional[Dict[str, Any]], section: str):
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError(f"'{section}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"unknown keys in '{section}': {', '.join(unknown)}")
    for f in fields(cls):
        if f.name not in data:
            continue
        value = data[f.name]
        # bool is an int subclass
        if isinstance(value, bool) or not isinstance(value, f.type):
            raise ConfigError(
                f"'{section}.{f.name}' must be {f.type.__name__}, got {type(value).__name__}"
            )
    return cls(**data)


def parse_units(data: Optional[List[Dict[str, Any]]], base_dir: Optional[Path] = None) -> List[Unit]:
    """
    Validate unit definitions and build Unit objects.

    Args:
        data: Raw ``units`` list from the config file
        base_dir: Directory relative values_file paths are resolved against

    Returns:
        Units in declaration order

    Raises:
        ConfigError: On a missing name, empty prefix or duplicate name
    """
    if data is None:
        return []
    if not isinstance(data, list):
        raise ConfigError("'units' must be a list")

    units = []
    seen = set()
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ConfigError(f"units[{index}] must be a mapping")
        name = entry.get('name')
        if not name or not isinstance(name, str):
            raise ConfigError(f"units[{index}] has no name")
        if name in seen:
            raise ConfigError(f"duplicate unit name: {name}")
        prefix = entry.get('path_prefix')
        if not prefix or not isinstance(prefix, str) or not prefix.strip('./'):
            raise ConfigError(f"unit '{name}' has an empty path_prefix")
        unknown = sorted(set(entry) - {'name', 'path_prefix', 'values_file', 'repository'})
        if unknown:
            raise ConfigError(f"unknown keys in unit '{name}': {', '.join(unknown)}")

        values_file = entry.get('values_file')
        if values_file and base_dir is not None and not Path(values_file).is_absolute():
            values_file = str(base_dir / values_file)

        seen.add(name)
        units.append(Unit(
            name=name,
            path_prefix=prefix,
            values_file=values_file,
            repository=entry.get('repository')
        ))
    return units


@dataclass
class GlobalConfig:
    """Top-level releasetool configuration"""
    registry: Optional[str] = None
    units: List[Unit] = field(default_factory=list)
    patch: PatchConfig = field(default_factory=PatchConfig)
    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    source_path: Optional[str] = None

    def get_unit(self, name: str) -> Optional[Unit]:
        for unit in self.units:
            if unit.name == name:
                return unit
        return None

    def image_repository(self, unit: Unit) -> Optional[str]:
        """
        Image repository for a unit: explicit ``repository`` wins,
        otherwise ``<registry>/<unit name>``.
        """
        if unit.repository:
            return unit.repository
        if self.registry:
            return f"{self.registry.rstrip('/')}/{unit.name}"
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> 'GlobalConfig':
        """Create GlobalConfig from dictionary"""
        if not isinstance(data, dict):
            raise ConfigError("configuration root must be a mapping")
        unknown = sorted(set(data) - {'registry', 'units', 'patch', 'release', 'logging'})
        if unknown:
            raise ConfigError(f"unknown top-level keys: {', '.join(unknown)}")
        patch = _build(PatchConfig, data.get('patch'), 'patch')
        if patch.repository_field == patch.tag_field:
            raise ConfigError(
                f"'patch.repository_field' and 'patch.tag_field' are both '{patch.tag_field}'"
            )
        if patch.occurrence < 0:
            raise ConfigError("'patch.occurrence' must be >= 0")

        release = _build(ReleaseConfig, data.get('release'), 'release')
        if release.max_concurrent_updates < 1:
            raise ConfigError("'release.max_concurrent_updates' must be >= 1")

        return cls(
            registry=data.get('registry'),
            units=parse_units(data.get('units'), base_dir),
            patch=patch,
            release=release,
            logging=_build(LoggingConfig, data.get('logging'), 'logging'),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'GlobalConfig':
        """Load GlobalConfig from YAML file"""
        path = Path(yaml_path)
        if not path.exists():
            raise ConfigError(f"config file not found: {yaml_path}")

        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {yaml_path}: {e}") from e

        config = cls.from_dict(data or {}, base_dir=path.resolve().parent)
        config.source_path = str(path)
        return config

    @classmethod
    def default(cls) -> 'GlobalConfig':
        """Return default configuration"""
        return cls()


SEARCH_PATHS = [
    Path("./releasetool.yaml"),
    Path("./config/releasetool.yaml"),
    Path("/etc/releasetool/releasetool.yaml"),
]


def load_global_config(config_path: Optional[str] = None) -> GlobalConfig:
    """
    Load configuration from YAML file.
    If no path provided, looks for releasetool.yaml in standard locations.
    """
    if config_path:
        return GlobalConfig.from_yaml(config_path)

    for path in SEARCH_PATHS:
        if path.exists():
            return GlobalConfig.from_yaml(str(path))

    return GlobalConfig.default()
