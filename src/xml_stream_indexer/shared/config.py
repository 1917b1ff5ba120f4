"""Configuration classes for xml-stream-indexer.

This module provides the per-call option objects (``ParseOptions`` and
``ExportOptions``) and the engine-wide ``IndexerConfig`` that controls scanning,
classification, dispatch and validation behavior.
"""

import json
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from xml_stream_indexer.shared.errors import ConfigValidationError

MIB = 1024 * 1024


class ExportFormat(Enum):
    """Serialization formats understood by the exporter."""

    JSON = "json"
    CSV = "csv"
    XML = "xml"
    ARXML = "arxml"

    @classmethod
    def resolve(cls, value: Any) -> "ExportFormat":
        """Map a user supplied format to a member; unknown values become XML."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.XML


def _snake_case(key: str) -> str:
    out = []
    for char in key:
        if char.isupper():
            out.append("_")
            out.append(char.lower())
        else:
            out.append(char)
    return "".join(out)


def _from_mapping(target_class: type, data: Dict[str, Any]) -> Dict[str, Any]:
    """Pick the dataclass fields of ``target_class`` out of a camel/snake dict."""
    names = {f.name for f in fields(target_class)}
    values: Dict[str, Any] = {}
    for key, value in data.items():
        name = key if key in names else _snake_case(key)
        if name in names:
            values[name] = value
    return values


@dataclass
class ParseOptions:
    """Options for a single parse call.

    ``max_depth`` and ``max_elements`` accept ``None`` for "unlimited"; an empty
    ``element_types`` or ``packages`` list disables the corresponding filter.
    """

    packages: List[str] = field(default_factory=list)
    element_types: List[str] = field(default_factory=list)
    max_depth: Optional[int] = 50
    max_elements: Optional[int] = 100000
    validate_schema: bool = True
    enable_references: bool = True
    memory_limit: int = 500 * MIB

    def __post_init__(self) -> None:
        """Validate parse options."""
        if self.max_depth is not None and self.max_depth < 0:
            raise ValueError("max_depth must be >= 0 or None")
        if self.max_elements is not None and self.max_elements <= 0:
            raise ValueError("max_elements must be > 0 or None")
        if self.memory_limit <= 0:
            raise ValueError("memory_limit must be > 0")
        self.packages = list(self.packages)
        self.element_types = list(self.element_types)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParseOptions":
        """Create options from a dictionary using camelCase or snake_case keys."""
        return cls(**_from_mapping(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        """Convert options to the camelCase dictionary form."""
        return {
            "packages": list(self.packages),
            "elementTypes": list(self.element_types),
            "maxDepth": self.max_depth,
            "maxElements": self.max_elements,
            "validateSchema": self.validate_schema,
            "enableReferences": self.enable_references,
            "memoryLimit": self.memory_limit,
        }


@dataclass
class ExportOptions:
    """Options for an export call."""

    format: ExportFormat = ExportFormat.XML
    include_metadata: bool = False
    include_references: bool = False
    selected_only: bool = True
    pretty_print: bool = True
    validate_output: bool = False
    root_tag: str = "AUTOSAR"

    def __post_init__(self) -> None:
        """Normalize the format and validate export options."""
        self.format = ExportFormat.resolve(self.format)
        if not self.root_tag or any(char.isspace() for char in self.root_tag):
            raise ValueError("root_tag must be a non-empty tag name")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExportOptions":
        """Create options from a dictionary using camelCase or snake_case keys."""
        return cls(**_from_mapping(cls, data))


@dataclass
class ScannerConfig:
    """Configuration for the line scanner and tree assembler loop."""

    progress_interval: int = 1000
    short_name_tag: str = "SHORT-NAME"
    element_size_estimate: int = 1024

    def __post_init__(self) -> None:
        """Validate scanner configuration."""
        if self.progress_interval <= 0:
            raise ValueError("progress_interval must be > 0")
        if not self.short_name_tag:
            raise ValueError("short_name_tag cannot be empty")
        if self.element_size_estimate <= 0:
            raise ValueError("element_size_estimate must be > 0")


@dataclass
class ClassifierConfig:
    """Configuration for tag classification."""

    preset: str = "generic"  # generic, arxml
    default_namespace: str = ""
    schema_label: str = "xml"

    def __post_init__(self) -> None:
        """Validate classifier configuration."""
        if self.preset not in ("generic", "arxml"):
            raise ValueError("preset must be 'generic' or 'arxml'")


@dataclass
class DispatchConfig:
    """Configuration for in-process versus worker-process execution."""

    enable_worker: bool = True
    worker_threshold_bytes: int = 50 * MIB
    start_method: Optional[str] = None  # fork, spawn, forkserver
    poll_interval_seconds: float = 0.05

    def __post_init__(self) -> None:
        """Validate dispatch configuration."""
        if self.worker_threshold_bytes < 0:
            raise ValueError("worker_threshold_bytes must be >= 0")
        if self.start_method not in (None, "fork", "spawn", "forkserver"):
            raise ValueError(
                "start_method must be None, 'fork', 'spawn' or 'forkserver'"
            )
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be > 0")


@dataclass
class ValidationConfig:
    """Configuration for schema validation when a parse requests it."""

    schema_path: Optional[str] = None
    max_reported_errors: int = 20

    def __post_init__(self) -> None:
        """Validate validation configuration."""
        if self.max_reported_errors <= 0:
            raise ValueError("max_reported_errors must be > 0")


@dataclass
class GlobalConfig:
    """Settings that apply across all components."""

    logging_level: str = "INFO"

    def __post_init__(self) -> None:
        """Validate global configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.logging_level not in valid_levels:
            raise ValueError(f"logging_level must be one of {valid_levels}")


_COMPONENTS = {
    "scanner": ScannerConfig,
    "classifier": ClassifierConfig,
    "dispatch": DispatchConfig,
    "validation": ValidationConfig,
    "global_": GlobalConfig,
}


@dataclass(frozen=True)
class IndexerConfig:
    """Immutable engine-wide configuration.

    Each component validates itself on construction; the aggregate re-runs those
    checks and wraps failures into ``ConfigValidationError``.
    """

    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    global_: GlobalConfig = field(default_factory=GlobalConfig)

    name: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate the complete configuration."""
        try:
            for component in _COMPONENTS:
                getattr(self, component).__post_init__()
        except ValueError as e:
            raise ConfigValidationError(str(e)) from e

        if (
            self.validation.schema_path is not None
            and not self.validation.schema_path.lower().endswith(".xsd")
        ):
            raise ConfigValidationError(
                "validation.schema_path must point to an XSD file",
                field_name="validation.schema_path",
                suggestions=["Use a .xsd schema file",
                             "Leave schema_path unset for well-formedness checks"],
            )

    def override(self, **kwargs: Any) -> "IndexerConfig":
        """Create a new configuration with specific overrides.

        Example:
            >>> config = IndexerConfig().override(
            ...     scanner__progress_interval=500,
            ...     dispatch__enable_worker=False,
            ... )
        """
        nested: Dict[str, Dict[str, Any]] = {}
        top_level: Dict[str, Any] = {}
        for key, value in kwargs.items():
            if "__" in key:
                component, field_name = key.split("__", 1)
                if component not in _COMPONENTS:
                    raise ConfigValidationError(
                        f"Unknown configuration component: {component}",
                        field_name=key,
                    )
                nested.setdefault(component, {})[field_name] = value
            else:
                top_level[key] = value

        try:
            new_fields = {
                component: replace(getattr(self, component), **values)
                for component, values in nested.items()
            }
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(str(e)) from e
        new_fields.update(top_level)
        return replace(self, **new_fields)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        result: Dict[str, Any] = {"name": self.name}
        for component in _COMPONENTS:
            config = getattr(self, component)
            result[component] = {
                f.name: getattr(config, f.name) for f in fields(config)
            }
        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexerConfig":
        """Create configuration from dictionary."""
        values: Dict[str, Any] = {}
        try:
            for component, component_class in _COMPONENTS.items():
                if component in data:
                    values[component] = component_class(**data[component])
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(str(e)) from e
        if "name" in data:
            values["name"] = data["name"]
        return cls(**values)

    @classmethod
    def from_json(cls, json_str: str) -> "IndexerConfig":
        """Create configuration from JSON string."""
        return cls.from_dict(json.loads(json_str))

    # Preset factory methods
    @classmethod
    def default(cls) -> "IndexerConfig":
        """Generic markup configuration."""
        return cls(name="default")

    @classmethod
    def arxml(cls) -> "IndexerConfig":
        """Configuration preset for AUTOSAR XML documents."""
        return cls(
            classifier=ClassifierConfig(
                preset="arxml",
                default_namespace="autosar",
                schema_label="autosar",
            ),
            name="arxml",
        )

    @classmethod
    def in_process_only(cls) -> "IndexerConfig":
        """Configuration preset that never starts a worker process."""
        return cls(dispatch=DispatchConfig(enable_worker=False), name="in_process_only")
