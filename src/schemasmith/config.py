"""Generator configuration models."""

import json
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RelayMappingConfig(BaseModel):
    """Relay-specific mapping switches."""
    infer_node_interface: bool = Field(
        True, description="Object types exposing a non-null `id: ID` implement Node"
    )
    node_query_name: str = Field("node", description="Name of the global id lookup query")

    model_config = ConfigDict(frozen=True, extra="forbid")


class GeneratorSettings(BaseModel):
    """Settings for one schema build."""
    base_packages: Tuple[str, ...] = Field(
        default_factory=tuple,
        description="Module prefixes scoping public member discovery and implementation lookup",
    )
    type_metadata_field: str = Field("_type_", description="Wire field carrying the discriminator")
    input_type_suffix: str = "Input"
    relay: RelayMappingConfig = Field(default_factory=RelayMappingConfig)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("base_packages")
    @classmethod
    def validate_base_packages(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        """Drop empty entries (the root package) and duplicates, keeping order."""
        seen = []
        for package in v:
            package = package.strip()
            if package and package not in seen:
                seen.append(package)
        return tuple(seen)

    @field_validator("type_metadata_field")
    @classmethod
    def validate_type_metadata_field(cls, v: str) -> str:
        if not v or v.startswith("__"):
            raise ValueError(f"type_metadata_field must be non-empty and not start with '__', got {v!r}")
        return v

    @classmethod
    def from_json_bytes(cls, data: bytes) -> "GeneratorSettings":
        """Load settings from JSON bytes (pure, no I/O)."""
        return cls.model_validate(json.loads(data))
