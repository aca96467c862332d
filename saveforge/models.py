"""Pydantic models for the current save schema (2.0.0).

These models are the domain side of a load: the engine only hands them a
fully migrated document through a PydanticCodec.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Entity(BaseModel):
    """Base for keyed entities. Unknown fields are kept, not dropped."""

    model_config = ConfigDict(extra="allow")

    id: uuid.UUID


def _check_keys(collection: dict, owner: str) -> None:
    for key, entry in collection.items():
        if entry.id != key:
            raise ValueError(
                f"{owner}: entry keyed {key} carries id {entry.id}"
            )


class RawInput(Entity):
    """A raw resource extraction source."""

    rate_per_minute: float = Field(..., ge=0)
    item: str | None = None
    extractor_type: str | None = None
    purity: str | None = None


class ProductionLine(Entity):
    name: str | None = None


class PowerGenerator(Entity):
    generator_type: str | None = None


class Factory(Entity):
    """A factory and its sub-entities."""

    name: str
    description: str | None = None
    raw_inputs: dict[uuid.UUID, RawInput] = Field(default_factory=dict)
    production_lines: dict[uuid.UUID, ProductionLine] = Field(default_factory=dict)
    power_generators: dict[uuid.UUID, PowerGenerator] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _keys_match_ids(self) -> "Factory":
        for name in ("raw_inputs", "production_lines", "power_generators"):
            _check_keys(getattr(self, name), f"factory {self.id} {name}")
        return self


class LogisticsLine(Entity):
    """A transport link between two factories."""

    from_factory: uuid.UUID
    to_factory: uuid.UUID
    transport_type: Any = None
    transport_details: str = ""


class EngineState(BaseModel):
    factories: dict[uuid.UUID, Factory] = Field(default_factory=dict)
    logistics_lines: dict[uuid.UUID, LogisticsLine] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_links(self) -> "EngineState":
        _check_keys(self.factories, "factories")
        _check_keys(self.logistics_lines, "logistics_lines")
        for line in self.logistics_lines.values():
            for end in (line.from_factory, line.to_factory):
                if end not in self.factories:
                    raise ValueError(
                        f"logistics line {line.id} references unknown factory {end}"
                    )
        return self


class SaveFile(BaseModel):
    """Top-level save file."""

    version: str
    created_at: datetime | None = None
    last_modified: datetime | None = None
    game_version: str | None = None
    engine: EngineState = Field(default_factory=EngineState)
    raw_inputs: dict[uuid.UUID, RawInput] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_raw_input_keys(self) -> "SaveFile":
        _check_keys(self.raw_inputs, "raw_inputs")
        return self

    @property
    def factory_count(self) -> int:
        return len(self.engine.factories)

    @property
    def logistics_count(self) -> int:
        return len(self.engine.logistics_lines)
