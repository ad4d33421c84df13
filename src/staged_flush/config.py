"""Typed configuration loader for the flush engine."""
from __future__ import annotations

import os
import re
from pathlib import Path
from typing import List

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .env import load_env

load_env()

DEFAULT_OPTIMAL_BATCH_SIZE_BYTES = 25 * 1024 * 1024
SUPPORTED_FIELD_TYPES = ("STRING", "JSON", "TIMESTAMP", "INTEGER", "FLOAT", "BOOLEAN")

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_identifier(value: str) -> str:
    if not _IDENTIFIER.match(value):
        raise ValueError(f"'{value}' is not a valid identifier")
    return value


class FieldDefinition(BaseModel):
    name: str
    type: str = "STRING"

    @field_validator("name")
    @classmethod
    def _valid_name(cls, value):
        return _check_identifier(value)

    @field_validator("type", mode="before")
    @classmethod
    def _known_type(cls, value):
        value = str(value).upper()
        if value not in SUPPORTED_FIELD_TYPES:
            raise ValueError(f"Unsupported field type '{value}'")
        return value


def _default_fields() -> List[FieldDefinition]:
    return [
        FieldDefinition(name="_raw_id", type="STRING"),
        FieldDefinition(name="_extracted_at", type="TIMESTAMP"),
        FieldDefinition(name="_data", type="JSON"),
    ]


class StreamDefinition(BaseModel):
    name: str
    namespace: str | None = None
    dataset_id: str
    table: str
    object_name: str | None = Field(None, description="Staging object name base; defaults to name")
    fields: List[FieldDefinition] = Field(default_factory=_default_fields)

    @field_validator("dataset_id", "table")
    @classmethod
    def _valid_identifier(cls, value):
        return _check_identifier(value)

    @field_validator("fields")
    @classmethod
    def _match_staged_columns(cls, value):
        if len(value) != 3:
            raise ValueError("Raw tables hold exactly three columns: id, extracted_at, data")
        return value


class CatalogConfig(BaseModel):
    streams: List[StreamDefinition] = Field(default_factory=list)


class FlushSettings(BaseModel):
    optimal_batch_size_bytes: int = Field(DEFAULT_OPTIMAL_BATCH_SIZE_BYTES, gt=0)
    compression: bool = True
    buffer_dir: str | None = None


class WarehouseConfig(BaseModel):
    db_path: str = "data/warehouse.db"


class PipelineConfig(BaseModel):
    flush: FlushSettings = Field(default_factory=FlushSettings)
    warehouse: WarehouseConfig = Field(default_factory=WarehouseConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)


class ConfigLoader:
    """Loads YAML driven configuration and validates it with Pydantic."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.config_path = Path(
            path or os.getenv("STAGED_FLUSH_CONFIG_PATH", "config/staged_flush.yaml")
        )
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        self.model = self._parse_yaml()

    def _parse_yaml(self) -> PipelineConfig:
        raw: dict
        with self.config_path.open("r", encoding="utf-8") as fp:
            raw = yaml.safe_load(fp) or {}
        try:
            return PipelineConfig(**raw)
        except ValidationError as exc:
            raise ValueError(f"Invalid configuration: {exc}") from exc

    def get_stream(self, name: str, namespace: str | None = None) -> StreamDefinition:
        for stream in self.model.catalog.streams:
            if stream.name == name and stream.namespace == namespace:
                return stream
        raise KeyError(f"Stream definition '{name}' not found in configuration")


__all__ = [
    "CatalogConfig",
    "ConfigLoader",
    "FieldDefinition",
    "FlushSettings",
    "PipelineConfig",
    "StreamDefinition",
    "WarehouseConfig",
]
