"""Load pubsync settings from TOML (e.g. pubsync.toml).

Config file is looked up in order:
  1. Path passed to load_sync_config()
  2. Path in PUBSYNC_CONFIG env var (if set)
  3. pubsync.toml in the pubsync package directory
  4. pubsync.toml in the current working directory

Only the [sync] table is read. If no file is found, built-in defaults are used.
The resulting SyncConfig is frozen and handed to each component at construction.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pubsync.errors import ConfigError

PRIMARY_DELIMITER = " | "
SECONDARY_DELIMITER = "|"
MAX_FIELD_BYTES = 32000

# Applied in order. Each pair is (corrupted text, replacement).
DEFAULT_SUBSTITUTIONS: tuple[tuple[str, str], ...] = (
    ("?-macroglobulin", "α-macroglobulin"),
    ("?-2-macroglobulin", "α-2-macroglobulin"),
    ("factor-?", "factor-β"),
    ("TGF-?", "TGF-β"),
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("homologyepatocellular", "hepatocellular"),
)

DEFAULT_TEXT_FIELDS: frozenset[str] = frozenset(
    {"authors", "keywords", "mesh_terms", "affiliation", "chemicals", "citation"}
)


class SyncConfig(BaseModel):
    """Process-wide settings for one sync run."""

    model_config = ConfigDict(frozen=True)

    key_field: str = Field(default="pmid", description="Primary key column and index field.")
    primary_delimiter: str = Field(
        default=PRIMARY_DELIMITER,
        min_length=1,
        description="Separates entity-level groups in delimited columns.",
    )
    secondary_delimiter: str = Field(
        default=SECONDARY_DELIMITER,
        min_length=1,
        description="Separates span tokens inside one entity's position group.",
    )
    mesh_delimiter: str = Field(default=";", min_length=1, description="Separates MeSH terms in mesh_terms.")
    max_field_bytes: int = Field(
        default=MAX_FIELD_BYTES,
        gt=0,
        description="UTF-8 byte ceiling for *_s string fields.",
    )
    truncation_marker: str = Field(default="...", description="Appended to truncated values.")
    source_literal: str = Field(default="pubmed", description="Value written to p_source.")
    date_suffix: str = Field(default="T06:00:00Z", description="Time suffix appended to p_date.")
    substitutions: tuple[tuple[str, str], ...] = Field(
        default=DEFAULT_SUBSTITUTIONS,
        description="Ordered (corrupted, replacement) pairs applied by the sanitizer.",
    )
    text_fields: frozenset[str] = Field(
        default=DEFAULT_TEXT_FIELDS,
        description="Free-text columns sanitized before indexing (plus every *_term column).",
    )
    recompute_categories: tuple[str, ...] = Field(
        default=("gene",),
        description="Entity categories whose positions are recomputed from title and abstract.",
    )
    offset_units: Literal["utf-16", "codepoint"] = Field(
        default="utf-16",
        description="Unit used for span offsets.",
    )
    context_chars: int = Field(default=30, ge=0, description="Context kept on each side of a mention.")
    progress_interval: int = Field(default=100, gt=0, description="Records between progress log lines.")

    @field_validator("substitutions", mode="before")
    @classmethod
    def substitutions_as_pairs(cls, value):
        # TOML gives a list of 2-element lists or a table
        if isinstance(value, dict):
            return tuple(value.items())
        return tuple(tuple(pair) for pair in value)

    @field_validator("substitutions")
    @classmethod
    def substitutions_must_settle(cls, value: tuple[tuple[str, str], ...]) -> tuple[tuple[str, str], ...]:
        # normalize repeats the table until nothing changes
        for corrupted, replacement in value:
            if not corrupted:
                raise ValueError("substitution patterns must not be empty")
            if corrupted in replacement:
                raise ValueError(f"replacement {replacement!r} contains its own pattern {corrupted!r}")
        return value

    @field_validator("primary_delimiter")
    @classmethod
    def primary_must_not_be_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("primary_delimiter must contain a non-space character")
        return value


def _default_config_paths() -> list[Path]:
    """Return paths to check for pubsync.toml (first existing wins)."""
    paths: list[Path] = []
    if os.environ.get("PUBSYNC_CONFIG"):
        paths.append(Path(os.environ["PUBSYNC_CONFIG"]))
    paths.append(Path(__file__).resolve().parent / "pubsync.toml")
    paths.append(Path.cwd() / "pubsync.toml")
    return paths


def load_sync_config(path: str | Path | None = None) -> SyncConfig:
    """Load SyncConfig from a TOML file, falling back to defaults.

    An explicitly passed path must exist. Files found through the lookup
    order are read if present; a file that exists but is not valid TOML or
    holds invalid settings raises ConfigError.
    """
    if path is not None:
        candidates = [Path(path)]
        if not candidates[0].is_file():
            raise ConfigError(f"Config file not found: {path}")
    else:
        candidates = _default_config_paths()

    for candidate in candidates:
        if not candidate.is_file():
            continue
        try:
            with open(candidate, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigError(f"Could not read {candidate}: {exc}") from exc
        section = data.get("sync", {})
        if not isinstance(section, dict):
            raise ConfigError(f"[sync] in {candidate} must be a table")
        try:
            return SyncConfig.model_validate(section)
        except ValidationError as exc:
            raise ConfigError(f"Invalid settings in {candidate}: {exc}") from exc
    return SyncConfig()
