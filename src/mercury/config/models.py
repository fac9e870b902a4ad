"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, mercury.toml only contains overrides.
A fresh install needs no config file at all; only ``[search] vectors_path``
must be set before name search or user registration can succeed.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, model_validator

# --- mercury.toml sections ---


class DatabaseConfig(BaseModel):
    """[database] section."""

    model_config = {"frozen": True}

    url: str | None = None  # None -> sqlite file under {root}/.mercury/
    echo: bool = False


class SearchConfig(BaseModel):
    """[search] section."""

    model_config = {"frozen": True}

    vectors_path: Path | None = None  # word2vec text format
    index_name: str = "user-names"
    lowercase: bool = True


class PagingConfig(BaseModel):
    """[paging] section."""

    model_config = {"frozen": True}

    default_page_size: int = Field(default=100, ge=1)
    max_page_size: int = Field(default=1000, ge=1)

    @model_validator(mode="after")
    def _default_within_max(self) -> PagingConfig:
        if self.default_page_size > self.max_page_size:
            msg = (
                f"default_page_size ({self.default_page_size}) exceeds"
                f" max_page_size ({self.max_page_size})"
            )
            raise ValueError(msg)
        return self


class MercuryConfig(BaseModel):
    """Root configuration composing all sections.

    Matches the full mercury.toml schema.
    """

    model_config = {"frozen": True}

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    paging: PagingConfig = Field(default_factory=PagingConfig)
