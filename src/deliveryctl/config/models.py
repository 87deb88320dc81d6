"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, deliveryctl.toml only
contains overrides. A fresh store needs no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class StoreConfig(BaseModel):
    """[store] section."""

    model_config = {"frozen": True}

    db_filename: str = "delivery.db"
    lock_timeout: float = Field(default=5.0, gt=0)


class RulesConfig(BaseModel):
    """[rules] section."""

    model_config = {"frozen": True}

    completed_status: str = "completed"
    plugins: bool = True
