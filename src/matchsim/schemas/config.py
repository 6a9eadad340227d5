"\"\"\"Pydantic configuration schema for CLI YAML input.\"\"\""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class AppConfig(BaseModel):
    seed: int | None = None
    scoring: dict[str, Any] | None = None
    queue: dict[str, Any] | None = None
    evidence: dict[str, Any] | None = None
    ledger: dict[str, Any] | None = None
    fuzzy_min_similarity: float = Field(default=80.0, ge=0.0, le=100.0)

    model_config = ConfigDict(extra="forbid")

    def to_settings(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def load_config(raw: Any) -> AppConfig:
    if raw is None:
        return AppConfig()
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
