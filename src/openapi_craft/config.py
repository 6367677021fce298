"""Generation options."""

import os

from pydantic import BaseModel, Field

DEFAULT_CONCURRENCY = 10


class GenerationOptions(BaseModel):
    """Options for one generation run."""

    generate_client: bool = True
    generate_server: bool = False
    # Regular schemas reject unknown fields too, not only the *Strict variants.
    strict_validation: bool = False
    concurrency: int = Field(default=DEFAULT_CONCURRENCY, ge=1)

    @classmethod
    def from_env(cls, **overrides) -> "GenerationOptions":
        """Build options from OPENAPI_CRAFT_* variables; explicit overrides win."""
        values: dict = {}
        concurrency = _parse_positive_int(os.getenv("OPENAPI_CRAFT_CONCURRENCY"))
        if concurrency:
            values["concurrency"] = concurrency
        if _parse_flag(os.getenv("OPENAPI_CRAFT_STRICT")):
            values["strict_validation"] = True
        if _parse_flag(os.getenv("OPENAPI_CRAFT_SERVER")):
            values["generate_server"] = True
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


def _parse_positive_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        parsed = int(value.strip())
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def _parse_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")
