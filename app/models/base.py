"""JsonModel base class for API communication."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class JsonModel(BaseModel):
    """Base model for API communication with camelCase/snake_case conversion.

    - JSON output uses camelCase (for client communication)
    - Internal Python uses snake_case
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def model_dump(self, **kwargs) -> dict:
        """Override model_dump - snake_case for internal use."""
        kwargs.setdefault("mode", "json")
        return super().model_dump(**kwargs)

    def model_dump_json(self, **kwargs) -> str:
        """Override to ensure camelCase in JSON output."""
        kwargs.setdefault("by_alias", True)
        return super().model_dump_json(**kwargs)

    def to_dict(
        self,
        by_alias: bool | None = None,
        mode: Literal["json", "python"] = "python",
    ) -> dict[str, Any]:
        """Convert to dictionary, dropping unset optional fields."""
        return self.model_dump(
            exclude_none=True,
            by_alias=by_alias or (mode == "json"),
            mode=mode,
        )


class FrozenJsonModel(JsonModel):
    """Immutable variant for values that must not change once created."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )
