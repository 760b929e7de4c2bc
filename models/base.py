"""Base model for everything the parser hands to a renderer or transport."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Pydantic model whose dumps use camelCase keys (``tagName``, ``chatId``).

    Fields are still populated by their snake_case names in Python code.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_camel_dict(self, **kwargs: Any) -> dict[str, Any]:
        """``model_dump`` keyed by the camelCase aliases."""
        return self.model_dump(by_alias=True, **kwargs)
