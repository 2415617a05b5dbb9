"""
Shared base for models written to disk as camelCase JSON.
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PersistedModel(BaseModel):
    """Reads snake_case or camelCase keys, writes camelCase via by_alias dumps."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
