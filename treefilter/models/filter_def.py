"""FilterDefinition data model for treefilter.

This model represents named tree-node filters, contributed by plugins or
declared in configuration.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from treefilter.core.parser import PatternSyntaxError, compile_pattern


class FilterDefinition(BaseModel):
    """A filter pattern with metadata.

    Attributes:
        id: Unique identifier for the filter.
        name: Human-readable name for display.
        pattern: Tree-node filter string, e.g. ``/MyTests/**[Category=Fast]``.
        enabled: Whether the filter is currently active.
        source: Origin of the filter (e.g., "plugin:json", "config", "user").
        description: Optional description of what this filter selects.
    """

    model_config = ConfigDict(frozen=False)

    id: str
    name: str
    pattern: str
    enabled: bool = True
    source: Optional[str] = None
    description: Optional[str] = None

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        """Validate that the pattern compiles."""
        try:
            compile_pattern(v)
        except PatternSyntaxError as e:
            raise ValueError(f"Invalid filter pattern: {e}") from e
        return v
