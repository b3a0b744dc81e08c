"""Configuration classes for flattening runs.

This module provides the configuration object consulted by the streaming
flattener and the error policy that decides how each failure class is handled.
"""

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Any, Dict, List, Optional

DEFAULT_SEPARATOR = "."
DEFAULT_ROW_ELEMENT = "EXPERIMENT_PACKAGE"


class ErrorPolicy(Enum):
    """How the flattener reacts to recoverable failures."""

    BEST_EFFORT = auto()  # Keep completed rows when the tail of the input is unreadable
    STRICT = auto()       # Abort on any parse or decode failure

    @classmethod
    def from_name(cls, name: str) -> "ErrorPolicy":
        """Look up a policy by case-insensitive name (``best_effort``, ``strict``)."""
        normalized = name.strip().upper().replace("-", "_")
        try:
            return cls[normalized]
        except KeyError:
            valid = ", ".join(member.name.lower() for member in cls)
            raise ConfigValidationError(
                f"Unknown error policy {name!r}; expected one of: {valid}",
                field_name="policy",
                suggestions=[member.name.lower() for member in cls],
            ) from None


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


@dataclass
class FlattenConfig:
    """Configuration for a single flattening pass.

    Attributes:
        separator: String placed between path segments in record keys
        row_element: Element name whose close emits the current record
        policy: Error policy consulted at each fallible step
        correlation_id: Optional ID attached to every log record of the run
    """

    separator: str = DEFAULT_SEPARATOR
    row_element: str = DEFAULT_ROW_ELEMENT
    policy: ErrorPolicy = ErrorPolicy.BEST_EFFORT
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate flatten configuration."""
        if not isinstance(self.separator, str):
            raise ConfigValidationError(
                "separator must be a string", field_name="separator"
            )
        if not isinstance(self.row_element, str) or not self.row_element.strip():
            raise ConfigValidationError(
                "row_element must be a non-empty element name",
                field_name="row_element",
            )
        if any(char.isspace() for char in self.row_element):
            raise ConfigValidationError(
                "row_element cannot contain whitespace",
                field_name="row_element",
            )
        if isinstance(self.policy, str):
            self.policy = ErrorPolicy.from_name(self.policy)
        if not isinstance(self.policy, ErrorPolicy):
            raise ConfigValidationError(
                "policy must be an ErrorPolicy", field_name="policy"
            )

    @property
    def row_element_bytes(self) -> bytes:
        """Row element name in the byte form produced by the tokenizer."""
        return self.row_element.encode("utf-8")

    @property
    def is_strict(self) -> bool:
        """Whether failures abort the run instead of being recovered."""
        return self.policy is ErrorPolicy.STRICT

    @classmethod
    def best_effort(cls, **overrides: Any) -> "FlattenConfig":
        """Create configuration that recovers as much data as possible."""
        return cls(policy=ErrorPolicy.BEST_EFFORT, **overrides)

    @classmethod
    def strict(cls, **overrides: Any) -> "FlattenConfig":
        """Create configuration that aborts on the first failure."""
        return cls(policy=ErrorPolicy.STRICT, **overrides)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlattenConfig":
        """Create configuration from a plain mapping (e.g. a JSON config file).

        Unknown keys are ignored so one file can also carry CLI settings.
        """
        config = cls()
        if "separator" in data:
            config = replace(config, separator=data["separator"])
        if "row_element" in data:
            config = replace(config, row_element=data["row_element"])
        if "policy" in data:
            config = replace(config, policy=ErrorPolicy.from_name(str(data["policy"])))
        elif data.get("strict"):
            config = replace(config, policy=ErrorPolicy.STRICT)
        if "correlation_id" in data:
            config = replace(config, correlation_id=data["correlation_id"])
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible mapping."""
        return {
            "separator": self.separator,
            "row_element": self.row_element,
            "policy": self.policy.name.lower(),
            "correlation_id": self.correlation_id,
        }
