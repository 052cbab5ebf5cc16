"""Value objects for the tenancy domain.

Value objects are immutable descriptors that provide type safety and
domain semantics for identifiers and domain concepts.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag

from ulid import ULID

DATA_KEY_SEPARATOR = "."
FULL_NAME_SEPARATOR = " | "


@dataclass(frozen=True)
class TenantId:
    """Identifier for a Tenant aggregate.

    Uses ULID for sortability and distribution-friendly generation.
    """

    value: str

    def __str__(self) -> str:
        """Return string representation."""
        return self.value

    @classmethod
    def generate(cls) -> TenantId:
        """Generate a new TenantId using ULID."""
        return cls(value=str(ULID()))

    @classmethod
    def from_string(cls, value: str) -> TenantId:
        """Create TenantId from string value.

        Accepts case-insensitive input (per Crockford's Base32 spec) and
        returns the canonical uppercase form.

        Args:
            value: ULID string

        Returns:
            TenantId instance

        Raises:
            ValueError: If value is not a valid ULID
        """
        try:
            parsed = ULID.from_str(value.upper())
        except (ValueError, AttributeError) as e:
            raise ValueError(f"Invalid TenantId: {value}") from e

        return cls(value=str(parsed))

    def as_data_key_segment(self) -> str:
        """Return this id's segment of a data key ("<id>.")."""
        return f"{self.value}{DATA_KEY_SEPARATOR}"


class TenantType(IntFlag):
    """Tenant topology flags.

    Exactly one of SINGLE_LEVEL or HIERARCHICAL is set; ADD_SHARDING may be
    combined with either.
    """

    NOT_USING_TENANTS = 0
    SINGLE_LEVEL = 1
    HIERARCHICAL = 2
    ADD_SHARDING = 4

    @classmethod
    def parse(cls, text: str) -> TenantType:
        """Parse "SingleLevel|AddSharding" style text (or an integer string).

        Names are matched case-insensitively with or without underscores;
        "|", "," and "+" all separate flags.

        Raises:
            ValueError: If a name is not a known flag
        """
        text = text.strip()
        if text.isdigit():
            return cls(int(text))

        lookup = {member.name.replace("_", "").lower(): member for member in cls}
        result = cls.NOT_USING_TENANTS
        for part in text.replace(",", "|").replace("+", "|").split("|"):
            key = part.strip().replace("_", "").lower()
            if not key:
                continue
            if key not in lookup:
                raise ValueError(f"Unknown tenant type flag: {part.strip()!r}")
            result |= lookup[key]
        return result

    def is_valid_topology(self) -> bool:
        """True if exactly one of SINGLE_LEVEL/HIERARCHICAL is set."""
        return (TenantType.SINGLE_LEVEL in self) != (TenantType.HIERARCHICAL in self)


def build_data_key(tenant_id: TenantId, parent_data_key: str | None = None) -> str:
    """Build a tenant's data key.

    Single-level tenants get "<id>."; hierarchical tenants append their
    segment to the parent's key so every ancestor key is a prefix.
    """
    return f"{parent_data_key or ''}{tenant_id.as_data_key_segment()}"


def path_from_data_key(data_key: str) -> tuple[str, ...]:
    """Return the ordered tenant ids encoded in a data key (root first)."""
    return tuple(part for part in data_key.split(DATA_KEY_SEPARATOR) if part)


def build_full_name(name: str, parent_full_name: str | None = None) -> str:
    """Combine a tenant's own name with its parent's full name."""
    if parent_full_name is None:
        return name
    return f"{parent_full_name}{FULL_NAME_SEPARATOR}{name}"
