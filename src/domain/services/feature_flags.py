"""
Feature-flag inheritance between a tenancy and its SMTP domains.

A tenancy's boolean flags are a ceiling. Each domain may inherit a flag,
explicitly disable it, or explicitly enable it when the tenancy allows it.
"""
from typing import Dict, Mapping, Optional, Union

from src.domain.models.errors import InvalidOverride
from src.domain.models.tenancy_models import (
    FLAG_FIELD_NAMES,
    OVERRIDABLE_FLAGS,
    FlagOverride,
    OfficeTenancy,
    SmtpDomain,
)

OverrideValue = Union[FlagOverride, Optional[bool]]


def as_override(value: OverrideValue) -> FlagOverride:
    """Accept either the tagged override or its nullable-boolean form."""
    if isinstance(value, FlagOverride):
        return value
    return FlagOverride.from_nullable(value)


def effective_flag(tenancy_value: bool, domain_override: OverrideValue) -> bool:
    """
    Effective value of a flag for a domain.

    Args:
        tenancy_value: Tenancy-level flag
        domain_override: Domain override (inherit, enabled, disabled)

    Returns:
        The tenancy value when inheriting, otherwise the override verbatim
    """
    override = as_override(domain_override)
    if override is FlagOverride.INHERIT:
        return bool(tenancy_value)
    if override is FlagOverride.ENABLED:
        return True
    if override is FlagOverride.DISABLED:
        return False
    raise ValueError(f"Unknown flag override: {override!r}")


def validate_override(
    tenancy_value: bool,
    domain_override: OverrideValue,
    field: str = "",
    tenancy_name: Optional[str] = None
) -> Optional[InvalidOverride]:
    """
    Reject a domain override that grants what the tenancy forbids.

    Returns:
        InvalidOverride when the override is ENABLED and the tenancy flag
        is False, otherwise None
    """
    if as_override(domain_override) is FlagOverride.ENABLED and not tenancy_value:
        return InvalidOverride(field=field, tenancy_name=tenancy_name)
    return None


def effective_flags(tenancy: OfficeTenancy, domain: SmtpDomain) -> Dict[str, bool]:
    """Effective value of every overridable flag for a tenancy/domain pair."""
    return {
        flag: effective_flag(tenancy.flag(flag), domain.override(flag))
        for flag in OVERRIDABLE_FLAGS
    }


def validate_overrides(
    tenancy: OfficeTenancy,
    overrides: Mapping[str, OverrideValue]
) -> Dict[str, str]:
    """
    Validate a full set of domain overrides against a tenancy.

    Args:
        tenancy: Parent tenancy
        overrides: Flag attribute name -> override

    Returns:
        Wire field name -> error message, empty when valid
    """
    errors: Dict[str, str] = {}
    for flag in OVERRIDABLE_FLAGS:
        field = FLAG_FIELD_NAMES[flag]
        problem = validate_override(
            tenancy.flag(flag),
            overrides.get(flag, FlagOverride.INHERIT),
            field=field,
            tenancy_name=tenancy.name,
        )
        if problem:
            errors[field] = problem.message
    return errors
