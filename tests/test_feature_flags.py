"""Tests for tenancy/domain feature-flag inheritance."""

import pytest

from src.domain.models.tenancy_models import FlagOverride, SmtpDomain
from src.domain.services.feature_flags import (
    as_override,
    effective_flag,
    effective_flags,
    validate_override,
    validate_overrides,
)
from tests.fakes import make_tenancy


@pytest.mark.parametrize(
    "tenancy_value,override,expected",
    [
        (True, FlagOverride.INHERIT, True),
        (False, FlagOverride.INHERIT, False),
        (True, FlagOverride.DISABLED, False),
        (False, FlagOverride.DISABLED, False),
        (True, FlagOverride.ENABLED, True),
        (True, None, True),
        (False, None, False),
        (True, False, False),
    ],
)
def test_effective_flag(tenancy_value, override, expected):
    assert effective_flag(tenancy_value, override) is expected


def test_enabled_override_is_verbatim_even_over_disabled_tenancy():
    # Validation rejects this pair on write; evaluation does not re-check it.
    assert effective_flag(False, FlagOverride.ENABLED) is True


def test_as_override_accepts_nullable_booleans():
    assert as_override(None) is FlagOverride.INHERIT
    assert as_override(True) is FlagOverride.ENABLED
    assert as_override(False) is FlagOverride.DISABLED
    assert as_override(FlagOverride.DISABLED) is FlagOverride.DISABLED


def test_validate_override_rejects_enabling_forbidden_flag():
    problem = validate_override(False, FlagOverride.ENABLED, field="enablePhotos", tenancy_name="Contoso")

    assert problem is not None
    assert problem.field == "enablePhotos"
    assert "Contoso" in problem.message


@pytest.mark.parametrize(
    "tenancy_value,override",
    [
        (True, FlagOverride.ENABLED),
        (False, FlagOverride.DISABLED),
        (False, FlagOverride.INHERIT),
        (True, FlagOverride.DISABLED),
    ],
)
def test_validate_override_accepts(tenancy_value, override):
    assert validate_override(tenancy_value, override) is None


def test_effective_flags_for_domain():
    tenancy = make_tenancy(enable_photos=False, enable_local_groups=True)
    domain = SmtpDomain(
        id="d-1",
        domain="contoso.com",
        tenancy_id=tenancy.id,
        enable_presence=FlagOverride.DISABLED,
    )

    assert effective_flags(tenancy, domain) == {
        "enable_presence": False,
        "enable_photos": False,
        "enable_out_of_office": True,
        "enable_local_groups": True,
        "enable_global_groups": False,
    }


def test_validate_overrides_names_field_and_tenancy():
    tenancy = make_tenancy(name="Fabrikam", enable_photos=False)

    errors = validate_overrides(
        tenancy,
        {"enable_photos": FlagOverride.ENABLED, "enable_presence": FlagOverride.ENABLED},
    )

    assert list(errors) == ["enablePhotos"]
    assert "Fabrikam" in errors["enablePhotos"]


def test_validate_overrides_defaults_to_inherit():
    assert validate_overrides(make_tenancy(enable_photos=False), {}) == {}
