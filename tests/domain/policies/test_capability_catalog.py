from __future__ import annotations

import pytest

from mediaconv.domain.dataclasses.capabilities import Resolution
from mediaconv.domain.enums.file_format import TargetFormat
from mediaconv.domain.policies.capability_catalog import FALLBACK_RESOLUTION, CapabilityCatalog


@pytest.fixture()
def catalog() -> CapabilityCatalog:
    return CapabilityCatalog()


def test_catalog_covers_every_target_format(catalog):
    assert set(catalog.formats()) == {f.value for f in TargetFormat}


@pytest.mark.parametrize("fmt", [f.value for f in TargetFormat])
def test_capabilities_have_positive_bounds(catalog, fmt):
    caps = catalog.get_capabilities(fmt)
    assert caps is not None
    for res in (caps.max_resolution, caps.min_resolution):
        assert res.width > 0 and res.height > 0
    assert caps.min_resolution.fits_within(caps.max_resolution)


def test_lookup_normalizes_format_key(catalog):
    assert catalog.get_capabilities(".MPEG") is catalog.get_capabilities("mpeg")
    assert catalog.get_capabilities("nope") is None
    assert catalog.get_capabilities(None) is None


@pytest.mark.parametrize("fmt", [f.value for f in TargetFormat])
def test_resolution_support_boundaries(catalog, fmt):
    caps = catalog.get_capabilities(fmt)
    mx, mn = caps.max_resolution, caps.min_resolution

    assert catalog.is_resolution_supported(mx.width, mx.height, fmt).supported
    assert catalog.is_resolution_supported(mn.width, mn.height, fmt).supported
    assert not catalog.is_resolution_supported(mx.width + 1, mx.height, fmt).supported
    assert not catalog.is_resolution_supported(mx.width, mx.height + 1, fmt).supported
    assert not catalog.is_resolution_supported(mn.width - 1, mn.height, fmt).supported
    assert not catalog.is_resolution_supported(mn.width, mn.height - 1, fmt).supported


def test_resolution_support_reasons(catalog):
    over = catalog.is_resolution_supported(3840, 2160, "mpeg")
    assert over.reason == "Resolution 3840x2160 exceeds MPEG maximum 1920x1080"
    assert over.bound == Resolution(1920, 1080)

    under = catalog.is_resolution_supported(320, 200, "mpeg")
    assert "below MPEG minimum" in under.reason

    unknown = catalog.is_resolution_supported(640, 480, "xyz")
    assert not unknown.supported and unknown.reason == "Unknown format"


def test_frame_rate_support(catalog):
    assert catalog.is_frame_rate_supported(29.97, "mpeg")
    assert catalog.is_frame_rate_supported(30000 / 1001, "mpeg")
    assert not catalog.is_frame_rate_supported(12.0, "mpeg")
    # unrestricted formats take anything
    assert catalog.is_frame_rate_supported(12.0, "mp4")
    assert not catalog.is_frame_rate_supported(None, "mp4")
    assert not catalog.is_frame_rate_supported(25, "xyz")


def test_fallback_for_oversized_source_keeps_aspect_and_bound(catalog):
    assert catalog.get_safe_fallback_resolution("mpeg", 3840, 2160) == Resolution(1920, 1080)
    # tall 4:3 source: height is the constraining axis
    assert catalog.get_safe_fallback_resolution("mpeg", 2880, 2160) == Resolution(1440, 1080)
    # very wide source: width constrains
    assert catalog.get_safe_fallback_resolution("wmv", 4096, 1716) == Resolution(1920, 804)


def test_fallback_for_fitting_source_floors_to_even(catalog):
    assert catalog.get_safe_fallback_resolution("mpeg", 721, 481) == Resolution(720, 480)
    assert catalog.get_safe_fallback_resolution("mpeg", 720, 576) == Resolution(720, 576)


@pytest.mark.parametrize("src", [(3840, 2160), (4096, 2160), (1921, 1081), (7000, 1000), (1000, 7000)])
def test_fallback_always_even_and_within_max(catalog, src):
    res = catalog.get_safe_fallback_resolution("mpeg", *src)
    assert res.is_even
    assert res.fits_within(Resolution(1920, 1080))
    assert res.area < src[0] * src[1]


def test_fallback_for_unknown_format(catalog):
    assert catalog.get_safe_fallback_resolution("xyz", 3840, 2160) == FALLBACK_RESOLUTION


def test_recommended_sub_profile(catalog):
    assert catalog.get_recommended_sub_profile("mpeg", "dvd").max_resolution == Resolution(720, 576)
    assert catalog.get_recommended_sub_profile("mpeg", "TV").name == "broadcast"
    assert catalog.get_recommended_sub_profile("mpeg").name == "hd"

    general = catalog.get_recommended_sub_profile("mp4")
    assert general.name == "general"
    assert general.max_resolution == catalog.get_capabilities("mp4").max_resolution
    assert catalog.get_recommended_sub_profile("xyz") is None
