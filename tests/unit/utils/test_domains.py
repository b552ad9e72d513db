"""Tests for host normalization and origin matching."""

import pytest

from src.utils.domains import (
    extract_origin_host,
    host_matches,
    match_registered_host,
    normalize_host,
)


class TestNormalizeHost:
    @pytest.mark.parametrize(
        "value",
        [
            "popeye.com",
            "POPEYE.com",
            "https://popeye.com",
            "https://popeye.com/path?x=1",
            "popeye.com:443",
            "  Popeye.com.  ",
        ],
    )
    def test_reduces_to_bare_host(self, value):
        assert normalize_host(value) == "popeye.com"

    def test_keeps_other_subdomains(self):
        assert normalize_host("https://shop.popeye.com") == "shop.popeye.com"

    def test_keeps_www(self):
        assert normalize_host("https://WWW.Popeye.com/") == "www.popeye.com"

    @pytest.mark.parametrize(
        "value",
        ["", "   ", "localhost", "not a domain", "-bad-.com", "popeye", "http://"],
    )
    def test_rejects_invalid_values(self, value):
        with pytest.raises(ValueError):
            normalize_host(value)


class TestExtractOriginHost:
    def test_prefers_origin(self):
        assert (
            extract_origin_host("https://popeye.com", "https://other.com/page")
            == "popeye.com"
        )

    def test_falls_back_to_referer(self):
        assert (
            extract_origin_host(None, "https://www.popeye.com/blog/post?id=3")
            == "www.popeye.com"
        )

    def test_strips_port(self):
        assert extract_origin_host("http://popeye.com:8080", None) == "popeye.com"

    def test_null_origin_counts_as_missing(self):
        assert extract_origin_host("null", None) is None
        assert extract_origin_host("null", "https://popeye.com/") == "popeye.com"

    def test_missing_headers(self):
        assert extract_origin_host(None, None) is None
        assert extract_origin_host("", "") is None

    def test_value_without_scheme_has_no_host(self):
        assert extract_origin_host("popeye.com", None) is None

    @pytest.mark.parametrize("origin", ["popeye.com", "http://[::1", "https://"])
    def test_unusable_origin_falls_back_to_referer(self, origin):
        assert extract_origin_host(origin, "https://olive.com/page") == "olive.com"


class TestHostMatching:
    def test_exact_match(self):
        assert host_matches("popeye.com", "popeye.com", allow_subdomains=False)

    def test_www_is_a_subdomain_like_any_other(self):
        assert not host_matches("www.popeye.com", "popeye.com", allow_subdomains=False)
        assert host_matches("www.popeye.com", "popeye.com", allow_subdomains=True)
        assert host_matches("www.popeye.com", "www.popeye.com", allow_subdomains=False)

    def test_subdomain_requires_tier_support(self):
        assert not host_matches("shop.popeye.com", "popeye.com", allow_subdomains=False)
        assert host_matches("shop.popeye.com", "popeye.com", allow_subdomains=True)
        assert host_matches("a.b.popeye.com", "popeye.com", allow_subdomains=True)

    def test_registered_subdomain_never_covers_its_parent(self):
        assert not host_matches("popeye.com", "www.popeye.com", allow_subdomains=True)

    def test_suffix_without_dot_boundary_never_matches(self):
        assert not host_matches("notpopeye.com", "popeye.com", allow_subdomains=True)
        assert not host_matches("popeye.com.evil.io", "popeye.com", allow_subdomains=True)

    def test_case_insensitive(self):
        assert host_matches("Popeye.COM", "popeye.com", allow_subdomains=False)

    def test_exact_match_wins_over_subdomain(self):
        registered = ["popeye.com", "shop.popeye.com"]
        assert (
            match_registered_host("shop.popeye.com", registered, allow_subdomains=True)
            == "shop.popeye.com"
        )

    def test_no_match_returns_none(self):
        assert match_registered_host("olive.com", ["popeye.com"], True) is None
