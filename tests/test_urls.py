"""
Tests for agent_scraper/core/urls.py

Absolute URL resolution, profile URL canonicalization and search URL
construction (including startUrl pagination).
"""

import pytest


# =============================================================================
# TEST: to_absolute_url
# =============================================================================


class TestToAbsoluteUrl:
    """Tests for to_absolute_url()."""

    def test_absolute_url_unchanged(self):
        from agent_scraper.core.urls import to_absolute_url

        url = "https://www.propertyfinder.ae/en/agent/jane-doe-1"
        assert to_absolute_url(url) == url

    def test_relative_path_joined_to_base(self):
        from agent_scraper.core.urls import to_absolute_url

        assert to_absolute_url("/en/agent/jane-doe-1") == "https://www.propertyfinder.ae/en/agent/jane-doe-1"

    def test_protocol_relative_gets_https(self):
        from agent_scraper.core.urls import to_absolute_url

        assert to_absolute_url("//cdn.example.com/a.png") == "https://cdn.example.com/a.png"

    @pytest.mark.parametrize("value", [None, "", "   ", 42, {"url": "/x"}])
    def test_empty_or_non_string_is_none(self, value):
        from agent_scraper.core.urls import to_absolute_url

        assert to_absolute_url(value) is None

    def test_non_http_scheme_is_none(self):
        from agent_scraper.core.urls import to_absolute_url

        assert to_absolute_url("javascript:void(0)") is None
        assert to_absolute_url("mailto:jane@acme.ae") is None

    def test_absolute_without_host_is_none(self):
        from agent_scraper.core.urls import to_absolute_url

        assert to_absolute_url("https://") is None


# =============================================================================
# TEST: canonical_profile_url
# =============================================================================


class TestCanonicalProfileUrl:
    """Tests for the dedup key of an agent."""

    def test_strips_query_fragment_and_trailing_slash(self):
        from agent_scraper.core.urls import canonical_profile_url

        url = "https://WWW.PropertyFinder.ae/en/agent/jane-doe-1/?ref=search#reviews"
        assert canonical_profile_url(url) == "https://www.propertyfinder.ae/en/agent/jane-doe-1"

    def test_relative_and_absolute_forms_collapse(self):
        from agent_scraper.core.urls import canonical_profile_url

        a = canonical_profile_url("/en/agent/jane-doe-1")
        b = canonical_profile_url("https://www.propertyfinder.ae/en/agent/jane-doe-1/")
        assert a == b

    def test_garbage_is_none(self):
        from agent_scraper.core.urls import canonical_profile_url

        assert canonical_profile_url(None) is None
        assert canonical_profile_url("") is None


# =============================================================================
# TEST: profile URL from slug + id
# =============================================================================


class TestBuildProfileUrl:
    """Tests for build_profile_url() and slugify()."""

    def test_slug_and_id(self):
        from agent_scraper.core.urls import build_profile_url

        assert build_profile_url("jane-doe", 42) == "https://www.propertyfinder.ae/en/agent/jane-doe-42"

    def test_missing_part_is_none(self):
        from agent_scraper.core.urls import build_profile_url

        assert build_profile_url(None, 42) is None
        assert build_profile_url("jane-doe", None) is None
        assert build_profile_url("jane-doe", "") is None

    def test_slugify(self):
        from agent_scraper.core.urls import slugify

        assert slugify("  Jane   Doe ") == "jane-doe"


# =============================================================================
# TEST: build_search_url
# =============================================================================


class TestBuildSearchUrl:
    """Tests for search / pagination URLs."""

    def test_default_search_url(self):
        from agent_scraper.core.urls import build_search_url

        assert build_search_url(page=1) == "https://www.propertyfinder.ae/en/find-agent/search?page=1"

    def test_filters_in_order(self):
        from agent_scraper.core.urls import build_search_url

        url = build_search_url(location="Dubai Marina", language="Arabic", specialization="villa", page=2)
        assert url == (
            "https://www.propertyfinder.ae/en/find-agent/search"
            "?page=2&l=Dubai+Marina&language=Arabic&specialization=villa"
        )

    def test_empty_filters_omitted(self):
        from agent_scraper.core.urls import build_search_url

        url = build_search_url(location="", language=None, specialization="", page=4)
        assert url.endswith("/en/find-agent/search?page=4")

    def test_start_url_only_page_changes(self):
        """Page 3 of a startUrl keeps every other parameter as-is."""
        from agent_scraper.core.urls import build_search_url

        start = "https://www.propertyfinder.ae/en/find-agent/search?l=1&page=1&sort=rank&q=Jane%20Doe"
        assert build_search_url(start_url=start, page=3) == (
            "https://www.propertyfinder.ae/en/find-agent/search?l=1&page=3&sort=rank&q=Jane%20Doe"
        )

    def test_start_url_without_page_param_appends_it(self):
        from agent_scraper.core.urls import build_search_url

        start = "https://www.propertyfinder.ae/en/find-agent/search?l=1"
        assert build_search_url(start_url=start, page=2) == (
            "https://www.propertyfinder.ae/en/find-agent/search?l=1&page=2"
        )

    def test_start_url_wins_over_filters(self):
        from agent_scraper.core.urls import build_search_url

        start = "https://www.propertyfinder.ae/en/find-agent/search?page=1"
        url = build_search_url(start_url=start, location="Dubai", page=2)
        assert url == "https://www.propertyfinder.ae/en/find-agent/search?page=2"

    def test_deterministic(self):
        from agent_scraper.core.urls import build_search_url

        assert build_search_url(location="Dubai", page=5) == build_search_url(location="Dubai", page=5)
