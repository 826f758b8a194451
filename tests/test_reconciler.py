"""
Tests for agent_scraper/core/reconciler.py

Listing/detail merge policy and completeness scoring.
"""

import pytest


def _record(**values):
    from agent_scraper.core.schema import empty_agent_record

    rec = empty_agent_record()
    rec.update(values)
    return rec


# =============================================================================
# TEST: merge_listing_with_detail
# =============================================================================


class TestMerge:
    """Tests for merge_listing_with_detail()."""

    def test_no_detail_is_identity(self):
        from agent_scraper.core.reconciler import merge_listing_with_detail

        listing = _record(name="Jane", email="jane@acme.ae")
        merged = merge_listing_with_detail(listing, None)

        assert merged == listing
        assert merged is not listing

    def test_detail_preferred_fields_override(self):
        from agent_scraper.core.reconciler import merge_listing_with_detail

        listing = _record(name="Jane", description="Short", experience=3)
        detail = _record(description="Long bio from profile", experience=12, specializations=["Villa"])

        merged = merge_listing_with_detail(listing, detail)

        assert merged["description"] == "Long bio from profile"
        assert merged["experience"] == 12
        assert merged["specializations"] == ["Villa"]

    def test_other_fields_only_fill_gaps(self):
        from agent_scraper.core.reconciler import merge_listing_with_detail

        listing = _record(name="Jane", email="jane@acme.ae", phone="")
        detail = _record(name="Jane D.", email="other@acme.ae", phone="+971501234567", company="Acme")

        merged = merge_listing_with_detail(listing, detail)

        assert merged["name"] == "Jane"
        assert merged["email"] == "jane@acme.ae"
        assert merged["phone"] == "+971501234567"
        assert merged["company"] == "Acme"

    def test_detail_none_values_never_erase(self):
        from agent_scraper.core.reconciler import merge_listing_with_detail

        listing = _record(name="Jane", description="Short")
        merged = merge_listing_with_detail(listing, _record())

        assert merged["description"] == "Short"
        assert merged["name"] == "Jane"


# =============================================================================
# TEST: compute_completeness
# =============================================================================


class TestCompleteness:
    """Tests for compute_completeness()."""

    def test_empty_record(self):
        from agent_scraper.core.reconciler import compute_completeness

        score = compute_completeness(_record())
        assert score.percentage == 0
        assert score.filled == 0
        assert score.total == 15
        assert score.has_critical is False

    def test_critical_only(self):
        from agent_scraper.core.reconciler import compute_completeness

        score = compute_completeness(
            _record(
                name="Jane",
                email="jane@acme.ae",
                phone="+971501234567",
                company="Acme",
                profileUrl="https://www.propertyfinder.ae/en/agent/jane-1",
            )
        )
        assert score.filled == 5
        assert score.percentage == 33
        assert score.has_critical is True

    def test_half_up_rounding(self):
        from agent_scraper.core.reconciler import compute_completeness

        # 1/15 = 6.67 -> 7, 2/15 = 13.33 -> 13
        assert compute_completeness(_record(name="Jane")).percentage == 7
        assert compute_completeness(_record(name="Jane", rating=4.5)).percentage == 13

    def test_every_scored_field_is_100(self):
        from agent_scraper.core.reconciler import ALL_SCORED_FIELDS, compute_completeness

        score = compute_completeness(_record(**{f: "x" for f in ALL_SCORED_FIELDS}))
        assert score.percentage == 100
        assert score.filled == score.total

    def test_zero_counts_as_filled(self):
        from agent_scraper.core.reconciler import compute_completeness

        assert compute_completeness(_record(totalListings=0)).filled == 1

    @pytest.mark.parametrize("value", [[], "", "   "])
    def test_empty_values_not_counted(self, value):
        from agent_scraper.core.reconciler import compute_completeness

        assert compute_completeness(_record(languages=value)).filled == 0

    def test_to_dict_shape(self):
        from agent_scraper.core.reconciler import compute_completeness

        assert compute_completeness(_record(name="Jane")).to_dict() == {
            "percentage": 7,
            "filled": 1,
            "total": 15,
            "hasCritical": False,
        }
