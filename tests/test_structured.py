"""
Tests for agent_scraper/sites/propertyfinder/structured.py

Embedded application state (__NEXT_DATA__) and JSON-LD extraction tiers.
"""


# =============================================================================
# TEST: __NEXT_DATA__
# =============================================================================


class TestExtractNextData:
    """Tests for extract_next_data()."""

    def test_brokers_list(self, next_data_html, raw_agent):
        from agent_scraper.sites.propertyfinder.structured import extract_next_data

        html = next_data_html({"brokers": [raw_agent(1), raw_agent(2)]})
        agents = extract_next_data(html)

        assert [a["name"] for a in agents] == ["Agent 1", "Agent 2"]
        assert agents[0]["profileUrl"] == "https://www.propertyfinder.ae/en/agent/agent-1-1"
        assert agents[0]["company"] == "Acme Realty"

    def test_path_order_brokers_before_agents(self, next_data_html, raw_agent):
        from agent_scraper.sites.propertyfinder.structured import extract_next_data

        html = next_data_html({"agents": [raw_agent(2)], "brokers": [raw_agent(1)]})
        assert [a["name"] for a in extract_next_data(html)] == ["Agent 1"]

    def test_empty_list_does_not_stop_probing(self, next_data_html, raw_agent):
        from agent_scraper.sites.propertyfinder.structured import extract_next_data

        html = next_data_html({"agents": [], "searchResult": {"brokers": [raw_agent(5)]}})
        assert [a["name"] for a in extract_next_data(html)] == ["Agent 5"]

    def test_single_agent_object_is_promoted(self, next_data_html, raw_agent):
        from agent_scraper.sites.propertyfinder.structured import extract_next_data

        html = next_data_html({"agent": raw_agent(9)})
        agents = extract_next_data(html)
        assert len(agents) == 1
        assert agents[0]["agentId"] == "9"

    def test_unnormalizable_entries_dropped(self, next_data_html, raw_agent):
        from agent_scraper.sites.propertyfinder.structured import extract_next_data

        html = next_data_html({"brokers": [{"email": "x@y.io"}, raw_agent(3), "junk"]})
        assert [a["name"] for a in extract_next_data(html)] == ["Agent 3"]

    def test_no_script_tag(self, empty_html):
        from agent_scraper.sites.propertyfinder.structured import extract_next_data

        assert extract_next_data(empty_html) == []

    def test_malformed_json_is_empty_not_error(self):
        from agent_scraper.sites.propertyfinder.structured import extract_next_data

        html = '<html><script id="__NEXT_DATA__">{"props": {"pageProps": </script></html>'
        assert extract_next_data(html) == []

    def test_no_known_path(self, next_data_html):
        from agent_scraper.sites.propertyfinder.structured import extract_next_data

        assert extract_next_data(next_data_html({"listings": [{"name": "Villa"}]})) == []

    def test_load_next_data_from_parsed_soup(self, next_data_html, raw_agent):
        """The script body comes back from bs4 as a NavigableString, not a plain str."""
        from bs4 import BeautifulSoup

        from agent_scraper.sites.propertyfinder.structured import load_next_data

        soup = BeautifulSoup(next_data_html({"brokers": [raw_agent(1)]}), "lxml")
        assert type(soup.select_one("script#__NEXT_DATA__").string) is not str

        data = load_next_data(soup)
        assert data["props"]["pageProps"]["brokers"][0]["name"] == "Agent 1"

    def test_find_agent_list_reports_path(self):
        from agent_scraper.sites.propertyfinder.structured import find_agent_list

        path, found = find_agent_list({"data": {"agents": [{"name": "A"}]}})
        assert path == ("data", "agents")
        assert found == [{"name": "A"}]


# =============================================================================
# TEST: JSON-LD
# =============================================================================


class TestJsonLd:
    """Tests for find_json_ld_agent() / extract_json_ld()."""

    def test_graph_picks_agent_entity(self, json_ld_html):
        from agent_scraper.sites.propertyfinder.structured import extract_json_ld

        html = json_ld_html(
            {
                "@context": "https://schema.org",
                "@graph": [
                    {"@type": "Organization", "name": "Property Finder"},
                    {
                        "@type": "RealEstateAgent",
                        "name": "Jane Doe",
                        "telephone": "+971 4 555 0000",
                        "url": "https://www.propertyfinder.ae/en/agent/jane-doe-1/",
                        "worksFor": {"@type": "Organization", "name": "Acme Realty"},
                        "address": {"addressLocality": "Dubai"},
                    },
                ],
            }
        )
        agents = extract_json_ld(html)

        assert len(agents) == 1
        rec = agents[0]
        assert rec["name"] == "Jane Doe"
        assert rec["phone"] == "+971 4 555 0000"
        assert rec["company"] == "Acme Realty"
        assert rec["location"] == "Dubai"
        assert rec["profileUrl"] == "https://www.propertyfinder.ae/en/agent/jane-doe-1"

    def test_type_list_and_bad_block(self):
        from agent_scraper.sites.propertyfinder.structured import find_json_ld_agent

        html = (
            "<html><head>"
            '<script type="application/ld+json">{not json</script>'
            '<script type="application/ld+json">[{"@type": ["Person"], "name": "Omar Ali"}]</script>'
            "</head></html>"
        )
        assert find_json_ld_agent(html)["name"] == "Omar Ali"

    def test_single_person_block(self, json_ld_html):
        from agent_scraper.sites.propertyfinder.structured import find_json_ld_agent

        found = find_json_ld_agent(json_ld_html({"@type": "Person", "name": "LD Person"}))
        assert found == {"@type": "Person", "name": "LD Person"}

    def test_no_agent_type(self, json_ld_html):
        from agent_scraper.sites.propertyfinder.structured import extract_json_ld

        assert extract_json_ld(json_ld_html({"@type": "WebSite", "name": "Property Finder"})) == []


class TestExtractStructured:
    """Embedded state wins over JSON-LD."""

    def test_next_data_first(self, raw_agent):
        import orjson

        from agent_scraper.sites.propertyfinder.structured import extract_structured

        state = orjson.dumps({"props": {"pageProps": {"brokers": [raw_agent(1)]}}}).decode()
        ld = orjson.dumps({"@type": "Person", "name": "LD Person"}).decode()
        html = (
            f'<html><head><script id="__NEXT_DATA__">{state}</script>'
            f'<script type="application/ld+json">{ld}</script></head></html>'
        )
        assert [a["name"] for a in extract_structured(html)] == ["Agent 1"]

    def test_falls_back_to_json_ld(self, json_ld_html):
        from agent_scraper.sites.propertyfinder.structured import extract_structured

        assert [a["name"] for a in extract_structured(json_ld_html({"@type": "Person", "name": "LD Person"}))] == [
            "LD Person"
        ]
