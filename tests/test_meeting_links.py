import pytest

from portal.utils.meeting_links import resolve_meeting_link, MEETING_LINKS, DEFAULT_MEETING_LINK


class TestResolveMeetingLink:
    @pytest.mark.parametrize("organization", [
        "TE Connectivity, Shirwal",
        "BSA Plant, Chakan",
        "Belden India",
    ])
    def test_named_organizations_get_their_link(self, organization):
        link = resolve_meeting_link("Asha", "IITP1", organization)
        assert link == MEETING_LINKS[organization]
        assert link != DEFAULT_MEETING_LINK

    def test_links_are_distinct(self):
        assert len(set(MEETING_LINKS.values()) | {DEFAULT_MEETING_LINK}) == 4

    @pytest.mark.parametrize("organization", [
        "",
        "   ",
        "belden india",
        "BELDEN INDIA",
        " Belden India",
        "Belden India ",
        "TE Connectivity Shirwal",
        "Some Other Plant",
        None,
    ])
    def test_everything_else_gets_default(self, organization):
        assert resolve_meeting_link("Asha", "IITP1", organization) == DEFAULT_MEETING_LINK

    def test_name_and_iitp_no_do_not_affect_result(self):
        a = resolve_meeting_link("A", "1", "BSA Plant, Chakan")
        b = resolve_meeting_link("Someone Else", "999", "BSA Plant, Chakan")
        assert a == b


class TestResolveRoute:
    def test_resolve_endpoint(self, client):
        resp = client.post("/api/links/resolve", json={
            "name": "Asha", "iitpNo": "IITP1", "organization": "Belden India"
        })
        assert resp.status_code == 200
        assert resp.get_json()["meetingLink"] == MEETING_LINKS["Belden India"]

    def test_resolve_endpoint_default(self, client):
        resp = client.post("/api/links/resolve", json={"organization": "belden india"})
        assert resp.get_json()["meetingLink"] == DEFAULT_MEETING_LINK

    def test_organizations_listed(self, client):
        resp = client.get("/api/links/organizations")
        assert resp.get_json()["organizations"] == list(MEETING_LINKS)
