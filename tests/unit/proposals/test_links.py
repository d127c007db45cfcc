from urllib.parse import parse_qs, urlsplit

from src.core.proposals.links import ProposalLinks, normalize_base_url, proposal_id_from_query

PROPOSAL_ID = "val_abc123def"


def test_normalize_base_url_appends_trailing_slash():
    assert normalize_base_url("https://valentine.example") == "https://valentine.example/"
    assert normalize_base_url(" https://valentine.example/app/ ") == (
        "https://valentine.example/app/"
    )


def test_page_links_round_trip_the_id(links):
    for url, page in [
        (links.respond(PROPOSAL_ID), "/proposal.html"),
        (links.track(PROPOSAL_ID), "/tracking.html"),
        (links.celebrate(PROPOSAL_ID), "/celebration.html"),
    ]:
        parts = urlsplit(url)
        assert parts.path == page
        assert proposal_id_from_query(parts.query) == PROPOSAL_ID


def test_page_links_fall_back_to_base_url_for_invalid_ids(links):
    assert links.respond("bad id") == "https://valentine.example/"
    assert links.track("") == "https://valentine.example/"
    assert links.home() == "https://valentine.example/index.html"


def test_proposal_id_from_query_rejects_malformed_values():
    assert proposal_id_from_query("?id=val_abc123def") == PROPOSAL_ID
    assert proposal_id_from_query({"id": PROPOSAL_ID}) == PROPOSAL_ID
    assert proposal_id_from_query("id=val_x") is None
    assert proposal_id_from_query("id=%3Cscript%3E") is None
    assert proposal_id_from_query({"id": ["val_abc123def"]}) is None
    assert proposal_id_from_query("") is None
    assert proposal_id_from_query(None) is None


def test_share_links_point_at_homepage():
    share = ProposalLinks(base_url="https://valentine.example").share_links()

    assert share["homepage"] == "https://valentine.example/"
    whatsapp = parse_qs(urlsplit(share["whatsapp"]).query)["text"][0]
    assert whatsapp == "Create your own Valentine surprise 💘 https://valentine.example/"
    telegram = parse_qs(urlsplit(share["telegram"]).query)
    assert telegram["url"] == ["https://valentine.example/"]
    assert telegram["text"] == ["Create your own Valentine surprise 💘"]
