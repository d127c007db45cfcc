from typing import Any, Mapping, Optional, Union
from urllib.parse import parse_qs, quote

from src.core.common.sanitize import is_valid_id

PAGE_FILES = {
    "home": "index.html",
    "respond": "proposal.html",
    "track": "tracking.html",
    "celebrate": "celebration.html",
}
SHARE_TEXT = "Create your own Valentine surprise 💘"


def normalize_base_url(base_url: str) -> str:
    base_url = base_url.strip()
    return base_url if base_url.endswith("/") else f"{base_url}/"


def proposal_id_from_query(query: Union[str, Mapping[str, Any], None]) -> Optional[str]:
    """Return the `id` query parameter only when it is a well-formed proposal id."""
    if query is None:
        return None
    if isinstance(query, str):
        values = parse_qs(query.lstrip("?")).get("id")
        candidate: Any = values[0] if values else None
    else:
        candidate = query.get("id")
    return candidate if is_valid_id(candidate) else None


class ProposalLinks:
    def __init__(self, *, base_url: str) -> None:
        self._base_url = normalize_base_url(base_url)

    @property
    def base_url(self) -> str:
        return self._base_url

    def home(self) -> str:
        return f"{self._base_url}{PAGE_FILES['home']}"

    def respond(self, proposal_id: str) -> str:
        return self._page_link("respond", proposal_id)

    def track(self, proposal_id: str) -> str:
        return self._page_link("track", proposal_id)

    def celebrate(self, proposal_id: str) -> str:
        return self._page_link("celebrate", proposal_id)

    def share_links(self, text: str = SHARE_TEXT) -> dict[str, str]:
        homepage = self._base_url
        return {
            "homepage": homepage,
            "whatsapp": f"https://wa.me/?text={quote(f'{text} {homepage}', safe='')}",
            "telegram": (
                f"https://t.me/share/url?url={quote(homepage, safe='')}"
                f"&text={quote(text, safe='')}"
            ),
        }

    def _page_link(self, page: str, proposal_id: str) -> str:
        if not is_valid_id(proposal_id):
            return self._base_url
        return f"{self._base_url}{PAGE_FILES[page]}?id={quote(proposal_id, safe='')}"
