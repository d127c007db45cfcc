from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status

from src.api.routers.proposal_http_errors import (
    HTTP_422_UNPROCESSABLE,
    raise_proposal_http_exception,
)
from src.api.routers.proposals_config import build_links, get_proposal_store
from src.core.common.sanitize import generate_id
from src.core.proposals import (
    NotFoundError,
    Proposal,
    ProposalCreateRequest,
    ProposalCreateResponse,
    ProposalLinks,
    ProposalLinksResponse,
    ProposalStatusUpdateRequest,
    ProposalStatusUpdateResponse,
    ProposalStore,
    ProposalStoreError,
)

router = APIRouter(tags=["Proposals"])

ProposalIdPath = Annotated[
    str,
    Path(
        description="Proposal identifier (`val_` followed by letters, digits, `_` or `-`).",
        examples=["val_6f1c2d8e-3b7a-4c55-9d0e-1f2a3b4c5d6e"],
    ),
]


def _links_response(links: ProposalLinks, proposal_id: str) -> ProposalLinksResponse:
    return ProposalLinksResponse(
        proposal_id=proposal_id,
        respond_url=links.respond(proposal_id),
        track_url=links.track(proposal_id),
        celebrate_url=links.celebrate(proposal_id),
    )


@router.post(
    "/proposals",
    response_model=ProposalCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Proposal",
    description=(
        "Sanitizes names, coerces genders, and writes a new `pending` proposal. "
        "Never overwrites an existing record with the same identifier."
    ),
)
def create_proposal(
    payload: ProposalCreateRequest,
    store: Annotated[ProposalStore, Depends(get_proposal_store)],
    links: Annotated[ProposalLinks, Depends(build_links)],
) -> ProposalCreateResponse:
    proposal_id = payload.proposal_id if payload.proposal_id is not None else generate_id()
    try:
        proposal = store.create(
            proposal_id,
            proposer_name=payload.proposer_name,
            proposer_gender=payload.proposer_gender,
            partner_name=payload.partner_name,
            partner_gender=payload.partner_gender,
        )
    except ProposalStoreError as exc:
        raise_proposal_http_exception(exc)
    return ProposalCreateResponse(proposal=proposal, links=_links_response(links, proposal_id))


@router.get(
    "/proposals/{proposal_id}",
    response_model=Proposal,
    status_code=status.HTTP_200_OK,
    summary="Get Proposal",
    description=(
        "Returns the sanitized proposal. Invalid, missing, and unreadable records all "
        "answer 404."
    ),
)
def get_proposal(
    proposal_id: ProposalIdPath,
    store: Annotated[ProposalStore, Depends(get_proposal_store)],
) -> Proposal:
    proposal = store.get(proposal_id)
    if proposal is None:
        raise_proposal_http_exception(NotFoundError("PROPOSAL_NOT_FOUND"))
    return proposal


@router.patch(
    "/proposals/{proposal_id}/status",
    response_model=ProposalStatusUpdateResponse,
    status_code=status.HTTP_200_OK,
    summary="Update Proposal Status",
    description=(
        "Partial update restricted to `status` (`opened` or `accepted`) and numeric "
        "`opened_at`/`accepted_at`. Other fields are dropped. The prior status is not checked."
    ),
)
def update_proposal_status(
    proposal_id: ProposalIdPath,
    payload: ProposalStatusUpdateRequest,
    store: Annotated[ProposalStore, Depends(get_proposal_store)],
) -> ProposalStatusUpdateResponse:
    updated = store.update_status(proposal_id, payload.model_dump(exclude_none=True))
    if not updated:
        raise HTTPException(
            status_code=HTTP_422_UNPROCESSABLE,
            detail="PROPOSAL_STATUS_UPDATE_REJECTED",
        )
    return ProposalStatusUpdateResponse(proposal_id=proposal_id, updated=True)


@router.get(
    "/proposals/{proposal_id}/links",
    response_model=ProposalLinksResponse,
    status_code=status.HTTP_200_OK,
    summary="Get Proposal Links",
    description="Returns the respond, tracking, and celebration links for a proposal.",
)
def get_proposal_links(
    proposal_id: ProposalIdPath,
    store: Annotated[ProposalStore, Depends(get_proposal_store)],
    links: Annotated[ProposalLinks, Depends(build_links)],
) -> ProposalLinksResponse:
    if store.get(proposal_id) is None:
        raise_proposal_http_exception(NotFoundError("PROPOSAL_NOT_FOUND"))
    return _links_response(links, proposal_id)
