from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

ProposalStatus = Literal["pending", "opened", "accepted"]
ProposalGender = Literal["male", "female"]
ProposalLifecycleEvent = Literal["OPEN", "ACCEPT"]


class Proposal(BaseModel):
    proposal_id: str = Field(
        description="Proposal identifier, also the record key in the proposals collection.",
        examples=["val_6f1c2d8e-3b7a-4c55-9d0e-1f2a3b4c5d6e"],
    )
    proposer_name: str = Field(
        description="Sanitized name of the person proposing.",
        examples=["Sam"],
    )
    proposer_gender: ProposalGender = Field(
        description="Proposer gender used for theming.",
        examples=["male"],
    )
    partner_name: str = Field(
        description="Sanitized name of the person being asked.",
        examples=["Ari"],
    )
    partner_gender: ProposalGender = Field(
        description="Partner gender used for pronoun-aware status messages.",
        examples=["female"],
    )
    status: ProposalStatus = Field(
        description="Lifecycle status; only moves pending -> opened -> accepted.",
        examples=["pending"],
    )
    created_at: int = Field(
        description="Creation time in epoch milliseconds.",
        examples=[1771063200000],
    )
    opened_at: Optional[int] = Field(
        default=None,
        description="Epoch milliseconds of the first open by the partner.",
        examples=[1771063500000],
    )
    accepted_at: Optional[int] = Field(
        default=None,
        description="Epoch milliseconds of acceptance.",
        examples=[1771063800000],
    )

    def to_record(self) -> dict[str, Any]:
        """Record body as persisted in the realtime store (camelCase keys, no id)."""
        return {
            "proposerName": self.proposer_name,
            "proposerGender": self.proposer_gender,
            "partnerName": self.partner_name,
            "partnerGender": self.partner_gender,
            "status": self.status,
            "createdAt": self.created_at,
            "openedAt": self.opened_at,
            "acceptedAt": self.accepted_at,
        }


class ProposalCreateRequest(BaseModel):
    proposal_id: Optional[str] = Field(
        default=None,
        description="Optional caller-generated identifier; generated server-side when omitted.",
        examples=["val_6f1c2d8e-3b7a-4c55-9d0e-1f2a3b4c5d6e"],
    )
    proposer_name: str = Field(
        description="Proposer name; markup is stripped and the value truncated to 30 chars.",
        examples=["Sam"],
    )
    proposer_gender: Optional[str] = Field(
        default=None,
        description="`female` or `male`; anything else is stored as `male`.",
        examples=["male"],
    )
    partner_name: str = Field(
        description="Partner name; markup is stripped and the value truncated to 30 chars.",
        examples=["Ari"],
    )
    partner_gender: Optional[str] = Field(
        default=None,
        description="`female` or `male`; anything else is stored as `male`.",
        examples=["female"],
    )


class ProposalLinksResponse(BaseModel):
    proposal_id: str = Field(description="Proposal identifier.", examples=["val_abc123def"])
    respond_url: str = Field(
        description="Link the partner opens to respond.",
        examples=["http://localhost:8000/proposal.html?id=val_abc123def"],
    )
    track_url: str = Field(
        description="Link the proposer keeps to follow the status live.",
        examples=["http://localhost:8000/tracking.html?id=val_abc123def"],
    )
    celebrate_url: str = Field(
        description="Celebration page shown after acceptance.",
        examples=["http://localhost:8000/celebration.html?id=val_abc123def"],
    )


class ProposalCreateResponse(BaseModel):
    proposal: Proposal = Field(description="Created proposal record.")
    links: ProposalLinksResponse = Field(description="Shareable links for the new proposal.")


class ProposalStatusUpdateRequest(BaseModel):
    status: Optional[Any] = Field(
        default=None,
        description="Target status; only `opened` and `accepted` are settable.",
        examples=["opened"],
    )
    opened_at: Optional[Any] = Field(
        default=None,
        description="Epoch milliseconds; ignored unless numeric.",
        examples=[1771063500000],
    )
    accepted_at: Optional[Any] = Field(
        default=None,
        description="Epoch milliseconds; ignored unless numeric.",
        examples=[1771063800000],
    )


class ProposalStatusUpdateResponse(BaseModel):
    proposal_id: str = Field(description="Proposal identifier.", examples=["val_abc123def"])
    updated: bool = Field(description="Whether a partial update was written.", examples=[True])
