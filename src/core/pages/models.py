from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from src.core.proposals.models import ProposalStatus

PageState = Literal["READY", "REDIRECT", "ERROR"]
CreateState = Literal["CREATED", "REJECTED", "IGNORED"]
AcceptState = Literal["REDIRECT", "IGNORED", "ERROR"]
TimelineStepState = Literal["completed", "active", "pending"]


class PresentationCue(BaseModel):
    name: str = Field(description="Semantic presentation event name.", examples=["confetti.burst"])
    params: Dict[str, Any] = Field(
        default_factory=dict,
        description="Parameters handed to the presentation collaborator.",
        examples=[{"particle_count": 150, "spread": 100, "origin_y": 0.6}],
    )


class CreateForm(BaseModel):
    proposer_name: Any = Field(default="", description="Raw proposer name input.", examples=["Sam"])
    proposer_gender: Optional[str] = Field(
        default=None, description="Selected proposer gender.", examples=["male"]
    )
    partner_name: Any = Field(default="", description="Raw partner name input.", examples=["Ari"])
    partner_gender: Optional[str] = Field(
        default=None, description="Selected partner gender.", examples=["female"]
    )


class CreateOutcome(BaseModel):
    state: CreateState = Field(description="Submission outcome.", examples=["CREATED"])
    proposal_id: Optional[str] = Field(default=None, examples=["val_abc123def"])
    respond_url: Optional[str] = Field(
        default=None, description="Link to share with the partner."
    )
    track_url: Optional[str] = Field(default=None, description="Live status link for the creator.")
    message: Optional[str] = Field(
        default=None,
        description="User-facing message for rejected submissions.",
        examples=["Please fill in all name fields."],
    )
    cues: List[PresentationCue] = Field(default_factory=list)


class RespondView(BaseModel):
    state: PageState = Field(examples=["READY"])
    proposal_id: Optional[str] = Field(default=None, examples=["val_abc123def"])
    redirect_to: Optional[str] = Field(default=None)
    status: Optional[ProposalStatus] = Field(default=None, examples=["opened"])
    theme: Optional[str] = Field(default=None, examples=["theme-male"])
    from_text: Optional[str] = Field(default=None, examples=["From Sam"])
    partner_name: Optional[str] = Field(default=None, examples=["Ari"])
    no_button_label: str = Field(default="No")
    cues: List[PresentationCue] = Field(default_factory=list)


class AcceptOutcome(BaseModel):
    state: AcceptState = Field(examples=["REDIRECT"])
    confirmed: bool = Field(
        default=False,
        description="Whether the accepted write was confirmed; the redirect happens regardless.",
    )
    redirect_to: Optional[str] = Field(default=None)
    cues: List[PresentationCue] = Field(default_factory=list)


class DodgeState(BaseModel):
    label: str = Field(examples=["Are you sure?"])
    scale: float = Field(examples=[0.9])
    offset_x: float = Field(description="Horizontal offset in [-1, 1] of the container half-width.")
    offset_y: float = Field(description="Vertical offset in [-1, 1] of the container half-height.")
    hidden: bool = Field(default=False)
    cues: List[PresentationCue] = Field(default_factory=list)


class TimelineStep(BaseModel):
    key: Literal["created", "opened", "accepted"]
    state: TimelineStepState
    time_text: str = Field(examples=["Feb 14, 10:30 AM"])
    label: str = Field(examples=["👀 She has seen it!"])


class TrackView(BaseModel):
    state: PageState = Field(examples=["READY"])
    proposal_id: Optional[str] = Field(default=None)
    redirect_to: Optional[str] = Field(default=None)
    status: Optional[ProposalStatus] = Field(default=None, examples=["opened"])
    title: Optional[str] = Field(default=None, examples=["Sam's Proposal"])
    names_line: Optional[str] = Field(default=None, examples=["To: Ari"])
    respond_url: Optional[str] = Field(default=None)
    steps: List[TimelineStep] = Field(default_factory=list)
    waiting_text: Optional[str] = Field(default=None, examples=["Waiting for her to respond"])
    accepted_message: Optional[str] = Field(default=None, examples=["She Said Yes! 💕"])
    cues: List[PresentationCue] = Field(default_factory=list)


class CelebrateView(BaseModel):
    state: PageState = Field(examples=["READY"])
    proposal_id: Optional[str] = Field(default=None)
    redirect_to: Optional[str] = Field(default=None)
    proposer_name: Optional[str] = Field(default=None, examples=["Sam"])
    partner_name: Optional[str] = Field(default=None, examples=["Ari"])
    date_text: Optional[str] = Field(
        default=None, examples=["Valentine's Day Saturday, February 14, 2026"]
    )
    share_links: Dict[str, str] = Field(default_factory=dict)
    cues: List[PresentationCue] = Field(default_factory=list)
