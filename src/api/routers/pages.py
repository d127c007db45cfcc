import asyncio
import logging
from typing import Annotated, Optional

from fastapi import (
    APIRouter,
    Depends,
    Header,
    Query,
    Response,
    WebSocket,
    WebSocketDisconnect,
    status,
)

from src.api.routers.page_sessions import PageSessionCache, new_page_session_id
from src.api.routers.proposals_config import (
    build_links,
    get_proposal_store,
    proposal_page_session_cache_size,
    proposal_submit_cooldown_ms,
)
from src.api.routers.runtime_utils import assert_feature_enabled, env_flag
from src.core.common.sanitize import is_valid_id
from src.core.pages import (
    AcceptOutcome,
    CelebratePageController,
    CelebrateView,
    CreateForm,
    CreateOutcome,
    CreatePageController,
    DodgeState,
    RespondPageController,
    RespondSession,
    RespondView,
    SubmissionContext,
    TrackPageController,
    TrackSession,
    TrackView,
)
from src.core.proposals import ProposalLinks, ProposalStore

PAGE_SESSION_HEADER = "X-Page-Session"
PAGES_FLAG = "PROPOSAL_PAGES_ENABLED"

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pages", tags=["Pages"])

_SUBMISSION_CONTEXTS: Optional[PageSessionCache[SubmissionContext]] = None
_RESPOND_SESSIONS: Optional[PageSessionCache[RespondSession]] = None
_TRACK_SESSIONS: Optional[PageSessionCache[TrackSession]] = None

ProposalIdQuery = Annotated[
    Optional[str],
    Query(
        alias="id",
        description="Proposal identifier taken from the page link.",
        examples=["val_6f1c2d8e-3b7a-4c55-9d0e-1f2a3b4c5d6e"],
    ),
]


def assert_pages_enabled() -> None:
    assert_feature_enabled(name=PAGES_FLAG, default=True, detail="PROPOSAL_PAGES_DISABLED")


def page_session_id(
    response: Response,
    x_page_session: Annotated[
        Optional[str],
        Header(alias=PAGE_SESSION_HEADER, description="Opaque page-session identifier."),
    ] = None,
) -> str:
    session_id = (x_page_session or "").strip()[:64] or new_page_session_id()
    response.headers[PAGE_SESSION_HEADER] = session_id
    return session_id


def _submission_contexts() -> PageSessionCache[SubmissionContext]:
    global _SUBMISSION_CONTEXTS
    if _SUBMISSION_CONTEXTS is None:
        cooldown_ms = proposal_submit_cooldown_ms()
        _SUBMISSION_CONTEXTS = PageSessionCache(
            factory=lambda: SubmissionContext(cooldown_ms=cooldown_ms),
            max_size=proposal_page_session_cache_size(),
        )
    return _SUBMISSION_CONTEXTS


def _respond_sessions() -> PageSessionCache[RespondSession]:
    global _RESPOND_SESSIONS
    if _RESPOND_SESSIONS is None:
        _RESPOND_SESSIONS = PageSessionCache(
            factory=RespondSession,
            max_size=proposal_page_session_cache_size(),
        )
    return _RESPOND_SESSIONS


def _track_session(
    controller: TrackPageController, session_id: str, proposal_id: str
) -> TrackSession:
    global _TRACK_SESSIONS
    if _TRACK_SESSIONS is None:
        _TRACK_SESSIONS = PageSessionCache(max_size=proposal_page_session_cache_size())
    return _TRACK_SESSIONS.get_or_create(
        f"{session_id}:{proposal_id}", lambda: controller.new_session(proposal_id)
    )


def reset_page_sessions_for_tests() -> None:
    global _SUBMISSION_CONTEXTS, _RESPOND_SESSIONS, _TRACK_SESSIONS
    _SUBMISSION_CONTEXTS = None
    _RESPOND_SESSIONS = None
    _TRACK_SESSIONS = None


def _respond_session(session_id: str, proposal_id: Optional[str]) -> RespondSession:
    return _respond_sessions().get_or_create(f"{session_id}:{proposal_id or ''}")


@router.post(
    "/create",
    response_model=CreateOutcome,
    status_code=status.HTTP_200_OK,
    summary="Submit Create Form",
    description=(
        "Validates the creator form and writes a new proposal under a fresh identifier. "
        "Rejected submissions carry a user-facing message; a second submission while one "
        "is in flight is ignored."
    ),
    dependencies=[Depends(assert_pages_enabled)],
)
def submit_create_form(
    form: CreateForm,
    session_id: Annotated[str, Depends(page_session_id)],
    store: Annotated[ProposalStore, Depends(get_proposal_store)],
    links: Annotated[ProposalLinks, Depends(build_links)],
) -> CreateOutcome:
    controller = CreatePageController(store=store, links=links)
    return controller.submit(form, _submission_contexts().get_or_create(session_id))


@router.get(
    "/respond",
    response_model=RespondView,
    status_code=status.HTTP_200_OK,
    summary="Open Respond Page",
    description=(
        "Loads the proposal for the respondent. The first open of a `pending` proposal "
        "records `opened`; an already accepted proposal redirects to the celebration page."
    ),
    dependencies=[Depends(assert_pages_enabled)],
)
def open_respond_page(
    session_id: Annotated[str, Depends(page_session_id)],
    store: Annotated[ProposalStore, Depends(get_proposal_store)],
    links: Annotated[ProposalLinks, Depends(build_links)],
    proposal_id: ProposalIdQuery = None,
) -> RespondView:
    controller = RespondPageController(store=store, links=links)
    return controller.open(proposal_id, _respond_session(session_id, proposal_id))


@router.post(
    "/respond/accept",
    response_model=AcceptOutcome,
    status_code=status.HTTP_200_OK,
    summary="Accept Proposal",
    description=(
        "Records `accepted` and redirects to the celebration page. The redirect happens "
        "even when the write is not confirmed."
    ),
    dependencies=[Depends(assert_pages_enabled)],
)
def accept_proposal(
    session_id: Annotated[str, Depends(page_session_id)],
    store: Annotated[ProposalStore, Depends(get_proposal_store)],
    links: Annotated[ProposalLinks, Depends(build_links)],
    proposal_id: ProposalIdQuery = None,
) -> AcceptOutcome:
    controller = RespondPageController(store=store, links=links)
    return controller.accept(proposal_id, _respond_session(session_id, proposal_id))


@router.post(
    "/respond/dodge",
    response_model=DodgeState,
    status_code=status.HTTP_200_OK,
    summary="Dodge No Button",
    description="Moves the No button away from the pointer and shrinks it a step.",
    dependencies=[Depends(assert_pages_enabled)],
)
def dodge_no_button(
    session_id: Annotated[str, Depends(page_session_id)],
    store: Annotated[ProposalStore, Depends(get_proposal_store)],
    links: Annotated[ProposalLinks, Depends(build_links)],
    proposal_id: ProposalIdQuery = None,
) -> DodgeState:
    controller = RespondPageController(store=store, links=links)
    return controller.dodge(_respond_session(session_id, proposal_id))


@router.post(
    "/respond/refuse",
    response_model=DodgeState,
    status_code=status.HTTP_200_OK,
    summary="Click No Button",
    description="Dodges, then shrinks the No button until it disappears.",
    dependencies=[Depends(assert_pages_enabled)],
)
def refuse_proposal(
    session_id: Annotated[str, Depends(page_session_id)],
    store: Annotated[ProposalStore, Depends(get_proposal_store)],
    links: Annotated[ProposalLinks, Depends(build_links)],
    proposal_id: ProposalIdQuery = None,
) -> DodgeState:
    controller = RespondPageController(store=store, links=links)
    return controller.refuse(_respond_session(session_id, proposal_id))


@router.get(
    "/track",
    response_model=TrackView,
    status_code=status.HTTP_200_OK,
    summary="Open Tracking Page",
    description=(
        "Returns the creator's timeline. Repeated reads in the same page session never "
        "move the timeline backwards."
    ),
    dependencies=[Depends(assert_pages_enabled)],
)
def open_tracking_page(
    session_id: Annotated[str, Depends(page_session_id)],
    store: Annotated[ProposalStore, Depends(get_proposal_store)],
    links: Annotated[ProposalLinks, Depends(build_links)],
    proposal_id: ProposalIdQuery = None,
) -> TrackView:
    controller = TrackPageController(store=store, links=links)
    if not is_valid_id(proposal_id):
        return controller.open(proposal_id)
    return controller.open(proposal_id, _track_session(controller, session_id, proposal_id))


@router.get(
    "/celebrate",
    response_model=CelebrateView,
    status_code=status.HTTP_200_OK,
    summary="Open Celebration Page",
    description="Shows the celebration for an accepted proposal together with share links.",
    dependencies=[Depends(assert_pages_enabled)],
)
def open_celebration_page(
    store: Annotated[ProposalStore, Depends(get_proposal_store)],
    links: Annotated[ProposalLinks, Depends(build_links)],
    proposal_id: ProposalIdQuery = None,
) -> CelebrateView:
    controller = CelebratePageController(store=store, links=links)
    return controller.open(proposal_id)


async def _watch_disconnect(
    websocket: WebSocket, queue: "asyncio.Queue[Optional[TrackView]]"
) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            queue.put_nowait(None)
            return


@router.websocket("/track/live")
async def follow_tracking_page(
    websocket: WebSocket,
    store: Annotated[ProposalStore, Depends(get_proposal_store)],
    links: Annotated[ProposalLinks, Depends(build_links)],
    proposal_id: ProposalIdQuery = None,
) -> None:
    await websocket.accept()
    if not env_flag(PAGES_FLAG, True):
        await websocket.close(
            code=status.WS_1008_POLICY_VIOLATION, reason="PROPOSAL_PAGES_DISABLED"
        )
        return

    controller = TrackPageController(store=store, links=links)
    session = controller.new_session(proposal_id) if is_valid_id(proposal_id) else None
    view = controller.open(proposal_id, session)
    if session is None or view.state != "READY" or view.redirect_to:
        await websocket.send_json(view.model_dump(mode="json"))
        await websocket.close()
        return

    # Subscribe before the first frame so no later change is missed.
    loop = asyncio.get_running_loop()
    queue: "asyncio.Queue[Optional[TrackView]]" = asyncio.Queue()
    subscription = controller.follow(
        proposal_id,
        lambda pushed: loop.call_soon_threadsafe(queue.put_nowait, pushed),
        session,
    )
    try:
        await websocket.send_json(view.model_dump(mode="json"))
    except WebSocketDisconnect:
        subscription.close()
        raise
    watcher = asyncio.create_task(_watch_disconnect(websocket, queue))
    disconnected = False
    try:
        while True:
            pushed = await queue.get()
            if pushed is None:
                disconnected = True
                break
            await websocket.send_json(pushed.model_dump(mode="json"))
            if pushed.redirect_to:
                break
    except WebSocketDisconnect:
        disconnected = True
    finally:
        subscription.close()
        watcher.cancel()
    logger.info(
        "Tracking stream finished.",
        extra={"extra_fields": {"proposal_id": proposal_id, "client_disconnected": disconnected}},
    )
    if not disconnected:
        await websocket.close()
