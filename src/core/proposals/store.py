import logging
import math
from typing import Any, Callable, Mapping, Optional

from src.core.common.clock import Clock, epoch_millis
from src.core.common.sanitize import coerce_gender, is_valid_id, sanitize_text
from src.core.proposals.lifecycle import SETTABLE_STATUSES, STATUS_ORDER
from src.core.proposals.models import Proposal
from src.core.proposals.repository import RecordStore, RecordValue
from src.core.proposals.subscription import Subscription

NAME_MAX_LENGTH = 30
DEFAULT_COLLECTION = "proposals"

_TIMESTAMP_KEYS = (("openedAt", "opened_at"), ("acceptedAt", "accepted_at"))

logger = logging.getLogger(__name__)


class ProposalStoreError(Exception):
    pass


class InvalidIdError(ProposalStoreError):
    pass


class EmptyNameError(ProposalStoreError):
    pass


class AlreadyExistsError(ProposalStoreError):
    pass


class NotFoundError(ProposalStoreError):
    pass


class StoreUnavailableError(ProposalStoreError):
    pass


class ListenerError(ProposalStoreError):
    pass


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _timestamp_or_none(value: Any) -> Optional[int]:
    return int(value) if _is_number(value) else None


class ProposalStore:
    def __init__(
        self,
        *,
        repository: RecordStore,
        clock: Clock = epoch_millis,
        collection: str = DEFAULT_COLLECTION,
    ) -> None:
        self._repository = repository
        self._clock = clock
        self._collection = collection

    def path_for(self, proposal_id: str) -> str:
        return f"{self._collection}/{proposal_id}"

    def create(
        self,
        proposal_id: Any,
        *,
        proposer_name: Any,
        proposer_gender: Any,
        partner_name: Any,
        partner_gender: Any,
    ) -> Proposal:
        if not is_valid_id(proposal_id):
            raise InvalidIdError("PROPOSAL_ID_INVALID")
        proposal = Proposal(
            proposal_id=proposal_id,
            proposer_name=sanitize_text(proposer_name, NAME_MAX_LENGTH),
            proposer_gender=coerce_gender(proposer_gender),
            partner_name=sanitize_text(partner_name, NAME_MAX_LENGTH),
            partner_gender=coerce_gender(partner_gender),
            status="pending",
            created_at=self._clock(),
            opened_at=None,
            accepted_at=None,
        )
        if not proposal.proposer_name or not proposal.partner_name:
            raise EmptyNameError("PROPOSAL_NAME_EMPTY")

        path = self.path_for(proposal_id)
        # Check-then-set: not atomic against concurrent creators of the same id.
        try:
            existing = self._repository.read(path=path)
        except Exception as exc:
            logger.warning("Proposal existence check failed. ProposalID=%s", proposal_id)
            raise StoreUnavailableError("PROPOSAL_STORE_UNAVAILABLE") from exc
        if existing is not None:
            raise AlreadyExistsError("PROPOSAL_ALREADY_EXISTS")
        try:
            self._repository.write(path=path, value=proposal.to_record())
        except Exception as exc:
            logger.warning("Proposal write failed. ProposalID=%s", proposal_id)
            raise StoreUnavailableError("PROPOSAL_STORE_UNAVAILABLE") from exc

        logger.info(
            "proposal.created",
            extra={"extra_fields": {"proposal_id": proposal_id}},
        )
        return proposal

    def get(self, proposal_id: Any) -> Optional[Proposal]:
        if not is_valid_id(proposal_id):
            return None
        try:
            value = self._repository.read(path=self.path_for(proposal_id))
        except Exception:
            logger.warning("Proposal read failed. ProposalID=%s", proposal_id, exc_info=True)
            return None
        if value is None:
            return None
        return self._from_record(proposal_id, value)

    def update_status(self, proposal_id: Any, updates: Mapping[str, Any]) -> bool:
        if not is_valid_id(proposal_id):
            return False
        allowed = self._filter_status_update(updates)
        if not allowed:
            return False
        try:
            self._repository.partial_update(path=self.path_for(proposal_id), fields=allowed)
        except Exception:
            logger.warning(
                "Proposal status update failed. ProposalID=%s", proposal_id, exc_info=True
            )
            return False
        logger.info(
            "proposal.status_updated",
            extra={"extra_fields": {"proposal_id": proposal_id, "fields": sorted(allowed)}},
        )
        return True

    def subscribe(
        self, proposal_id: Any, on_change: Callable[[Optional[Proposal]], None]
    ) -> Subscription:
        if not is_valid_id(proposal_id):
            return Subscription.noop()

        handle = Subscription()

        def _on_value(value: Optional[RecordValue]) -> None:
            if handle.closed:
                return
            on_change(self._from_record(proposal_id, value) if value else None)

        def _on_error(exc: Exception) -> None:
            error = ListenerError("PROPOSAL_LISTENER_FAILED")
            error.__cause__ = exc
            logger.warning("Proposal listener failed. ProposalID=%s", proposal_id, exc_info=error)
            if not handle.closed:
                on_change(None)

        try:
            detach = self._repository.subscribe(
                path=self.path_for(proposal_id), on_value=_on_value, on_error=_on_error
            )
        except Exception as exc:
            _on_error(exc)
            handle.close()
            return handle
        handle.attach(detach)
        return handle

    def _from_record(self, proposal_id: str, value: Any) -> Proposal:
        if not isinstance(value, Mapping):
            value = {}
        status = value.get("status")
        created_at = _timestamp_or_none(value.get("createdAt"))
        return Proposal(
            proposal_id=proposal_id,
            proposer_name=sanitize_text(value.get("proposerName") or "", NAME_MAX_LENGTH),
            proposer_gender=coerce_gender(value.get("proposerGender")),
            partner_name=sanitize_text(value.get("partnerName") or "", NAME_MAX_LENGTH),
            partner_gender=coerce_gender(value.get("partnerGender")),
            status=status if status in STATUS_ORDER else "pending",
            created_at=created_at if created_at is not None else self._clock(),
            opened_at=_timestamp_or_none(value.get("openedAt")),
            accepted_at=_timestamp_or_none(value.get("acceptedAt")),
        )

    @staticmethod
    def _filter_status_update(updates: Mapping[str, Any]) -> RecordValue:
        allowed: RecordValue = {}
        status = updates.get("status")
        if isinstance(status, str) and status in SETTABLE_STATUSES:
            allowed["status"] = status
        for record_key, attribute in _TIMESTAMP_KEYS:
            value = updates.get(record_key, updates.get(attribute))
            if _is_number(value):
                allowed[record_key] = int(value)
        return allowed
