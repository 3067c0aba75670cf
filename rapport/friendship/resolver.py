"""State transitions for a friend request.

Pure decision logic: given both sides' current records, decide what each
side's record must become and whether it has to be written. All I/O lives
in the service.
"""

from dataclasses import dataclass
from datetime import datetime

from rapport.friendship.enums import FriendshipStatus, WriteAction
from rapport.friendship.models import PartyId, RelationshipRecord


@dataclass(frozen=True)
class SideTransition:
    """Target record for one side and how to get there."""

    action: WriteAction
    record: RelationshipRecord


@dataclass(frozen=True)
class RequestTransition:
    """Outcome of a request for both sides."""

    local: SideTransition
    remote: SideTransition

    @property
    def must_write_remote(self) -> bool:
        return self.remote.action is not WriteAction.SKIP

    @property
    def must_write_local(self) -> bool:
        return self.local.action is not WriteAction.SKIP


def resolve_request(
    local_view: RelationshipRecord | None,
    remote_view: RelationshipRecord | None,
    *,
    local_id: PartyId,
    remote_id: PartyId,
    now: datetime,
) -> RequestTransition:
    """Resolve a friend request from `local_id` to `remote_id`.

    Args:
        local_view: The requester's record for the peer, if any
        remote_view: The peer's record for the requester, if any
        local_id: The requesting party
        remote_id: The requested party
        now: Creation time for any new record

    Returns:
        The transition for both sides
    """
    if remote_view is None:
        # First request: the peer gets a pending inbound record
        local_status = FriendshipStatus.REQUESTED
        remote = SideTransition(
            WriteAction.CREATE,
            RelationshipRecord(
                peer_id=local_id, status=FriendshipStatus.PENDING, created_at=now
            ),
        )
    elif remote_view.status is FriendshipStatus.PENDING:
        local_status = FriendshipStatus.REQUESTED
        remote = SideTransition(WriteAction.SKIP, remote_view)
    elif remote_view.status is FriendshipStatus.ACCEPTED:
        local_status = FriendshipStatus.ACCEPTED
        remote = SideTransition(WriteAction.SKIP, remote_view)
    else:
        # The peer asked first, this request reciprocates it
        local_status = FriendshipStatus.ACCEPTED
        remote = SideTransition(
            WriteAction.UPDATE, remote_view.with_status(FriendshipStatus.ACCEPTED)
        )

    if local_view is None:
        local = SideTransition(
            WriteAction.CREATE,
            RelationshipRecord(peer_id=remote_id, status=local_status, created_at=now),
        )
    elif local_view.status is local_status and local_view.peer_id == remote_id:
        local = SideTransition(WriteAction.SKIP, local_view)
    else:
        local = SideTransition(WriteAction.UPDATE, local_view.with_status(local_status))

    return RequestTransition(local=local, remote=remote)
