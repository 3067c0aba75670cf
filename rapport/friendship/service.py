"""Friendship orchestration.

Requests, listings and removals touch two party documents that share no
transaction. Each operation reads and writes both sides concurrently and
waits for both to settle before returning, so a failure on one side is
always reported even when the other side succeeded. The pair may be
transiently asymmetric between the two writes; every mutating operation
is idempotent and converges when retried.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from rapport.friendship.enums import FriendshipStatus, WriteAction
from rapport.friendship.errors import (
    FriendshipNotFoundError,
    PartialWriteFailure,
    PartyNotFoundError,
    RelationshipConflictError,
    Side,
)
from rapport.friendship.models import (
    FriendshipPair,
    FriendshipView,
    ListOptions,
    PartyId,
    PartyRef,
    resolve_party_id,
    utc_now,
)
from rapport.friendship.query import (
    assemble_views,
    excludes_id,
    friend_projection,
    local_records,
    translate_conditions,
)
from rapport.friendship.resolver import SideTransition, resolve_request
from rapport.friendship.store import PartyStore
from rapport.observability.logging import get_logger
from rapport.observability.metrics import (
    OPERATION_COUNT,
    OPERATION_LATENCY,
    PARTIAL_WRITE_FAILURES,
    RELATIONSHIP_WRITES,
)

logger = get_logger(__name__)

_Write = tuple[Side, PartyId, Awaitable[Any]]


def _is_conflict(error: BaseException) -> bool:
    if isinstance(error, PartialWriteFailure):
        return isinstance(error.cause, RelationshipConflictError)
    return isinstance(error, RelationshipConflictError)


class FriendshipService:
    """Request, list and remove friendships between parties.

    Arguments accepting a party take either its ID or its document.
    """

    def __init__(
        self,
        store: PartyStore,
        *,
        auto_index: bool = True,
        conflict_retries: int = 2,
        record_metrics: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the service.

        Args:
            store: Store holding the party documents
            auto_index: Whether initialize() asks the store for the peer index
            conflict_retries: Times a request is resolved again after a
                concurrent request created one of its records first
            record_metrics: Whether to update Prometheus metrics
            clock: Source of creation timestamps
        """
        self._store = store
        self._auto_index = auto_index
        self._conflict_retries = conflict_retries
        self._record_metrics = record_metrics
        self._clock = clock

    @property
    def store(self) -> PartyStore:
        return self._store

    @property
    def field_name(self) -> str:
        return self._store.field_name

    async def initialize(self) -> None:
        """Prepare the store, creating the peer index when configured."""
        if self._auto_index:
            await self._store.ensure_indexes()

    def for_party(self, party: PartyRef) -> "PartyFriendships":
        """Bind the service to one party."""
        return PartyFriendships(self, resolve_party_id(party))

    # Requests

    async def request_friendship(
        self, local: PartyRef, remote: PartyRef
    ) -> FriendshipPair:
        """Send a friend request from `local` to `remote`.

        A first request leaves `local` with a requested record and `remote`
        with a pending one. Requesting back from `remote` accepts the
        friendship on both sides. Repeating a request is a no-op.

        When a concurrent request creates one of the records first, both
        sides are read and resolved again, up to `conflict_retries` times.

        Returns:
            The resulting records of both sides

        Raises:
            ValueError: If both refer to the same party
            PartyNotFoundError: If either party does not exist
            RelationshipConflictError: If every write lost to a concurrent
                request and the retries are exhausted
            PartialWriteFailure: If only one of the two writes succeeded
        """
        local_id = resolve_party_id(local)
        remote_id = resolve_party_id(remote)
        if local_id == remote_id:
            raise ValueError("A party cannot request friendship with itself")

        with self._track("request"):
            attempt = 0
            while True:
                try:
                    return await self._request_once(local_id, remote_id)
                except (RelationshipConflictError, PartialWriteFailure) as e:
                    if not _is_conflict(e) or attempt >= self._conflict_retries:
                        raise
                    attempt += 1
                    logger.info(
                        "friendship_request_conflict",
                        local_id=str(local_id),
                        remote_id=str(remote_id),
                        attempt=attempt,
                    )

    async def _request_once(self, local_id: PartyId, remote_id: PartyId) -> FriendshipPair:
        local_view, remote_view = await self._settle(
            self._store.get_relationship(local_id, remote_id),
            self._store.get_relationship(remote_id, local_id),
        )

        transition = resolve_request(
            local_view,
            remote_view,
            local_id=local_id,
            remote_id=remote_id,
            now=self._clock(),
        )

        writes: list[_Write] = []
        if transition.must_write_local:
            writes.append(
                ("local", local_id, self._write("local", local_id, transition.local))
            )
        if transition.must_write_remote:
            writes.append(
                ("remote", remote_id, self._write("remote", remote_id, transition.remote))
            )
        await self._fan_out("request", writes)

        logger.info(
            "friendship_requested",
            local_id=str(local_id),
            remote_id=str(remote_id),
            local_status=transition.local.record.status.value,
            remote_status=transition.remote.record.status.value,
            local_action=transition.local.action.value,
            remote_action=transition.remote.action.value,
        )
        return FriendshipPair(
            local=transition.local.record, remote=transition.remote.record
        )

    async def _write(self, side: Side, owner_id: PartyId, transition: SideTransition) -> None:
        record = transition.record
        if self._record_metrics:
            RELATIONSHIP_WRITES.labels(side=side, action=transition.action.value).inc()

        if transition.action is WriteAction.CREATE:
            if not await self._store.push_relationship(owner_id, record):
                raise RelationshipConflictError(owner_id, record.peer_id)
            return

        prior = await self._store.set_relationship_status(
            owner_id, record.peer_id, record.status
        )
        if prior is None:
            # Removed between our read and this write
            raise FriendshipNotFoundError(owner_id, record.peer_id)

    # Listings

    async def get_friends(
        self,
        party: PartyRef,
        conditions: Mapping[str, Any] | None = None,
        options: ListOptions | None = None,
    ) -> list[FriendshipView]:
        """List the friends of a party.

        Args:
            party: The party whose friends are listed
            conditions: MongoDB-style filter. Keys prefixed with
                `<field_name>.` (e.g. `friends.status`) constrain the
                relationship from `party`'s side; other keys filter the
                friend documents.
            options: Sort, skip, limit and field selection for the friend
                documents

        Raises:
            PartyNotFoundError: If `party` does not exist
        """
        party_id = resolve_party_id(party)
        options = options or ListOptions()
        field_name = self.field_name

        with self._track("list"):
            peers, owner = await self._settle(
                self._store.find_parties(
                    translate_conditions(party_id, conditions, field_name),
                    friend_projection(options.select, field_name),
                    sort=options.sort,
                    skip=options.skip,
                    limit=options.limit,
                ),
                self._store.get_party(party_id, {field_name: 1}),
            )
            if owner is None:
                raise PartyNotFoundError(party_id)

            views = assemble_views(
                party_id,
                peers,
                local_records(owner, field_name),
                field_name,
                strip_id=excludes_id(options.select),
            )
            logger.debug("friends_listed", party_id=str(party_id), count=len(views))
            return views

    async def get_friend(
        self,
        party: PartyRef,
        friend: PartyRef,
        conditions: Mapping[str, Any] | None = None,
        select: list[str] | Mapping[str, Any] | None = None,
    ) -> FriendshipView:
        """Get one friend of a party.

        Raises:
            PartyNotFoundError: If `party` does not exist
            FriendshipNotFoundError: If `friend` is not a friend of `party`
                matching the conditions
        """
        party_id = resolve_party_id(party)
        friend_id = resolve_party_id(friend)
        field_name = self.field_name

        query = translate_conditions(party_id, conditions, field_name)
        query["_id"] = friend_id

        with self._track("get"):
            peers, owner = await self._settle(
                self._store.find_parties(
                    query, friend_projection(select, field_name), limit=1
                ),
                self._store.get_party(party_id, {field_name: 1}),
            )
            if owner is None:
                raise PartyNotFoundError(party_id)

            views = assemble_views(
                party_id,
                peers,
                local_records(owner, field_name),
                field_name,
                strip_id=excludes_id(select),
            )
            if not views:
                raise FriendshipNotFoundError(party_id, friend_id)
            return views[0]

    async def get_friends_by_status(
        self,
        party: PartyRef,
        status: FriendshipStatus | str,
        conditions: Mapping[str, Any] | None = None,
        options: ListOptions | None = None,
    ) -> list[FriendshipView]:
        """List the friends of a party whose status, from `party`'s side, is `status`."""
        merged = dict(conditions or {})
        merged[f"{self.field_name}.status"] = FriendshipStatus(status).value
        return await self.get_friends(party, merged, options)

    async def get_pending_friends(
        self,
        party: PartyRef,
        conditions: Mapping[str, Any] | None = None,
        options: ListOptions | None = None,
    ) -> list[FriendshipView]:
        """Parties that requested `party` and await its answer."""
        return await self.get_friends_by_status(
            party, FriendshipStatus.PENDING, conditions, options
        )

    async def get_requested_friends(
        self,
        party: PartyRef,
        conditions: Mapping[str, Any] | None = None,
        options: ListOptions | None = None,
    ) -> list[FriendshipView]:
        """Parties `party` has requested that have not answered yet."""
        return await self.get_friends_by_status(
            party, FriendshipStatus.REQUESTED, conditions, options
        )

    async def get_accepted_friends(
        self,
        party: PartyRef,
        conditions: Mapping[str, Any] | None = None,
        options: ListOptions | None = None,
    ) -> list[FriendshipView]:
        """Confirmed friends of `party`."""
        return await self.get_friends_by_status(
            party, FriendshipStatus.ACCEPTED, conditions, options
        )

    # Removal

    async def remove_friendship(self, a: PartyRef, b: PartyRef) -> None:
        """Remove the friendship between two parties, on both sides.

        Removing a friendship that does not exist is a no-op.

        Raises:
            PartialWriteFailure: If only one side was removed
        """
        a_id = resolve_party_id(a)
        b_id = resolve_party_id(b)

        with self._track("remove"):
            await self._fan_out(
                "remove",
                [
                    ("a", a_id, self._store.pull_relationship(a_id, b_id)),
                    ("b", b_id, self._store.pull_relationship(b_id, a_id)),
                ],
            )
            logger.info("friendship_removed", a_id=str(a_id), b_id=str(b_id))

    # Fan-out / fan-in

    @staticmethod
    async def _settle(*operations: Awaitable[Any]) -> list[Any]:
        """Run operations concurrently, raising the first failure once all settle."""
        results = await asyncio.gather(*operations, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return results

    async def _fan_out(self, operation: str, writes: list[_Write]) -> None:
        """Run writes on different parties concurrently.

        When every write fails the first error is raised as is. When some
        succeeded, the failure is raised as a PartialWriteFailure naming the
        side that failed.
        """
        if not writes:
            return

        results = await asyncio.gather(*(write for _, _, write in writes), return_exceptions=True)
        failed = [
            (side, owner_id, result)
            for (side, owner_id, _), result in zip(writes, results, strict=True)
            if isinstance(result, BaseException)
        ]
        if not failed:
            return
        if len(failed) == len(writes):
            raise failed[0][2]

        failed_side, failed_owner, error = failed[0]
        succeeded_owner = next(
            owner_id
            for (_, owner_id, _), result in zip(writes, results, strict=True)
            if not isinstance(result, BaseException)
        )
        logger.error(
            "partial_write_failure",
            operation=operation,
            failed_side=failed_side,
            failed_party_id=str(failed_owner),
            succeeded_party_id=str(succeeded_owner),
            error=str(error),
        )
        if self._record_metrics:
            PARTIAL_WRITE_FAILURES.labels(operation=operation, failed_side=failed_side).inc()
        raise PartialWriteFailure(
            operation=operation,
            failed_side=failed_side,
            failed=failed_owner,
            succeeded=succeeded_owner,
            cause=error,
        ) from error

    @contextmanager
    def _track(self, operation: str) -> Iterator[None]:
        if not self._record_metrics:
            yield
            return

        start = time.perf_counter()
        try:
            yield
        except Exception:
            OPERATION_COUNT.labels(operation=operation, outcome="error").inc()
            raise
        else:
            OPERATION_COUNT.labels(operation=operation, outcome="success").inc()
        finally:
            OPERATION_LATENCY.labels(operation=operation).observe(time.perf_counter() - start)


class PartyFriendships:
    """Friendship operations bound to one party."""

    def __init__(self, service: FriendshipService, party_id: PartyId) -> None:
        self._service = service
        self._party_id = party_id

    @property
    def party_id(self) -> PartyId:
        return self._party_id

    async def request(self, friend: PartyRef) -> FriendshipPair:
        """Request friendship with `friend`."""
        return await self._service.request_friendship(self._party_id, friend)

    async def friends(
        self,
        conditions: Mapping[str, Any] | None = None,
        options: ListOptions | None = None,
    ) -> list[FriendshipView]:
        return await self._service.get_friends(self._party_id, conditions, options)

    async def friend(
        self,
        friend: PartyRef,
        conditions: Mapping[str, Any] | None = None,
        select: list[str] | Mapping[str, Any] | None = None,
    ) -> FriendshipView:
        return await self._service.get_friend(self._party_id, friend, conditions, select)

    async def by_status(
        self,
        status: FriendshipStatus | str,
        conditions: Mapping[str, Any] | None = None,
        options: ListOptions | None = None,
    ) -> list[FriendshipView]:
        return await self._service.get_friends_by_status(
            self._party_id, status, conditions, options
        )

    async def pending(
        self,
        conditions: Mapping[str, Any] | None = None,
        options: ListOptions | None = None,
    ) -> list[FriendshipView]:
        return await self._service.get_pending_friends(self._party_id, conditions, options)

    async def requested(
        self,
        conditions: Mapping[str, Any] | None = None,
        options: ListOptions | None = None,
    ) -> list[FriendshipView]:
        return await self._service.get_requested_friends(self._party_id, conditions, options)

    async def accepted(
        self,
        conditions: Mapping[str, Any] | None = None,
        options: ListOptions | None = None,
    ) -> list[FriendshipView]:
        return await self._service.get_accepted_friends(self._party_id, conditions, options)

    async def remove(self, friend: PartyRef) -> None:
        """Remove the friendship with `friend`."""
        await self._service.remove_friendship(self._party_id, friend)
