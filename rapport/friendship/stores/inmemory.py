"""In-memory implementation of PartyStore."""

import copy
from collections.abc import Mapping
from typing import Any

from rapport.friendship.enums import FriendshipStatus
from rapport.friendship.errors import PartyNotFoundError
from rapport.friendship.models import Document, PartyId, RelationshipRecord, SortSpec
from rapport.friendship.store import PartyStore
from rapport.observability.logging import get_logger

logger = get_logger(__name__)


class InMemoryPartyStore(PartyStore):
    """In-memory implementation of PartyStore for testing and development.

    Documents live in a dict keyed by `_id` and are copied on the way in and
    out. Queries are a linear scan understanding the subset of MongoDB
    syntax the friendship service emits: equality, `$eq`, `$ne`, `$in`,
    `$nin`, `$gt`, `$gte`, `$lt`, `$lte`, `$exists`, `$elemMatch`, `$and`,
    `$or` and `$nor` in filters; top-level inclusion or exclusion plus
    `$elemMatch` in projections.
    Not suitable for production use.
    """

    def __init__(self, field_name: str = "friends") -> None:
        super().__init__(field_name)
        self._parties: dict[PartyId, Document] = {}
        self._indexes: set[str] = set()

    @property
    def indexes(self) -> frozenset[str]:
        """Index keys requested through ensure_indexes."""
        return frozenset(self._indexes)

    async def save_party(self, document: Mapping[str, Any]) -> PartyId:
        """Insert or replace a party document, returning its ID."""
        if "_id" not in document:
            raise ValueError("Party document has no _id")
        stored = copy.deepcopy(dict(document))
        stored.setdefault(self.field_name, [])
        self._parties[stored["_id"]] = stored
        return stored["_id"]

    async def delete_party(self, party_id: PartyId) -> bool:
        """Delete a party document."""
        return self._parties.pop(party_id, None) is not None

    async def get_party(
        self,
        party_id: PartyId,
        projection: Mapping[str, Any] | None = None,
    ) -> Document | None:
        """Get a party document by ID."""
        document = self._parties.get(party_id)
        if document is None:
            return None
        return _project(document, projection)

    async def find_parties(
        self,
        filter: Mapping[str, Any],
        projection: Mapping[str, Any] | None = None,
        *,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[Document]:
        """List party documents matching a filter."""
        results = [doc for doc in self._parties.values() if _matches(doc, filter)]

        # Stable sorts applied last key first give a multi-key ordering
        for field, direction in reversed(sort or []):
            results.sort(key=lambda doc, f=field: _sort_key(doc, f), reverse=direction < 0)

        results = results[skip:]
        if limit is not None:
            results = results[:limit]
        return [_project(doc, projection) for doc in results]

    async def get_relationship(
        self, owner_id: PartyId, peer_id: PartyId
    ) -> RelationshipRecord | None:
        """Get the owner's record for a peer."""
        element = self._find_element(self._owner(owner_id), peer_id)
        if element is None:
            return None
        return RelationshipRecord.from_document(element)

    async def push_relationship(
        self, owner_id: PartyId, record: RelationshipRecord
    ) -> bool:
        """Append a record to the owner's list unless one exists for the peer."""
        owner = self._owner(owner_id)
        if self._find_element(owner, record.peer_id) is not None:
            logger.debug(
                "relationship_already_present",
                owner_id=str(owner_id),
                peer_id=str(record.peer_id),
            )
            return False
        owner.setdefault(self.field_name, []).append(record.to_document())
        return True

    async def set_relationship_status(
        self,
        owner_id: PartyId,
        peer_id: PartyId,
        status: FriendshipStatus,
    ) -> RelationshipRecord | None:
        """Set the status of the owner's record for a peer."""
        element = self._find_element(self._owner(owner_id), peer_id)
        if element is None:
            return None
        prior = RelationshipRecord.from_document(element)
        element["status"] = FriendshipStatus(status).value
        return prior

    async def pull_relationship(self, owner_id: PartyId, peer_id: PartyId) -> None:
        """Remove the owner's record for a peer."""
        owner = self._parties.get(owner_id)
        if owner is None:
            return
        owner[self.field_name] = [
            element
            for element in owner.get(self.field_name, [])
            if element.get("peer_id") != peer_id
        ]

    async def ensure_indexes(self) -> None:
        """Record the peer index request."""
        key = f"{self.field_name}.peer_id"
        if key not in self._indexes:
            self._indexes.add(key)
            logger.debug("index_ensured", key=key)

    def _owner(self, owner_id: PartyId) -> Document:
        owner = self._parties.get(owner_id)
        if owner is None:
            raise PartyNotFoundError(owner_id)
        return owner

    def _find_element(self, owner: Document, peer_id: PartyId) -> dict[str, Any] | None:
        for element in owner.get(self.field_name, []):
            if element.get("peer_id") == peer_id:
                return element
        return None


# Query evaluation


def _values_at(value: Any, parts: list[str]) -> list[Any]:
    """Values reachable by a dotted path, descending into arrays."""
    if not parts:
        return [value]
    if isinstance(value, list):
        found: list[Any] = []
        for item in value:
            found.extend(_values_at(item, parts))
        return found
    if isinstance(value, Mapping) and parts[0] in value:
        return _values_at(value[parts[0]], parts[1:])
    return []


def _is_operator_dict(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and len(value) > 0
        and all(str(key).startswith("$") for key in value)
    )


def _equals(candidates: list[Any], expected: Any) -> bool:
    if expected is None and not candidates:
        return True
    for candidate in candidates:
        if candidate == expected:
            return True
        if isinstance(candidate, list) and expected in candidate:
            return True
    return False


def _compare(candidates: list[Any], expected: Any, op: str) -> bool:
    for candidate in candidates:
        if candidate is None:
            continue
        try:
            if op == "$gt" and candidate > expected:
                return True
            if op == "$gte" and candidate >= expected:
                return True
            if op == "$lt" and candidate < expected:
                return True
            if op == "$lte" and candidate <= expected:
                return True
        except TypeError:
            continue
    return False


def _match_element(element: Any, condition: Any) -> bool:
    if _is_operator_dict(condition):
        return _match_condition([element], condition)
    if not isinstance(element, Mapping) or not isinstance(condition, Mapping):
        return False
    return _matches(element, condition)


def _match_condition(candidates: list[Any], condition: Any) -> bool:
    if not _is_operator_dict(condition):
        return _equals(candidates, condition)

    for op, operand in condition.items():
        if op == "$eq":
            ok = _equals(candidates, operand)
        elif op == "$ne":
            ok = not _equals(candidates, operand)
        elif op == "$in":
            ok = any(_equals(candidates, value) for value in operand)
        elif op == "$nin":
            ok = not any(_equals(candidates, value) for value in operand)
        elif op in ("$gt", "$gte", "$lt", "$lte"):
            ok = _compare(candidates, operand, op)
        elif op == "$exists":
            ok = bool(candidates) == bool(operand)
        elif op == "$elemMatch":
            ok = any(
                isinstance(candidate, list)
                and any(_match_element(element, operand) for element in candidate)
                for candidate in candidates
            )
        else:
            raise ValueError(f"Unsupported query operator: {op}")
        if not ok:
            return False
    return True


def _matches(document: Mapping[str, Any], filter: Mapping[str, Any]) -> bool:
    for key, condition in filter.items():
        if key == "$and":
            ok = all(_matches(document, sub) for sub in condition)
        elif key == "$or":
            ok = any(_matches(document, sub) for sub in condition)
        elif key == "$nor":
            ok = not any(_matches(document, sub) for sub in condition)
        elif key.startswith("$"):
            raise ValueError(f"Unsupported query operator: {key}")
        else:
            ok = _match_condition(_values_at(document, key.split(".")), condition)
        if not ok:
            return False
    return True


def _sort_key(document: Mapping[str, Any], field: str) -> tuple[int, Any]:
    values = _values_at(document, field.split("."))
    if not values or values[0] is None:
        return (0, 0)
    return (1, values[0])


def _project(
    document: Mapping[str, Any], projection: Mapping[str, Any] | None
) -> Document:
    """Apply a top-level projection to a copy of the document."""
    if not projection:
        return copy.deepcopy(dict(document))

    elem_matches = {
        key: value["$elemMatch"]
        for key, value in projection.items()
        if isinstance(value, Mapping) and "$elemMatch" in value
    }
    flags = {
        key: bool(value)
        for key, value in projection.items()
        if key not in elem_matches and key != "_id"
    }
    include_id = bool(projection.get("_id", 1))

    if flags and len(set(flags.values())) > 1:
        raise ValueError("Projection cannot mix inclusion and exclusion")
    exclusion = bool(flags) and not any(flags.values())
    if not flags and not elem_matches:
        exclusion = True

    if exclusion:
        result = {
            key: copy.deepcopy(value)
            for key, value in document.items()
            if key not in flags and key not in elem_matches
        }
    else:
        result = {
            key: copy.deepcopy(document[key]) for key in flags if key in document
        }

    for key, condition in elem_matches.items():
        elements = document.get(key)
        if not isinstance(elements, list):
            continue
        for element in elements:
            if _match_element(element, condition):
                result[key] = [copy.deepcopy(element)]
                break

    if include_id and "_id" in document:
        result["_id"] = document["_id"]
    else:
        result.pop("_id", None)
    return result
