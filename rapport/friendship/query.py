"""Translation of friend listing queries.

Friend listings search the *peers'* documents for records pointing back at
the queried party, so a status asked for from the queried party's side must
be rewritten to the status the peer holds. `accepted` is the same on both
sides; `pending` and `requested` swap.
"""

from collections.abc import Mapping
from typing import Any

from rapport.friendship.enums import FriendshipStatus
from rapport.friendship.models import Document, FriendshipView, PartyId, RelationshipRecord

_VALUE_OPERATORS = ("$eq", "$ne")
_LIST_OPERATORS = ("$in", "$nin")
_LOGICAL_OPERATORS = ("$and", "$or", "$nor")


def mirror_status_condition(condition: Any) -> Any:
    """Rewrite a status condition to the peer's point of view.

    Handles bare values, `$eq`/`$ne` and `$in`/`$nin`. Values that are not
    a known status pass through unchanged.
    """
    if isinstance(condition, str):
        try:
            return FriendshipStatus(condition).mirrored().value
        except ValueError:
            return condition

    if isinstance(condition, Mapping):
        mirrored: dict[str, Any] = {}
        for op, operand in condition.items():
            if op in _VALUE_OPERATORS:
                mirrored[op] = mirror_status_condition(operand)
            elif op in _LIST_OPERATORS:
                mirrored[op] = [mirror_status_condition(value) for value in operand]
            else:
                mirrored[op] = operand
        return mirrored

    return condition


def translate_conditions(
    party_id: PartyId,
    conditions: Mapping[str, Any] | None,
    field_name: str,
) -> dict[str, Any]:
    """Build the peer query for a party's friend listing.

    Keys prefixed with `<field_name>.` constrain the relationship element and
    are folded, with `peer_id == party_id`, into one `$elemMatch`; separate
    dotted conditions on an array could each be satisfied by a different
    element, i.e. by a relationship with some other party. A caller-supplied
    `$elemMatch` on the field is merged the same way. Clauses inside
    `$and`/`$or`/`$nor` are translated recursively. Every other key applies
    to the peer document and passes through untouched.

    Raises:
        ValueError: If a condition on the field itself is not an `$elemMatch`
    """
    return _translate(party_id, conditions or {}, field_name, pin=True)


def _translate(
    party_id: PartyId,
    conditions: Mapping[str, Any],
    field_name: str,
    *,
    pin: bool,
) -> dict[str, Any]:
    prefix = f"{field_name}."
    element: dict[str, Any] = {}
    translated: dict[str, Any] = {}

    def add(sub_key: str, value: Any) -> None:
        element[sub_key] = mirror_status_condition(value) if sub_key == "status" else value

    for key, value in conditions.items():
        if key.startswith(prefix):
            add(key[len(prefix):], value)
        elif key == field_name:
            if not isinstance(value, Mapping) or set(value) != {"$elemMatch"}:
                raise ValueError(
                    f"Conditions on {field_name!r} must use $elemMatch "
                    f"or {prefix}<key> paths"
                )
            for sub_key, sub_value in value["$elemMatch"].items():
                add(sub_key, sub_value)
        elif key in _LOGICAL_OPERATORS:
            translated[key] = [
                _translate(party_id, clause, field_name, pin=False) for clause in value
            ]
        else:
            translated[key] = value

    # Nested clauses without relationship keys stay document-level
    if element or pin:
        element["peer_id"] = party_id
        translated[field_name] = {"$elemMatch": element}
    return translated


def _is_relationship_path(key: str, field_name: str) -> bool:
    return key == field_name or key.startswith(f"{field_name}.")


def excludes_id(select: list[str] | Mapping[str, Any] | None) -> bool:
    """Whether a caller's selection leaves `_id` out of the friend documents."""
    return isinstance(select, Mapping) and "_id" in select and not select["_id"]


def friend_projection(
    select: list[str] | Mapping[str, Any] | None,
    field_name: str,
) -> dict[str, Any] | None:
    """Projection for the peer query.

    `_id` and the relationship list are always fetched: `_id` keys the
    queried party's own records, the list carries the fallback status for
    peers the queried party holds no record for. The list is always
    stripped from the returned friend documents, `_id` only when the caller
    excluded it.
    Paths into the relationship list are dropped from the selection.
    """
    if select is None:
        return None

    if not isinstance(select, Mapping):
        projection = {
            name: 1 for name in select if not _is_relationship_path(name, field_name)
        }
        projection["_id"] = 1
        projection[field_name] = 1
        return projection

    inclusion = any(value for key, value in select.items() if key != "_id")
    projection = {
        key: value
        for key, value in select.items()
        if key != "_id" and not _is_relationship_path(key, field_name)
    }
    if inclusion:
        projection["_id"] = 1
        projection[field_name] = 1
    return projection or None


def local_records(
    document: Mapping[str, Any], field_name: str
) -> dict[PartyId, RelationshipRecord]:
    """Map each peer of a party document to the party's own record."""
    return {
        element["peer_id"]: RelationshipRecord.from_document(element)
        for element in document.get(field_name) or []
    }


def assemble_views(
    party_id: PartyId,
    peers: list[Document],
    locals_by_peer: Mapping[PartyId, RelationshipRecord],
    field_name: str,
    *,
    strip_id: bool = False,
) -> list[FriendshipView]:
    """Pair each peer document with the queried party's status toward it.

    When the queried party holds no record for a matched peer (one side of a
    request or removal has not landed yet), the peer's own record is used,
    mirrored back to the queried party's side. `strip_id` removes `_id` from
    the friend documents once the records are matched.
    """
    views: list[FriendshipView] = []
    for peer in peers:
        relationships = peer.pop(field_name, None) or []
        local = locals_by_peer.get(peer.get("_id"))
        if strip_id:
            peer.pop("_id", None)
        if local is not None:
            views.append(
                FriendshipView(status=local.status, created_at=local.created_at, friend=peer)
            )
            continue

        remote = next(
            (element for element in relationships if element.get("peer_id") == party_id),
            None,
        )
        if remote is None:
            continue
        views.append(
            FriendshipView(
                status=FriendshipStatus(remote["status"]).mirrored(),
                created_at=None,
                friend=peer,
            )
        )
    return views
