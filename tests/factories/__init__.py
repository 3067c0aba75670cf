"""Test data factories."""

from tests.factories.parties import PartyFactory, RelationshipFactory

__all__ = ["PartyFactory", "RelationshipFactory"]
