"""
Identifier aliases shared by every subpackage.

Ids are opaque strings issued by the Entity Store (or, for principals, the
identity provider); nothing in the core parses them.
"""

from __future__ import annotations

type PrincipalId = str
"""Caller identity as issued by the identity provider."""

type ProducerId = PrincipalId
"""A producer is identified by the principal that owns the profile."""

type ProductId = str
type OrderId = str
type LiveStreamId = str

__all__ = (
    "PrincipalId",
    "ProducerId",
    "ProductId",
    "OrderId",
    "LiveStreamId",
)
