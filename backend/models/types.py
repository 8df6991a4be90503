"""Shared type definitions for type checking.

Uses NewType for IDs to provide compile-time type safety - prevents mixing
different ID types (e.g., passing SubscriptionID where MeetingID expected).

Uses TypeAlias for types that are purely structural.
"""

from typing import NewType, TypeAlias

# ID types using NewType for type safety
MeetingID = NewType("MeetingID", int)
CouncilID = NewType("CouncilID", int)
SubscriptionID = NewType("SubscriptionID", int)
UserID = NewType("UserID", int)
QueueItemID = NewType("QueueItemID", int)

# Structural aliases using TypeAlias
JobName: TypeAlias = str
