from __future__ import annotations
import uuid
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Unresolved:
    id: uuid.UUID


@dataclass(frozen=True)
class Resolved(Generic[T]):
    value: T

    @property
    def id(self) -> uuid.UUID:
        return self.value.id


# A reference that a query path may or may not have hydrated.
Ref = Union[Unresolved, Resolved[T]]


def ref_id(ref: Ref) -> uuid.UUID:
    return ref.id


def resolved_value(ref: Ref):
    return ref.value if isinstance(ref, Resolved) else None


def make_ref(ref_id_value: uuid.UUID, loaded=None) -> Ref:
    if loaded is not None and loaded.id == ref_id_value:
        return Resolved(loaded)
    return Unresolved(ref_id_value)
