"""
Selection of modifiable fields.

A SelectionState is an immutable value; toggle/rename/remove return a new
state. After every transition no selected location path is an ancestor of
another one. Conflicts are resolved by dropping the older selection, never
by raising.
"""

from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Tuple, Union

from .errors import SelectionError
from .fields import identify_candidates
from .models import CandidateField, ModifiableField, Request, is_container
from .pointer import LocationPath

FieldRef = Union[ModifiableField, CandidateField, str]


def _path_of(ref: FieldRef) -> str:
    return ref if isinstance(ref, str) else ref.location_path


def _unique_name(base: str, taken: Iterable[str]) -> str:
    taken = set(taken)
    if base not in taken:
        return base
    n = 2
    while f"{base}_{n}" in taken:
        n += 1
    return f"{base}_{n}"


@dataclass(frozen=True)
class SelectionState:
    candidates: Tuple[CandidateField, ...] = ()
    fields: Tuple[ModifiableField, ...] = ()

    @classmethod
    def for_request(cls, request: Request, **candidate_options) -> "SelectionState":
        return cls(candidates=tuple(identify_candidates(request, **candidate_options)))

    @property
    def names(self) -> List[str]:
        return [f.name for f in self.fields]

    def get(self, ref: FieldRef) -> Optional[ModifiableField]:
        path = _path_of(ref)
        for f in self.fields:
            if f.location_path == path:
                return f
        return None

    def is_selected(self, ref: FieldRef) -> bool:
        return self.get(ref) is not None

    def leaves_under(self, ref: FieldRef) -> List[CandidateField]:
        """Candidates strictly beneath `ref` that have no candidate beneath them."""
        target = LocationPath.parse(_path_of(ref))
        below = [(c, LocationPath.parse(c.location_path)) for c in self.candidates]
        below = [(c, p) for c, p in below if target.is_ancestor_of(p)]
        return [
            c for c, p in below
            if not any(p.is_ancestor_of(q) for _, q in below)
        ]


def _add(fields: List[ModifiableField], candidate: CandidateField) -> List[ModifiableField]:
    target = LocationPath.parse(candidate.location_path)
    if any(f.location_path == candidate.location_path for f in fields):
        return fields

    kept = [f for f in fields if not target.conflicts_with(LocationPath.parse(f.location_path))]
    name = _unique_name(candidate.suggested_name, (f.name for f in kept))
    kept.append(ModifiableField.from_candidate(candidate, name=name))
    return kept


def toggle(state: SelectionState, candidate: CandidateField) -> SelectionState:
    """
    Select or deselect `candidate`.

      1. already selected: drop it and everything beneath it
      2. something beneath it is selected: collapse (drop all of those)
      3. non-empty list/map with leaves: select every leaf beneath it instead
      4. otherwise select the candidate itself
    Steps 3 and 4 first drop selections that are ancestors or descendants.
    """
    target = LocationPath.parse(candidate.location_path)
    selected = [(f, LocationPath.parse(f.location_path)) for f in state.fields]

    if state.is_selected(candidate):
        kept = [f for f, p in selected if p != target and not target.is_ancestor_of(p)]
        return replace(state, fields=tuple(kept))

    if any(target.is_ancestor_of(p) for _, p in selected):
        kept = [f for f, p in selected if not target.is_ancestor_of(p)]
        return replace(state, fields=tuple(kept))

    value = candidate.example_value
    leaves = state.leaves_under(candidate) if is_container(value) and value else []
    if leaves:
        fields = list(state.fields)
        for leaf in leaves:
            fields = _add(fields, leaf)
        return replace(state, fields=tuple(fields))

    return replace(state, fields=tuple(_add(list(state.fields), candidate)))


def rename(state: SelectionState, field: FieldRef, new_name: str) -> SelectionState:
    name = (new_name or "").strip()
    if not name:
        raise SelectionError("Parameter name must not be empty")

    path = _path_of(field)
    if not state.is_selected(path):
        raise KeyError(f"Field is not selected: {path}")

    for f in state.fields:
        if f.name == name and f.location_path != path:
            raise SelectionError(f"Parameter name already in use: {name} ({f.location_path})")

    return replace(state, fields=tuple(
        replace(f, name=name) if f.location_path == path else f
        for f in state.fields
    ))


def remove(state: SelectionState, field: FieldRef) -> SelectionState:
    path = _path_of(field)
    return replace(state, fields=tuple(f for f in state.fields if f.location_path != path))
