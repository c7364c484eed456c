"""The persisted result of an anonymisation run."""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Optional

from id_generator.ids import AnonymizedId, SourceId


def _sorted_entries(entries: Mapping) -> dict[SourceId, AnonymizedId]:
    """Copy *entries* ordered by sequence id, then source id."""
    items = [(SourceId(source_id), anon_id) for source_id, anon_id in entries.items()]
    items.sort(key=lambda item: (item[1].sequence_id, item[0]))
    return dict(items)


class AnonymizedOutput(Mapping):
    """Immutable mapping of SourceId -> AnonymizedId.

    Aliased patients map to the same AnonymizedId.  A patient that had been
    anonymised on its own before being merged into another patient's
    identity also keeps a *superseded* record: the AnonymizedId it held
    independently.  Superseded records are part of the persisted state so
    their sequence ids are never handed out again.
    """

    def __init__(
        self,
        entries: Optional[Mapping] = None,
        superseded: Optional[Mapping] = None,
    ) -> None:
        self._entries = _sorted_entries(entries or {})
        self._superseded = _sorted_entries(superseded or {})

        orphans = set(self._superseded) - set(self._entries)
        if orphans:
            raise ValueError(
                f"Superseded records without a current entry: {sorted(orphans)}"
            )

    # ----- Mapping interface -----

    def __getitem__(self, source_id) -> AnonymizedId:
        return self._entries[source_id]

    def __iter__(self):
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other) -> bool:
        if not isinstance(other, AnonymizedOutput):
            return NotImplemented
        return (
            list(self._entries.items()) == list(other._entries.items())
            and list(self._superseded.items()) == list(other._superseded.items())
        )

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"AnonymizedOutput({len(self._entries)} entries, "
            f"{len(self._superseded)} superseded)"
        )

    # ----- Derived views -----

    @property
    def superseded(self) -> Mapping:
        """Read-only SourceId -> AnonymizedId held before a merge."""
        return MappingProxyType(self._superseded)

    def max_sequence_id(self) -> int:
        """Highest sequence id ever issued in this output (0 if empty)."""
        ids = [a.sequence_id for a in self._entries.values()]
        ids.extend(a.sequence_id for a in self._superseded.values())
        return max(ids, default=0)

    def anonymized_ids(self) -> set[AnonymizedId]:
        """Every AnonymizedId known to this output, superseded ones included."""
        return set(self._entries.values()) | set(self._superseded.values())

    def superseded_aliases(self) -> dict[AnonymizedId, AnonymizedId]:
        """Map each superseded AnonymizedId to the identity that replaced it.

        Entries are grouped by sequence id, and within that by digest, so a
        group is the set of patients sharing one AnonymizedId.  Within a
        group of two or more patients, every member carrying a superseded
        record is paired with the shared AnonymizedId.  A former alias that
        was split off keeps the sequence id but hashes its own patient, so
        it shares no entry and does not appear.  Patients aliased from the
        start never got an identity of their own and do not appear either.
        """
        groups: dict[AnonymizedId, list[SourceId]] = {}
        for source_id, anon_id in self._entries.items():
            groups.setdefault(anon_id, []).append(source_id)

        report: dict[AnonymizedId, AnonymizedId] = {}
        for anon_id, members in groups.items():
            if len(members) < 2:
                continue
            for source_id in members:
                old = self._superseded.get(source_id)
                if old is not None:
                    report[old] = anon_id
        return report
