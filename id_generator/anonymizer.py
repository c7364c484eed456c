"""Identity reconciliation for incremental anonymisation runs.

Merges the patients of the current batch, the declared patient aliases, and
the previous run's output into a new output:

1. Resolve alias chains (``A -> B -> C``) to their canonical patient
2. Group every touched patient by canonical patient
3. Give each group its sequence id — re-used from the previous output where
   possible, otherwise the next free one
4. Hash the canonical patient with the current password; all group members
   share that AnonymizedId
5. Carry forward every previous entry the batch does not touch
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Optional

from id_generator.errors import AliasCycleError
from id_generator.hashing import digest, validate_secret
from id_generator.ids import AnonymizedId, SourceId
from id_generator.output import AnonymizedOutput

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Batch:
    """Patients present in the current run plus declared aliases.

    ``source_ids`` keeps first-occurrence order with duplicates removed.
    ``aliases`` maps a patient to the canonical patient it is the same
    person as.
    """

    source_ids: tuple = ()
    aliases: Mapping = field(default_factory=dict)

    def __post_init__(self) -> None:
        source_ids = tuple(dict.fromkeys(SourceId(s) for s in self.source_ids or ()))
        aliases = {SourceId(k): SourceId(v) for k, v in (self.aliases or {}).items()}
        object.__setattr__(self, "source_ids", source_ids)
        object.__setattr__(self, "aliases", MappingProxyType(aliases))


# ---------------------------------------------------------------------------
# Alias resolution
# ---------------------------------------------------------------------------

def _follow_chain(source_id: SourceId, aliases: Mapping) -> list[SourceId]:
    """Return ``[source_id, ..., canonical]`` by following *aliases*."""
    chain = [source_id]
    visited = {source_id}
    current = source_id
    while current in aliases:
        current = aliases[current]
        chain.append(current)
        if current in visited:
            raise AliasCycleError(chain)
        visited.add(current)
    return chain


def resolve_aliases(aliases: Mapping) -> dict[SourceId, SourceId]:
    """Map every alias key to the final patient of its alias chain.

    Raises AliasCycleError if a chain loops, including ``A -> A``.
    """
    return {key: _follow_chain(key, aliases)[-1] for key in aliases}


def _identity_groups(
    batch: Batch, chains: Mapping
) -> list[tuple[SourceId, list[SourceId]]]:
    """Partition touched patients by canonical patient, in processing order.

    Groups are ordered by the earliest batch position of any member; groups
    only reachable through the alias map come last.  Ties are broken by the
    lexicographically smallest member.
    """
    touched = list(batch.source_ids)
    for key, value in batch.aliases.items():
        touched.extend((key, value))

    groups: dict[SourceId, dict[SourceId, None]] = {}
    for source_id in touched:
        canonical = chains[source_id][-1] if source_id in chains else source_id
        groups.setdefault(canonical, {})[source_id] = None

    position = {source_id: i for i, source_id in enumerate(batch.source_ids)}

    def order(item):
        members = item[1]
        first = min(
            (position[m] for m in members if m in position), default=len(position)
        )
        return first, min(members)

    return [
        (canonical, list(members))
        for canonical, members in sorted(groups.items(), key=order)
    ]


def _prior_sequence_id(
    canonical: SourceId,
    members: list[SourceId],
    chains: Mapping,
    prior: AnonymizedOutput,
) -> Optional[int]:
    """Pick the sequence id a group inherits from the previous output.

    The canonical patient's id wins.  Along a single alias chain the
    previously anonymised member closest to the canonical patient wins.
    When several chains lead into the canonical patient, the lowest
    sequence id among their nearest members wins.
    """
    if canonical in prior:
        return prior[canonical].sequence_id

    candidates = [member for member in members if member in prior]
    if not candidates:
        return None
    # drop candidates with another candidate further down their own chain
    nearest = [
        member for member in candidates
        if not any(c in chains.get(member, [member])[1:] for c in candidates)
    ]
    return min(prior[member].sequence_id for member in nearest)


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------

def reconcile(
    secret: str, batch: Batch, prior: Optional[AnonymizedOutput] = None
) -> AnonymizedOutput:
    """Derive the new output for *batch* given the *prior* run's output.

    Every patient in *prior* is kept with its sequence id.  New groups are
    numbered from one past the highest sequence id ever issued.  The result
    depends only on the arguments, so identical inputs give an identical
    output.

    Raises InvalidKeyError, InvalidIdentifierError or AliasCycleError before
    any hashing takes place.
    """
    validate_secret(secret)
    if prior is None:
        prior = AnonymizedOutput()

    chains = {key: _follow_chain(key, batch.aliases) for key in batch.aliases}
    groups = _identity_groups(batch, chains)

    entries = dict(prior)
    superseded = dict(prior.superseded)
    next_id = prior.max_sequence_id() + 1
    created = reused = merged = 0

    for canonical, members in groups:
        sequence_id = _prior_sequence_id(canonical, members, chains, prior)
        if sequence_id is None:
            sequence_id = next_id
            next_id += 1
            created += 1
        else:
            reused += 1

        anon_id = AnonymizedId(digest(secret, canonical), sequence_id)
        for member in members:
            entries[member] = anon_id

            if member in prior.superseded:
                old_sequence_id = prior.superseded[member].sequence_id
            elif member in prior and prior[member].sequence_id != sequence_id:
                old_sequence_id = prior[member].sequence_id
                merged += 1
                logger.debug(
                    "Sequence id %d superseded by %d", old_sequence_id, sequence_id
                )
            else:
                continue

            if old_sequence_id == sequence_id:
                del superseded[member]
            else:
                superseded[member] = AnonymizedId(digest(secret, member), old_sequence_id)

    output = AnonymizedOutput(entries, superseded)
    logger.info(
        "Anonymised %d patients in %d groups: %d new, %d existing, %d merged; "
        "output holds %d patients",
        len(batch.source_ids), len(groups), created, reused, merged, len(output),
    )
    return output


class PatientAnonymizer:
    """Holds a validated password and reconciles batches with it."""

    def __init__(self, secret: str) -> None:
        validate_secret(secret)
        self._secret = secret

    def anonymize(
        self, batch: Batch, prior: Optional[AnonymizedOutput] = None
    ) -> AnonymizedOutput:
        return reconcile(self._secret, batch, prior)
