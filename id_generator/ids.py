"""Value types for source and anonymised patient identities."""

from dataclasses import dataclass

from id_generator.config import make_anon_id
from id_generator.errors import InvalidIdentifierError


class SourceId(str):
    """A source-system patient identifier.

    Behaves exactly like the underlying string (hashing, equality, sorting)
    but can only be constructed from a non-blank value.
    """

    __slots__ = ()

    def __new__(cls, value):
        if isinstance(value, SourceId):
            return value
        if not isinstance(value, str) or not value.strip():
            raise InvalidIdentifierError(f"Invalid source identifier: {value!r}")
        return super().__new__(cls, value)

    def __repr__(self) -> str:
        return f"SourceId({str.__repr__(self)})"


@dataclass(frozen=True)
class AnonymizedId:
    """A keyed hash paired with its permanent sequence id."""

    digest: str
    sequence_id: int

    def __post_init__(self) -> None:
        if (
            isinstance(self.sequence_id, bool)
            or not isinstance(self.sequence_id, int)
            or self.sequence_id < 1
        ):
            raise ValueError(
                f"Sequence id must be a positive integer: {self.sequence_id!r}"
            )

    @property
    def label(self) -> str:
        """Human-readable id shared with data consumers, e.g. ``HMF000001``."""
        return make_anon_id(self.sequence_id)
