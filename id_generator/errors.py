"""Exceptions raised by the id_generator package."""


class AnonymizationError(ValueError):
    """Base class for errors that abort an anonymisation run."""


class InvalidKeyError(AnonymizationError):
    """The secret password is empty or blank."""


class InvalidIdentifierError(AnonymizationError):
    """A source identifier is empty or blank."""


class AliasCycleError(AnonymizationError):
    """Following the alias map loops back onto an already visited patient."""

    def __init__(self, chain):
        self.chain = list(chain)
        super().__init__("Alias map contains a cycle: " + " -> ".join(self.chain))


class MalformedFileError(AnonymizationError):
    """An input or persisted output file cannot be parsed."""
