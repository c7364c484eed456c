"""Sample id parsing and batch construction from input files.

Sample ids carry the owning patient id as a prefix, e.g. ``CPCT01990001T``
and ``CPCT01990001TII`` are two samples of patient ``CPCT01990001``.  Only
patients are anonymised; samples just tell us which patients are present.
"""

import csv
import logging
from pathlib import Path
from typing import Iterable, Optional

from id_generator.anonymizer import Batch
from id_generator.config import ALIAS_COLUMNS, SAMPLE_ID_PATTERN
from id_generator.errors import MalformedFileError

logger = logging.getLogger(__name__)


def parse_sample_id(sample_id: str) -> Optional[str]:
    """Return the patient id owning *sample_id*, or None if it is not a sample id.

    Parameters
    ----------
    sample_id : str
        Sample identifier, e.g. ``CPCT01990001TII``.  Surrounding whitespace
        is ignored.

    Returns
    -------
    str or None
        The patient id (``CPCT01990001``), or None when the text does not
        match ``SAMPLE_ID_PATTERN``.
    """
    match = SAMPLE_ID_PATTERN.match(sample_id.strip())
    if match is None:
        return None
    return match.group("patient")


def read_sample_ids(path: Path) -> list[str]:
    """Read one sample id per line, skipping blank lines and ``#`` comments."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Samples file does not exist: {path}")

    sample_ids = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            sample_ids.append(line)
    logger.info("Read %d sample ids from %s", len(sample_ids), path)
    return sample_ids


def read_alias_map(path: Path) -> dict[str, str]:
    """Read alias declarations from a ``patient_id,canonical_patient_id`` CSV.

    Each row declares that ``patient_id`` is the same person as
    ``canonical_patient_id``.  Rows with an empty column raise
    MalformedFileError.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Alias file does not exist: {path}")

    patient_col, canonical_col = ALIAS_COLUMNS
    aliases: dict[str, str] = {}
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        missing = set(ALIAS_COLUMNS) - set(reader.fieldnames or [])
        if missing:
            raise MalformedFileError(
                f"{path}: missing column(s) {', '.join(sorted(missing))}"
            )
        for line_no, row in enumerate(reader, start=2):
            patient = (row.get(patient_col) or "").strip()
            canonical = (row.get(canonical_col) or "").strip()
            if not patient or not canonical:
                raise MalformedFileError(f"{path}:{line_no}: incomplete alias row")
            if patient in aliases and aliases[patient] != canonical:
                raise MalformedFileError(
                    f"{path}:{line_no}: conflicting aliases for one patient"
                )
            aliases[patient] = canonical
    logger.info("Read %d patient aliases from %s", len(aliases), path)
    return aliases


def build_batch(
    sample_ids: Iterable[str], aliases: Optional[dict[str, str]] = None
) -> Batch:
    """Build a Batch of the patients owning *sample_ids*.

    Patients appear in the order of their first sample.  Sample ids that do
    not parse are logged and skipped.
    """
    patients = []
    skipped = 0
    for sample_id in sample_ids:
        patient = parse_sample_id(sample_id)
        if patient is None:
            logger.warning("Skipping unrecognised sample id: %s", sample_id)
            skipped += 1
            continue
        patients.append(patient)

    batch = Batch(source_ids=tuple(patients), aliases=aliases or {})
    logger.info(
        "Batch: %d patients from %d samples (%d skipped), %d aliases",
        len(batch.source_ids), len(patients), skipped, len(batch.aliases),
    )
    return batch
