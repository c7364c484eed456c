"""CSV persistence for anonymisation outputs.

The output file is the full state carried between runs and links source
patient ids to their anonymised ids, so it must be stored as securely as the
source data.  The superseded-alias report holds anonymised ids only.
"""

import csv
import logging
from pathlib import Path

from id_generator.config import OUTPUT_COLUMNS, REPORT_COLUMNS
from id_generator.errors import InvalidIdentifierError, MalformedFileError
from id_generator.ids import AnonymizedId, SourceId
from id_generator.output import AnonymizedOutput

logger = logging.getLogger(__name__)


def write_output(output: AnonymizedOutput, path: Path) -> Path:
    """Write every entry of *output* to a CSV file and return its path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=OUTPUT_COLUMNS)
        writer.writeheader()
        for source_id, anon_id in output.items():
            old = output.superseded.get(source_id)
            writer.writerow({
                "source_id": source_id,
                "hash": anon_id.digest,
                "id": anon_id.sequence_id,
                "hmf_id": anon_id.label,
                "superseded_hash": old.digest if old else "",
                "superseded_id": old.sequence_id if old else "",
            })

    logger.info("Wrote %d anonymised patients to %s", len(output), path)
    return path


def _parse_sequence_id(value: str, where: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise MalformedFileError(f"{where}: invalid id {value!r}") from None


def read_output(path: Path) -> AnonymizedOutput:
    """Load an output written by :func:`write_output`.

    A missing file is a first run and gives an empty output.  Any malformed
    row raises MalformedFileError: a partially loaded output would lose
    patients on the next run.
    """
    path = Path(path)
    if not path.exists():
        logger.info("No previous output at %s, starting empty", path)
        return AnonymizedOutput()

    entries: dict[SourceId, AnonymizedId] = {}
    superseded: dict[SourceId, AnonymizedId] = {}

    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        missing = {"source_id", "hash", "id"} - set(reader.fieldnames or [])
        if missing:
            raise MalformedFileError(
                f"{path}: missing column(s) {', '.join(sorted(missing))}"
            )

        for line_no, row in enumerate(reader, start=2):
            where = f"{path}:{line_no}"
            try:
                source_id = SourceId(row["source_id"] or "")
            except InvalidIdentifierError:
                raise MalformedFileError(f"{where}: empty source_id") from None
            if source_id in entries:
                raise MalformedFileError(f"{where}: duplicate source_id")

            digest = row["hash"] or ""
            if not digest:
                raise MalformedFileError(f"{where}: empty hash")
            try:
                entries[source_id] = AnonymizedId(
                    digest, _parse_sequence_id(row["id"], where)
                )
                old_digest = row.get("superseded_hash") or ""
                old_id = row.get("superseded_id") or ""
                if bool(old_digest) != bool(old_id):
                    raise MalformedFileError(
                        f"{where}: superseded_hash and superseded_id must both be set"
                    )
                if old_id:
                    superseded[source_id] = AnonymizedId(
                        old_digest, _parse_sequence_id(old_id, where)
                    )
            except ValueError as exc:
                if isinstance(exc, MalformedFileError):
                    raise
                raise MalformedFileError(f"{where}: {exc}") from None

    output = AnonymizedOutput(entries, superseded)
    logger.info("Loaded %d anonymised patients from %s", len(output), path)
    return output


def write_superseded_report(output: AnonymizedOutput, path: Path) -> Path:
    """Write the superseded-alias report of *output* as CSV.

    One row per superseded AnonymizedId with the identity that replaced it,
    ordered by the old sequence id.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    report = sorted(
        output.superseded_aliases().items(), key=lambda kv: kv[0].sequence_id
    )
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=REPORT_COLUMNS)
        writer.writeheader()
        for old, new in report:
            writer.writerow({
                "old_hash": old.digest,
                "old_id": old.sequence_id,
                "old_hmf_id": old.label,
                "new_hash": new.digest,
                "new_id": new.sequence_id,
                "new_hmf_id": new.label,
            })

    logger.info("Wrote %d superseded aliases to %s", len(report), path)
    return path
