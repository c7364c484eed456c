"""
Centralised configuration for the id_generator package.

Anonymised ID format, input/output file layouts, secret provisioning, and
logging setup used across all modules.
"""

import logging
import re

# ---------------------------------------------------------------------------
# Anonymised ID format
# ---------------------------------------------------------------------------
ANON_ID_PREFIX = "HMF"
ANON_ID_WIDTH = 6


def make_anon_id(n: int) -> str:
    """Format a sequential anonymised patient ID, e.g. make_anon_id(1) -> 'HMF000001'."""
    return f"{ANON_ID_PREFIX}{n:0{ANON_ID_WIDTH}d}"


# ---------------------------------------------------------------------------
# Sample identifiers
# ---------------------------------------------------------------------------
# <program><centre+patient digits><T|R><optional suffix>, e.g. CPCT01990001TII.
# The patient id is everything before the tumor/reference marker.
SAMPLE_ID_PATTERN = re.compile(
    r"^(?P<patient>(?:CPCT|DRUP|WIDE|CORE|COLO|ACTN)\d{8})(?P<sample>[TR][A-Z0-9]*)$"
)

# ---------------------------------------------------------------------------
# CSV layouts
# ---------------------------------------------------------------------------
# Persisted output — the only file that links SourceIds to anonymised ids.
OUTPUT_COLUMNS = [
    "source_id",
    "hash",
    "id",
    "hmf_id",
    "superseded_hash",
    "superseded_id",
]

# Superseded-alias report — anonymised ids only, safe to share.
REPORT_COLUMNS = [
    "old_hash",
    "old_id",
    "old_hmf_id",
    "new_hash",
    "new_id",
    "new_hmf_id",
]

# Alias declarations: patient_id denotes the same person as canonical_patient_id.
ALIAS_COLUMNS = ["patient_id", "canonical_patient_id"]

# ---------------------------------------------------------------------------
# Secret provisioning
# ---------------------------------------------------------------------------
PASSWORD_ENV_VAR = "ID_GENERATOR_PASSWORD"

# ---------------------------------------------------------------------------
# Logging helper
# ---------------------------------------------------------------------------
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO) -> None:
    """Configure root logging for id_generator commands."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
