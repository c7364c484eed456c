"""Tests for id_generator.storage — CSV persistence."""

import csv

import pytest

from id_generator.anonymizer import Batch, reconcile
from id_generator.errors import MalformedFileError
from id_generator.ids import AnonymizedId
from id_generator.output import AnonymizedOutput
from id_generator.storage import read_output, write_output, write_superseded_report

PASSWORD = "password"


def _merged_output() -> AnonymizedOutput:
    """Two patients anonymised separately, then declared the same person."""
    output = reconcile(PASSWORD, Batch(("CPCT01990001", "CPCT01990002")))
    batch = Batch(
        ("CPCT01990001", "CPCT01990002"), {"CPCT01990001": "CPCT01990002"}
    )
    return reconcile(PASSWORD, batch, output)


def _read_rows(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


class TestWriteOutput:
    def test_columns(self, tmp_path):
        output = reconcile(PASSWORD, Batch(("CPCT01990001",)))
        path = write_output(output, tmp_path / "ids.csv")

        rows = _read_rows(path)
        assert len(rows) == 1
        assert rows[0]["source_id"] == "CPCT01990001"
        assert rows[0]["hash"] == output["CPCT01990001"].digest
        assert rows[0]["id"] == "1"
        assert rows[0]["hmf_id"] == "HMF000001"
        assert rows[0]["superseded_hash"] == ""
        assert rows[0]["superseded_id"] == ""

    def test_creates_parent_dirs(self, tmp_path):
        path = write_output(AnonymizedOutput(), tmp_path / "a" / "b" / "ids.csv")
        assert path.is_file()

    def test_superseded_columns(self, tmp_path):
        output = _merged_output()
        path = write_output(output, tmp_path / "ids.csv")
        rows = {r["source_id"]: r for r in _read_rows(path)}
        assert rows["CPCT01990001"]["id"] == "2"
        assert rows["CPCT01990001"]["superseded_id"] == "1"
        assert rows["CPCT01990002"]["superseded_id"] == ""


class TestReadOutput:
    def test_round_trip_with_superseded(self, tmp_path):
        output = _merged_output()
        path = write_output(output, tmp_path / "ids.csv")
        loaded = read_output(path)
        assert loaded == output
        assert loaded.superseded_aliases() == output.superseded_aliases()

    def test_missing_file_is_empty(self, tmp_path):
        assert len(read_output(tmp_path / "first_run.csv")) == 0

    def test_next_run_continues_numbering(self, tmp_path):
        path = write_output(_merged_output(), tmp_path / "ids.csv")
        updated = reconcile(PASSWORD, Batch(("CPCT01990003",)), read_output(path))
        assert updated["CPCT01990003"].sequence_id == 3

    @pytest.mark.parametrize(
        "body",
        [
            "CPCT01990001,abc,x,HMF000001,,\n",
            "CPCT01990001,abc,0,HMF000000,,\n",
            ",abc,1,HMF000001,,\n",
            "CPCT01990001,,1,HMF000001,,\n",
            "CPCT01990001,abc,1,HMF000001,,\nCPCT01990001,abc,1,HMF000001,,\n",
            "CPCT01990001,abc,2,HMF000002,def,y\n",
            "CPCT01990001,abc,2,HMF000002,,1\n",
            "CPCT01990001,abc,2,HMF000002,def,\n",
        ],
    )
    def test_malformed_rows(self, tmp_path, body):
        path = tmp_path / "ids.csv"
        path.write_text(
            "source_id,hash,id,hmf_id,superseded_hash,superseded_id\n" + body,
            encoding="utf-8",
        )
        with pytest.raises(MalformedFileError):
            read_output(path)

    def test_missing_columns(self, tmp_path):
        path = tmp_path / "ids.csv"
        path.write_text("source_id,hash\nCPCT01990001,abc\n", encoding="utf-8")
        with pytest.raises(MalformedFileError):
            read_output(path)

    def test_superseded_columns_optional(self, tmp_path):
        path = tmp_path / "ids.csv"
        path.write_text("source_id,hash,id\nCPCT01990001,abc,4\n", encoding="utf-8")
        output = read_output(path)
        assert output["CPCT01990001"] == AnonymizedId("abc", 4)
        assert dict(output.superseded) == {}


class TestSupersededReport:
    def test_report_rows(self, tmp_path):
        output = _merged_output()
        path = write_superseded_report(output, tmp_path / "report.csv")

        rows = _read_rows(path)
        assert len(rows) == 1
        assert rows[0]["old_id"] == "1"
        assert rows[0]["old_hmf_id"] == "HMF000001"
        assert rows[0]["new_id"] == "2"
        assert rows[0]["new_hmf_id"] == "HMF000002"
        assert rows[0]["new_hash"] == output["CPCT01990002"].digest

    def test_report_has_no_source_ids(self, tmp_path):
        path = write_superseded_report(_merged_output(), tmp_path / "report.csv")
        assert "CPCT0199" not in path.read_text(encoding="utf-8")

    def test_empty_report(self, tmp_path):
        output = reconcile(PASSWORD, Batch(("CPCT01990001",)))
        path = write_superseded_report(output, tmp_path / "report.csv")
        assert _read_rows(path) == []
