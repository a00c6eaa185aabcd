"""Tests for the command line interface."""

import json

import pytest
from typer.testing import CliRunner

from cfsim.cli import app

runner = CliRunner()


@pytest.fixture
def cf_path(tmp_path, cloning_cf_text):
    path = tmp_path / "cloning.txt"
    path.write_text(cloning_cf_text)
    return path


class TestParseCommand:
    def test_prints_json(self, cf_path):
        result = runner.invoke(app, ["parse", str(cf_path)])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["steps"][0]["operation"] == "pcr"

    def test_reads_stdin(self, cloning_cf_text):
        result = runner.invoke(app, ["parse", "-"], input=cloning_cf_text)

        assert result.exit_code == 0
        assert "vecdig" in result.stdout

    def test_strict(self, cf_path):
        result = runner.invoke(app, ["parse", str(cf_path), "--strict"])

        assert result.exit_code == 1
        assert "Error" in result.output


class TestSimulateCommand:
    def test_table(self, cf_path):
        result = runner.invoke(app, ["simulate", str(cf_path)])

        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        assert lines[0] == "name\tsequence\tlength"
        assert [line.split("\t")[0] for line in lines[1:]] == ["pcrpdt", "pcrdig", "vecdig", "pLig", "pFinal"]
        assert lines[1].endswith("\t88")

    def test_json(self, cf_path):
        result = runner.invoke(app, ["simulate", str(cf_path), "--format", "json"])

        assert result.exit_code == 0
        products = json.loads(result.stdout)
        assert products[-1]["name"] == "pFinal"

    def test_genbank(self, cf_path):
        result = runner.invoke(app, ["simulate", str(cf_path), "--format", "genbank"])

        assert result.exit_code == 0
        assert result.stdout.count("LOCUS") == 5

    def test_linear_gibson(self, tmp_path):
        path = tmp_path / "gibson.txt"
        path.write_text(f"Gibson A B out\nA {'ACGT' * 5 + 'T' * 20}\nB {'T' * 20 + 'ACGT' * 5}\n")

        circular = runner.invoke(app, ["simulate", str(path), "--format", "json"])
        linear = runner.invoke(app, ["simulate", str(path), "--format", "json", "--linear"])

        assert json.loads(circular.stdout)[0]["sequence"] == "T" * 20 + "ACGT" * 5
        assert json.loads(linear.stdout)[0]["sequence"] == "ACGT" * 5 + "T" * 20 + "ACGT" * 5

    def test_linear_gibson_genbank_topology(self, tmp_path, plasmid):
        path = tmp_path / "chain.txt"
        path.write_text("\n".join([
            "Gibson f1 f2 f3 lin",
            f"f1 {plasmid[0:120]}",
            f"f2 {plasmid[100:220]}",
            f"f3 {plasmid[200:300]}",
        ]))
        result = runner.invoke(app, ["simulate", str(path), "--linear", "--format", "genbank"])

        assert result.exit_code == 0
        locus = result.stdout.splitlines()[0]
        assert locus.startswith("LOCUS")
        assert "linear" in locus
        assert "circular" not in locus

    def test_json_reports_topology(self, cf_path):
        result = runner.invoke(app, ["simulate", str(cf_path), "--format", "json"])

        products = json.loads(result.stdout)
        assert [p["circular"] for p in products] == [False, False, False, True, True]

    def test_simulation_error(self, tmp_path):
        path = tmp_path / "broken.txt"
        path.write_text("Ligate a missing c\na AATTCCCCGAATT\n")
        result = runner.invoke(app, ["simulate", str(path)])

        assert result.exit_code == 1
        assert "Unresolved reference" in result.output

    def test_unknown_format(self, cf_path):
        result = runner.invoke(app, ["simulate", str(cf_path), "--format", "xml"])

        assert result.exit_code == 2

    def test_log_file(self, cf_path, tmp_path):
        log_path = tmp_path / "cfsim.log"
        result = runner.invoke(app, ["simulate", str(cf_path), "--log-file", str(log_path)])

        assert result.exit_code == 0
        first = json.loads(log_path.read_text().splitlines()[0])
        assert "action_type" in first or "message_type" in first

    def test_log_file_released_after_command(self, cf_path, tmp_path):
        first_log = tmp_path / "first.log"
        second_log = tmp_path / "second.log"
        runner.invoke(app, ["simulate", str(cf_path), "--log-file", str(first_log)])
        lines_after_first = first_log.read_text().splitlines()

        result = runner.invoke(app, ["simulate", str(cf_path), "--log-file", str(second_log)])

        assert result.exit_code == 0
        assert first_log.read_text().splitlines() == lines_after_first
        assert second_log.read_text()
