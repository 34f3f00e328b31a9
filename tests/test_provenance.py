# tests/test_provenance.py
"""
Tests for dry runs and help output.

Covers:
    - ParamStatus standalone behavior
    - Blueprint.dry_run() statuses and sources
    - DryRunReport helpers (missing, sources_summary)
    - Blueprint.get_help() rendering
"""

import pytest

from strata import Blueprint, Reference
from strata.provenance import DryRunReport, ParamStatus

from sample_schemas import Adam, Experiment, Network, Schedule, Trainer

# ---------------------------------------------------------------------------
# ParamStatus
# ---------------------------------------------------------------------------


class TestParamStatus:
    """Tests for the ParamStatus dataclass."""

    def test_frozen(self):
        status = ParamStatus(path="a", type_repr="int", status="set", value=1)
        with pytest.raises(AttributeError):
            status.value = 2  # type: ignore[misc]

    def test_repr(self):
        """repr shows path = value ← source."""
        r = repr(ParamStatus(path="db.port", type_repr="int", status="set", value=42, source="file:x.toml"))
        assert "db.port" in r
        assert "42" in r
        assert "file:x.toml" in r

    def test_render_value(self):
        assert ParamStatus("a", "int", "missing").render_value() == "-"
        assert ParamStatus("a", "int", "reference", Reference("b")).render_value() == "@=b"
        assert ParamStatus("a", "int", "default", 3).render_value() == "3"


# ---------------------------------------------------------------------------
# dry_run()
# ---------------------------------------------------------------------------


class TestDryRun:
    """Blueprint.dry_run() reports every parameter without requiring completeness."""

    def test_statuses(self):
        report = Blueprint(Experiment).apply({"model.hidden": 8}, layer_name="preset").dry_run()
        assert isinstance(report, DryRunReport)
        assert report.missing == ["name"]

        hidden = report.get("model.hidden")
        assert (hidden.status, hidden.value, hidden.source) == ("set", 8, "preset")

        layers = report.get("model.layers")
        assert (layers.status, layers.value, layers.source) == ("default", 2, "default")

        assert report.get("model").status == "constructed"
        assert report.get("nope") is None

    def test_type_and_doc(self):
        name = Blueprint(Experiment).dry_run().get("name")
        assert name.type_repr == "str"
        assert name.doc == "Run name"

    def test_reference_status(self):
        report = Blueprint(Schedule).apply_from_argv(["train_lr=0.1", "eval_lr@=train_lr"]).dry_run()
        eval_lr = report.get("eval_lr")
        assert eval_lr.status == "reference"
        assert eval_lr.value == Reference("train_lr")
        assert eval_lr.source == "command line"

    def test_polymorphic_status(self):
        report = Blueprint(Trainer).apply_from_argv(["optimizer=adam"]).dry_run()
        optimizer = report.get("optimizer")
        assert optimizer.status == "constructed"
        assert optimizer.value is Adam
        assert report.get("optimizer.beta1").status == "default"

    def test_sources_summary(self):
        report = Blueprint(Experiment).apply({"model.hidden": 8}, layer_name="preset").dry_run()
        assert report.sources_summary() == {"missing": 1, "constructed": 1, "preset": 1, "default": 1}

    def test_entries_is_copy(self):
        report = Blueprint(Experiment).dry_run()
        entries = report.entries()
        entries.clear()
        assert report.entries()


# ---------------------------------------------------------------------------
# get_help()
# ---------------------------------------------------------------------------


class TestHelp:
    """Rendered help text."""

    def test_missing_warning(self):
        text = Blueprint(Experiment).get_help()
        assert text.startswith("WARNING: Missing required arguments for parameter(s): name")
        assert "Entry point: sample_schemas:Experiment" in text
        assert "Arguments:" in text

    def test_rows(self):
        text = Blueprint(Experiment).apply_from_argv(["name=run", "model.hidden=8"]).get_help()
        assert "WARNING" not in text
        rows = {line.split()[0]: line for line in text.splitlines() if line.startswith("  ")}
        assert set(rows) == {"name", "model", "model.hidden", "model.layers"}
        assert "Run name" in rows["name"]
        assert "8" in rows["model.hidden"]
        assert "<constructed>" in rows["model"]

    def test_rows_in_construction_order(self):
        text = Blueprint(Experiment).get_help()
        paths = [line.split()[0] for line in text.splitlines() if line.startswith("  ")]
        assert paths == ["name", "model", "model.hidden", "model.layers"]

    def test_list_indices_in_numeric_order(self):
        args = {f"blocks.{i}.size": i for i in (10, 2)}
        text = Blueprint(Network).apply(args).get_help()
        paths = [line.split()[0] for line in text.splitlines() if line.startswith("  ")]
        assert paths.index("blocks.2.size") < paths.index("blocks.10.size")
