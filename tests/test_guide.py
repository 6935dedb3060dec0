"""
Tests for the oracle migration guide.
"""

from pathlib import Path

from soonmigrate.core.guide import APRO_PROGRAM_ID, MAX_LISTED_LOCATIONS, GuideGenerator
from soonmigrate.core.oracle import Confidence, OracleFinding, OracleProvider, SignatureTable


def _finding(provider, path="programs/app/src/lib.rs", line=1, text="x", confidence=Confidence.HIGH):
    return OracleFinding(Path(path), line, provider, text, confidence=confidence)


class TestGuideGenerator:
    """Test Markdown guide rendering."""

    def setup_method(self):
        """Set up a generator with the packaged signature table."""
        self.generator = GuideGenerator(documentation_url="https://docs.soo.network")

    def test_no_findings(self):
        """An empty finding list renders the no-oracle section."""
        guide = self.generator.generate([])

        assert guide.startswith("# Oracle Migration Guide")
        assert "No oracle usage detected" in guide
        assert APRO_PROGRAM_ID not in guide

    def test_pyth_section(self):
        """A Pyth finding renders a Pyth migration section with its location."""
        guide = self.generator.generate(
            [_finding(OracleProvider.PYTH, line=2, text="pyth_sdk_solana")]
        )

        assert "# APRO Oracle Integration Guide for SOON Network" in guide
        assert "## Migrating from Pyth" in guide
        assert "`programs/app/src/lib.rs:2`: `pyth_sdk_solana`" in guide
        assert "Detected 1 usage:" in guide
        assert APRO_PROGRAM_ID in guide
        assert "https://docs.soo.network" in guide
        assert "## Migrating from Switchboard" not in guide

    def test_sections_in_first_occurrence_order(self):
        """Provider sections follow the order providers were first seen."""
        findings = [
            _finding(OracleProvider.SWITCHBOARD),
            _finding(OracleProvider.PYTH),
            _finding(OracleProvider.SWITCHBOARD, line=5),
        ]
        guide = self.generator.generate(findings)

        assert guide.index("## Migrating from Switchboard") < guide.index("## Migrating from Pyth")
        assert "Detected 2 usages:" in guide

    def test_other_provider_title(self):
        """Unclassified providers get a generic section title."""
        guide = self.generator.generate([_finding(OracleProvider.OTHER, text="redstone")])
        assert "## Migrating from other oracle providers" in guide

    def test_location_list_truncated(self):
        """Long location lists are cut off with a count of the rest."""
        findings = [_finding(OracleProvider.CHAINLINK, line=i) for i in range(1, MAX_LISTED_LOCATIONS + 4)]
        guide = self.generator.generate(findings)

        assert f"lib.rs:{MAX_LISTED_LOCATIONS}`" in guide
        assert f"lib.rs:{MAX_LISTED_LOCATIONS + 1}`" not in guide
        assert "... and 3 more" in guide

    def test_guide_is_deterministic(self):
        """Equal finding lists render identical guides."""
        findings = [_finding(OracleProvider.PYTH), _finding(OracleProvider.CHAINLINK)]
        assert self.generator.generate(findings) == self.generator.generate(list(findings))

    def test_snippets_from_table(self):
        """Before/after snippets come from the signature table."""
        table = SignatureTable.from_dict(
            {
                "providers": {
                    "Pyth": {
                        "signatures": ["pyth"],
                        "suggestion": "Swap the feed account.",
                        "before": "let p = pyth::load();",
                        "after": "let p = apro::load();",
                    }
                }
            }
        )
        guide = GuideGenerator(table).generate([_finding(OracleProvider.PYTH)])

        assert "Swap the feed account." in guide
        assert "let p = pyth::load();" in guide
        assert "let p = apro::load();" in guide
        assert "See the APRO oracle documentation" in guide

    def test_confidence_shown_per_provider(self):
        """Each provider section states its detection confidence."""
        guide = self.generator.generate(
            [
                _finding(OracleProvider.PYTH),
                _finding(OracleProvider.OTHER, text="redstone", confidence=Confidence.LOW),
            ]
        )
        pyth_section, other_section = guide.split("## Migrating from other oracle providers")

        assert "Detection confidence: **High**" in pyth_section
        assert "confirm the usage" not in pyth_section
        assert "Detection confidence: **Low**" in other_section
        assert "confirm the usage before changing code" in other_section
