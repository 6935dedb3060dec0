"""
Oracle migration guide rendering.

Turns detector findings into a Markdown guide describing how to move each
detected provider to the APRO oracle on SOON.
"""

from typing import Dict, Iterable, List, Optional

from soonmigrate.core.oracle import (
    Confidence,
    OracleDetector,
    OracleFinding,
    OracleProvider,
    SignatureTable,
    load_signature_table,
)

APRO_PROGRAM_ID = "4Mvy4RKRyJMf4PHavvGUuTj9agoddUZ9atQoFma1tyMY"
APRO_API_ENDPOINTS = {
    "Devnet": "https://live-api-test.apro.com",
    "Mainnet": "https://live-api.apro.com",
}
APRO_DEVNET_FEEDS = {
    "BTC/USD": "0x0003665949c883f9e0f6f002eac32e00bd59dfe6c34e92a91c37d6a8322d6489",
    "ETH/USD": "0x0003555ace6b39aae1b894097d0a9fc17f504c62fea598fa206cc6f5088e6e45",
    "SOL/USD": "0x000343ec7f6691d6bf679978bab5c093fa45ee74c0baac6cc75649dc59cc21d3",
    "USDT/USD": "0x00039a0c0be4e43cacda1599ac414205651f4a62b614b6be9e5318a182c33eb0",
    "USDC/USD": "0x00034b881a0c0fff844177f881a313ff894bfc6093d33b5514e34d7faa41b7ef",
}
MAX_LISTED_LOCATIONS = 10

NO_ORACLE_SECTION = (
    "# Oracle Migration Guide\n\n"
    "## No oracle usage detected\n\n"
    "No Pyth, Switchboard, Chainlink or other known oracle signatures were found. "
    "The project should migrate to SOON Network without oracle changes.\n"
)


class GuideGenerator:
    """Render a Markdown migration guide from oracle findings."""

    def __init__(self, table: Optional[SignatureTable] = None, documentation_url: str = ""):
        """
        Initialize the generator.

        Args:
            table: Signature table supplying per-provider guidance
            documentation_url: Link to the SOON oracle integration docs
        """
        self.table = table or load_signature_table()
        self.documentation_url = documentation_url

    @staticmethod
    def group(findings: Iterable[OracleFinding]) -> Dict[OracleProvider, List[OracleFinding]]:
        """Group findings by provider, providers ordered by first occurrence."""
        grouped: Dict[OracleProvider, List[OracleFinding]] = {}
        for finding in findings:
            grouped.setdefault(finding.provider, []).append(finding)
        return grouped

    def generate(self, findings: Iterable[OracleFinding]) -> str:
        grouped = self.group(findings)
        if not grouped:
            return NO_ORACLE_SECTION

        lines: List[str] = [
            "# APRO Oracle Integration Guide for SOON Network",
            "",
            "## Overview",
            "APRO is the native oracle on SOON. This guide lists the oracle usages found "
            "in the project and how to replace each of them.",
            "",
            "## Program IDs",
            "```",
            f"Devnet:  {APRO_PROGRAM_ID}",
            f"Mainnet: {APRO_PROGRAM_ID}",
            "```",
            "",
            "## API Endpoints",
            "```",
        ]
        lines.extend(f"{network + ':':<9}{url}" for network, url in APRO_API_ENDPOINTS.items())
        lines.extend(["```", ""])

        for provider, provider_findings in grouped.items():
            lines.extend(self._provider_section(provider, provider_findings))

        lines.extend(["## Available Price Feeds (Devnet)"])
        lines.extend(f"- {pair}: {feed_id}" for pair, feed_id in APRO_DEVNET_FEEDS.items())
        lines.extend(
            [
                "",
                "## Getting Started",
                "1. Contact the APRO business development team for feed authorization.",
                "2. Add the APRO oracle SDK to your Cargo.toml.",
                "3. Replace the provider-specific code listed above.",
                "4. Test on SOON devnet before deploying to mainnet.",
                "",
            ]
        )
        lines.append(self._documentation_pointer())
        return "\n".join(lines) + "\n"

    def _provider_section(self, provider: OracleProvider, findings: List[OracleFinding]) -> List[str]:
        entry = self.table.get(provider)
        title = "other oracle providers" if provider is OracleProvider.OTHER else provider.value
        lines = [f"## Migrating from {title}", ""]

        confidence = OracleDetector.confidence_by_provider(findings)[provider]
        lines.append(f"Detection confidence: **{confidence.value}**")
        if confidence is not Confidence.HIGH:
            lines.append(
                "These matches may be comments or unrelated names; confirm the usage before changing code."
            )
        lines.append("")

        count = len(findings)
        lines.append(f"Detected {count} usage{'s' if count != 1 else ''}:")
        for finding in findings[:MAX_LISTED_LOCATIONS]:
            lines.append(f"- `{finding.location}`: `{finding.matched_text}`")
        if count > MAX_LISTED_LOCATIONS:
            lines.append(f"- ... and {count - MAX_LISTED_LOCATIONS} more")
        lines.append("")

        if entry is not None and entry.suggestion:
            lines.extend([entry.suggestion, ""])
        else:
            lines.extend(["Replace this oracle integration with the equivalent APRO feed.", ""])

        if entry is not None and entry.before and entry.after:
            lines.extend(
                [
                    "```rust",
                    f"// Before ({provider.value})",
                    entry.before,
                    "",
                    "// After (APRO)",
                    entry.after,
                    "```",
                    "",
                ]
            )

        lines.extend([self._documentation_pointer(), ""])
        return lines

    def _documentation_pointer(self) -> str:
        if self.documentation_url:
            return f"See the SOON oracle integration documentation: {self.documentation_url}"
        return "See the APRO oracle documentation for complete integration examples."
