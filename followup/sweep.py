"""
Follow-up batch sweep CLI.

Usage:
    python -m followup.sweep --file data/applications.json
    python -m followup.sweep --file data/applications.json --mode enrich
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from config.settings import Settings, get_settings
from lead_scoring.application import ApplicationSnapshot
from llm.providers import create_llm_provider

from .orchestrator import FollowUpOrchestrator

logger = logging.getLogger(__name__)


def load_applications(file_path: str) -> List[ApplicationSnapshot]:
    """
    Load application records from a JSON file.

    Accepts a list of records or an object with an "applications" list.
    """
    path = Path(file_path)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("applications", [])
    if not isinstance(data, list):
        raise ValueError(f"{file_path}: expected a list of application records")

    apps = [ApplicationSnapshot.from_dict(record) for record in data if isinstance(record, dict)]
    logger.info(f"Loaded {len(apps)} applications from {path}")
    return apps


class SweepRunner:
    """Runs abandonment sweeps and nightly enrichment over a batch of applications."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        orchestrator: Optional[FollowUpOrchestrator] = None
    ):
        self.settings = settings or get_settings()
        self.orchestrator = orchestrator or FollowUpOrchestrator.from_settings(
            self.settings, provider=create_llm_provider(self.settings)
        )

    async def run_abandonment(self, applications: List[ApplicationSnapshot]) -> Dict[str, Any]:
        result = await self.orchestrator.process_abandoned_applications(applications)
        await self.orchestrator.dispatcher.drain()
        return result.to_dict()

    async def run_enrichment(self, applications: List[ApplicationSnapshot]) -> Dict[str, Any]:
        results = await self.orchestrator.enrich_batch(applications)
        return {
            "processed": len(applications),
            "enriched": {app_id: r.to_dict() for app_id, r in results.items()},
        }

    async def run(self, mode: str, applications: List[ApplicationSnapshot]) -> Dict[str, Any]:
        if mode == "enrich":
            return await self.run_enrichment(applications)
        return await self.run_abandonment(applications)


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="Funding Follow-Up Sweep")
    parser.add_argument("--file", required=True, help="Path to a JSON file of application records")
    parser.add_argument(
        "--mode",
        choices=["abandonment", "enrich"],
        default="abandonment",
        help="abandonment: trigger recovery sequences; enrich: batch lead scoring",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        applications = load_applications(args.file)
    except (OSError, ValueError) as e:
        logger.error(f"Could not load applications: {e}")
        sys.exit(1)

    runner = SweepRunner()
    summary = asyncio.run(runner.run(args.mode, applications))
    print(json.dumps(summary, indent=2, default=str))

    logger.info("Sweep finished")


if __name__ == "__main__":
    main()
