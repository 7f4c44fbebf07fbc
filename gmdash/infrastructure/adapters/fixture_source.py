"""
Fixture Dashboard Source

Architectural Intent:
- Implements DashboardSourcePort from static JSON fixtures for local/offline use
- Payloads go through the same unwrap + normalize path as live data

Design Decisions:
- One JSON file per source, named after Source.value
- Fixture directory is injectable so tests can point at their own data
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Optional
import asyncio
import json
import logging

from gmdash.domain.ports.dashboard_source_port import Source, UpstreamError

logger = logging.getLogger(__name__)

FIXTURE_DIR = Path(__file__).resolve().parent.parent / "fixtures"


class FixtureDashboardSource:
    """DashboardSourcePort serving packaged sample payloads."""

    def __init__(self, fixture_dir: Optional[Path] = None) -> None:
        self.fixture_dir = Path(fixture_dir) if fixture_dir else FIXTURE_DIR

    def _load(self, source: Source) -> Any:
        path = self.fixture_dir / f"{source.value}.json"
        try:
            with open(path) as f:
                return json.load(f)
        except FileNotFoundError as e:
            raise UpstreamError(f"Fixture not found: {path}", url=str(path)) from e
        except json.JSONDecodeError as e:
            raise UpstreamError(f"Invalid fixture {path}: {e}", url=str(path)) from e

    async def fetch(self, source: Source) -> Any:
        logger.info("Using local data for %s", source.label)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._load, source)
