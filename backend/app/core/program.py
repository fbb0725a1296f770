"""Program Catalog - training programmes offered on the paths screen.

Invariants:
    - tags is always a list of strings, whatever shape the row stored
      (JSON array text, list, or nothing)
    - split_programs() keeps only DISCOVERY and PREMIUM programmes, in input order
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from app.core.domain_types import ClanId

logger = logging.getLogger(__name__)


class ProgramType(str, Enum):
    DISCOVERY = "Découverte"
    PREMIUM = "Premium"


@dataclass(frozen=True)
class Program:
    id: str
    name: str
    type: str
    description: str | None = None
    image_url: str | None = None
    duration_days: int = 0
    tags: list[str] = field(default_factory=list)
    clan_id: ClanId | None = None
    difficulty: str | None = None
    # Free-form JSON documents rendered by the client
    results: Any = None
    journey_summary: Any = None


def normalize_tags(raw: Any) -> list[str]:
    """Tags arrive as a list or as JSON array text; anything else becomes []."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning(f"Unparseable programme tags: {raw!r}")
            return []
    if not isinstance(raw, list):
        return []
    return [str(tag) for tag in raw]


def split_programs(programs: list[Program]) -> dict[ProgramType, list[Program]]:
    split: dict[ProgramType, list[Program]] = {t: [] for t in ProgramType}
    for program in programs:
        try:
            split[ProgramType(program.type)].append(program)
        except ValueError:
            logger.debug(f"Skipping programme {program.id} of type {program.type!r}")
    return split
