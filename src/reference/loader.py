"""
Reference Data Loader

Static game tables (jobs, weapons, spells, battle skills) loaded from the
JSON files shipped in ./data, plus the derived values the calculator needs.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"

PROFICIENCY_BONUS = 1.3
DEFAULT_DEFENSIVE_POWER = 0.0

# Vocabulary names accepted by ReferenceData.vocabulary()
VOCABULARIES = ("job", "weapon", "offensive_magic", "defensive_magic", "battle_skill")


@dataclass(frozen=True)
class ReferenceData:
    """
    Read-only game reference tables.

    Attributes:
        jobs: job name -> weapons the job is proficient with
        weapons: all weapon names
        offensive_magic: spell name -> offensive power multiplier
        defensive_magic: spell name -> defensive power
        battle_skills: all battle skill names
    """
    jobs: Mapping[str, Tuple[str, ...]]
    weapons: Tuple[str, ...]
    offensive_magic: Mapping[str, float]
    defensive_magic: Mapping[str, float]
    battle_skills: Tuple[str, ...]

    def vocabulary(self, kind: str) -> List[str]:
        """
        Names of one vocabulary, in table order.

        Raises:
            ValueError: If kind is not a known vocabulary
        """
        if kind == "job":
            return list(self.jobs.keys())
        if kind == "weapon":
            return list(self.weapons)
        if kind == "offensive_magic":
            return list(self.offensive_magic.keys())
        if kind == "defensive_magic":
            return list(self.defensive_magic.keys())
        if kind == "battle_skill":
            return list(self.battle_skills)
        raise ValueError(f"Unknown vocabulary: {kind}. Available: {', '.join(VOCABULARIES)}")

    def is_proficient(self, job: str, weapon: str) -> Optional[bool]:
        """Whether a job is proficient with a weapon; None if the job is unknown."""
        if job not in self.jobs:
            return None
        return weapon in self.jobs[job]

    def proficiency_multiplier(self, job: str, weapon: str) -> float:
        """1.3 for a proficient weapon, 1.0 otherwise (including unknown jobs)."""
        return PROFICIENCY_BONUS if self.is_proficient(job, weapon) else 1.0

    def offensive_power(self, magic: str) -> Optional[float]:
        """Spell multiplier, or None if the spell is unknown."""
        return self.offensive_magic.get(magic)

    def defensive_power(self, magic: str) -> float:
        """Spell defense value; unknown spells count as 0."""
        return self.defensive_magic.get(magic, DEFAULT_DEFENSIVE_POWER)


def _read_json(path: Path) -> Any:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def load_reference_data(data_dir: Path = DATA_DIR) -> ReferenceData:
    """
    Load all reference tables from a directory.

    Args:
        data_dir: Directory containing jobs.json, weapons.json,
                  offensive-magic.json, defensive-magic.json, battle-skills.json

    Returns:
        ReferenceData

    Raises:
        OSError: If a table file cannot be read
        json.JSONDecodeError: If a table file is not valid JSON
    """
    data_dir = Path(data_dir)

    jobs_raw = _read_json(data_dir / "jobs.json")
    jobs = {name: tuple(entry.get("weapons", [])) for name, entry in jobs_raw.items()}

    offensive_raw = _read_json(data_dir / "offensive-magic.json")
    offensive = {name: float(entry["power"]) for name, entry in offensive_raw.items()}

    defensive_raw = _read_json(data_dir / "defensive-magic.json")
    defensive = {name: float(entry["power"]) for name, entry in defensive_raw.items()}

    skills_path = data_dir / "battle-skills.json"
    battle_skills = tuple(_read_json(skills_path)) if skills_path.exists() else ()

    data = ReferenceData(
        jobs=MappingProxyType(jobs),
        weapons=tuple(_read_json(data_dir / "weapons.json")),
        offensive_magic=MappingProxyType(offensive),
        defensive_magic=MappingProxyType(defensive),
        battle_skills=battle_skills,
    )

    logger.debug(
        f"Reference data loaded: {len(data.jobs)} jobs, {len(data.weapons)} weapons, "
        f"{len(data.offensive_magic)} offensive / {len(data.defensive_magic)} defensive spells, "
        f"{len(data.battle_skills)} battle skills"
    )
    return data
