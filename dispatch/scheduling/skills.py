"""Skill and certification matching between jobs and technicians."""

from abc import ABC, abstractmethod

from dispatch.core.config import SkillsConfig
from dispatch.core.schemas import Job, Technician


class SkillResolver(ABC):
    """Maps a job's free-text category to the skill tags it requires."""

    @abstractmethod
    def skills_for(self, category: str) -> list[str]:
        """Return required tags in priority order (may be empty)."""


class CategoryTableResolver(SkillResolver):
    """Case-insensitive substring lookup in a category → tags table.

    The first table key contained in the category wins, so table order matters.
    """

    def __init__(self, config: SkillsConfig | None = None) -> None:
        self._table = (config or SkillsConfig()).category_skills

    def skills_for(self, category: str) -> list[str]:
        lowered = category.lower()
        for key, tags in self._table.items():
            if key.lower() in lowered:
                return list(tags)
        return []


_DEFAULT_RESOLVER = CategoryTableResolver()


def required_skills(job: Job, resolver: SkillResolver | None = None) -> list[str]:
    """Skill tags a job needs, derived from its category or service type."""
    category = job.category or job.service_type or "General"
    return (resolver or _DEFAULT_RESOLVER).skills_for(category)


def has_skills(tech: Technician, required: list[str]) -> bool:
    """True if the technician can do work needing ``required``.

    A technician with no declared skills or specialties is a generalist and
    always qualifies.
    """
    if not required:
        return True
    declared = [s.lower() for s in (*tech.skills, *tech.specialties)]
    if not declared:
        return True
    wanted = [r.lower() for r in required]
    return any(tag in skill for skill in declared for tag in wanted)


def has_certifications(tech: Technician, job: Job) -> bool:
    """Every required certification must appear verbatim on the technician."""
    if not job.required_certifications:
        return True
    held = set(tech.certifications)
    return all(cert in held for cert in job.required_certifications)
