"""Read-only view of a school's curriculum structure."""
from typing import List, Optional, Set, Union

from school_admin.core.errors import ValidationError
from school_admin.models.school import School
from school_admin.schemas.enums import CURRICULUM_COVERAGE, CurriculumType, EducationalLevel, Pathway

LEVEL_FLAGS = (
    ("has_pre_primary", EducationalLevel.PRE_PRIMARY),
    ("has_primary", EducationalLevel.PRIMARY),
    ("has_junior_secondary", EducationalLevel.JUNIOR_SECONDARY),
    ("has_senior_secondary", EducationalLevel.SENIOR_SECONDARY),
    ("has_secondary", EducationalLevel.SECONDARY),
)

DEFAULT_GRADE_LEVELS = {
    EducationalLevel.PRE_PRIMARY: ["PP1", "PP2"],
    EducationalLevel.PRIMARY: [f"Grade {n}" for n in range(1, 7)],
    EducationalLevel.JUNIOR_SECONDARY: [f"Grade {n}" for n in range(7, 10)],
    EducationalLevel.SENIOR_SECONDARY: [f"Grade {n}" for n in range(10, 13)],
    EducationalLevel.SECONDARY: [f"Form {n}" for n in range(1, 5)],
}


def _coverage(value: Optional[str]) -> Set[CurriculumType]:
    if not value:
        return set()
    try:
        return set(CURRICULUM_COVERAGE[CurriculumType(value)])
    except ValueError:
        return set()


def offered_curricula(school: School) -> List[str]:
    """Curricula the school runs, with "Both" expanded"""
    offered = _coverage(school.primary_curriculum) | _coverage(school.secondary_curriculum)
    return [c.value for c in (CurriculumType.CBC, CurriculumType.EIGHT_FOUR_FOUR) if c in offered]


def offered_levels(school: School) -> List[str]:
    return [level.value for flag, level in LEVEL_FLAGS if getattr(school, flag)]


def offers_level(school: School, level: Union[str, EducationalLevel]) -> bool:
    value = level.value if isinstance(level, EducationalLevel) else level
    return value in offered_levels(school)


def offered_pathways(school: School) -> List[str]:
    if not school.has_senior_secondary:
        return []
    known = {p.value for p in Pathway}
    return [p for p in (school.senior_secondary_pathways or []) if p in known]


def offers_pathway(school: School, pathway: Union[str, Pathway]) -> bool:
    value = pathway.value if isinstance(pathway, Pathway) else pathway
    return value in offered_pathways(school)


def grade_levels(school: School) -> List[str]:
    if school.grade_levels:
        return list(school.grade_levels)
    levels: List[str] = []
    for flag, level in LEVEL_FLAGS:
        if getattr(school, flag):
            levels.extend(DEFAULT_GRADE_LEVELS[level])
    return levels


def resolve_curriculum(school: School, requested: Optional[Union[str, CurriculumType]]) -> str:
    """
    Pick the curriculum a new record runs under.

    A school running a single curriculum forces it, whatever the client
    sent. A school running both needs the client to choose one of them.
    """
    offered = offered_curricula(school)
    value = requested.value if isinstance(requested, CurriculumType) else requested

    if len(offered) == 1:
        return offered[0]

    if value in (None, CurriculumType.BOTH.value):
        raise ValidationError(
            "The curriculum type field is required",
            errors={"curriculum_type": ["Choose CBC or 8-4-4 for this school"]}
        )
    if offered and value not in offered:
        raise ValidationError(
            "The selected curriculum type is not offered by this school",
            errors={"curriculum_type": [f"Must be one of: {', '.join(offered)}"]}
        )
    return value


def school_config(school: School) -> dict:
    return {
        "school_id": school.id,
        "name": school.name,
        "has_streams": bool(school.has_streams),
        "assignment_mode": "streamed" if school.has_streams else "plain",
        "primary_curriculum": school.primary_curriculum,
        "secondary_curriculum": school.secondary_curriculum,
        "curricula": offered_curricula(school),
        "educational_levels": offered_levels(school),
        "senior_secondary_pathways": offered_pathways(school),
        "grade_levels": grade_levels(school),
    }
