from pydantic import BaseModel, ConfigDict
from typing import Optional, Tuple


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Experience(_Frozen):
    """Work experience entry."""
    company: str
    position: str
    duration: str
    description: Tuple[str, ...] = ()


class Education(_Frozen):
    """Education entry."""
    institution: str
    degree: str
    duration: str
    details: Optional[str] = None


class Project(_Frozen):
    """Project entry. `technologies` is never populated by the extractor."""
    name: str
    description: str
    technologies: Tuple[str, ...] = ()


class Profile(_Frozen):
    """Structured profile assembled from one resume document.

    `experience` and `education` always hold at least one entry. `projects`
    is None when no project section was found, never an empty tuple.
    """
    name: str
    title: str
    summary: str
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None
    skills: Tuple[str, ...] = ()
    experience: Tuple[Experience, ...]
    education: Tuple[Education, ...]
    projects: Optional[Tuple[Project, ...]] = None
