"""Heuristic resume text -> Profile extraction.

Every extractor is a pure function over the raw text (or its lines/blocks)
and falls back to a plausible default instead of failing, so
`extract_profile` is total over any input string.
"""
import re
import logging
from enum import Enum
from typing import Callable, List, Optional, TypeVar

from profile_engine.models import Education, Experience, Profile, Project
from profile_engine.normalizer import to_blocks, to_lines

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ============================================================
# Patterns
# ============================================================
# Contact and date patterns only accept ASCII letters and digits
EMAIL_RE = re.compile(r'[\w.-]+@[\w.-]+\.\w+', re.ASCII)
PHONE_RE = re.compile(r'(\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}', re.ASCII)
LINKEDIN_RE = re.compile(r'linkedin\.com/in/[\w-]+', re.IGNORECASE | re.ASCII)
GITHUB_RE = re.compile(r'github\.com/[\w-]+', re.IGNORECASE | re.ASCII)

NAME_SKIP_RE = re.compile(r'resume|cv|curriculum|vitae', re.IGNORECASE)

EXPERIENCE_HEADING = re.compile(r'experience|work\s+history|employment', re.IGNORECASE)
EDUCATION_HEADING = re.compile(r'education|academic|university|college', re.IGNORECASE)
PROJECTS_HEADING = re.compile(r'projects?|portfolio', re.IGNORECASE)

EXPERIENCE_STOP = re.compile(r'education|skills|projects', re.IGNORECASE)
EDUCATION_STOP = re.compile(r'experience|skills|projects', re.IGNORECASE)
PROJECTS_STOP = re.compile(r'experience|education|skills', re.IGNORECASE)

EXPERIENCE_DATE_RE = re.compile(r'\d{4}|present|current', re.IGNORECASE | re.ASCII)
YEAR_RE = re.compile(r'\d{4}', re.ASCII)
DEGREE_RE = re.compile(r'bachelor|master|phd|b\.s\.|m\.s\.|degree', re.IGNORECASE)

SKILLS_SECTION_RE = re.compile(
    r'skills?[:\s]+(.*?)(?=\n\n|experience|education|projects|\Z)',
    re.IGNORECASE | re.DOTALL,
)
SKILL_SPLIT_RE = re.compile(r'[,•|\n]')
SUMMARY_SECTION_RE = re.compile(
    r'(summary|about|profile|objective)[:\s]+(.*?)(?=\n\n|experience|education|skills|\Z)',
    re.IGNORECASE | re.DOTALL,
)

# ============================================================
# Limits and fallbacks
# ============================================================
MAX_NAME_LENGTH = 50
MAX_SKILL_LENGTH = 30
MAX_SKILLS = 15
MAX_SUMMARY_LENGTH = 300
MIN_POSITION_LENGTH = 5
MIN_BULLET_LENGTH = 10

COMMON_SKILLS = [
    'JavaScript', 'TypeScript', 'React', 'Node.js', 'Python',
    'Java', 'SQL', 'AWS', 'Docker', 'Git',
]

DEFAULT_NAME = 'Professional Name'
DEFAULT_TITLE = 'Professional'
DEFAULT_COMPANY = 'Company Name'
DEFAULT_DURATION = '2020 - Present'
DEFAULT_INSTITUTION = 'University'
DEFAULT_DEGREE = 'Bachelor of Science'
DEFAULT_EDUCATION_DURATION = '2016 - 2020'

FALLBACK_EXPERIENCE = Experience(
    company='Tech Company',
    position='Software Engineer',
    duration=DEFAULT_DURATION,
    description=(
        'Developed and maintained software applications',
        'Collaborated with cross-functional teams',
    ),
)
FALLBACK_EDUCATION = Education(
    institution=DEFAULT_INSTITUTION,
    degree=DEFAULT_DEGREE,
    duration=DEFAULT_EDUCATION_DURATION,
)


class SectionState(Enum):
    OUTSIDE = "outside"
    INSIDE = "inside"


def _first_match(pattern: re.Pattern, text: str) -> Optional[str]:
    match = pattern.search(text)
    return match.group(0) if match else None


# ============================================================
# Contact and name
# ============================================================
def extract_email(text: str) -> Optional[str]:
    return _first_match(EMAIL_RE, text)


def extract_phone(text: str) -> Optional[str]:
    return _first_match(PHONE_RE, text)


def extract_linkedin(text: str) -> Optional[str]:
    return _first_match(LINKEDIN_RE, text)


def extract_github(text: str) -> Optional[str]:
    return _first_match(GITHUB_RE, text)


def extract_name(lines: List[str]) -> str:
    """First line is the name unless it is long or a resume/CV title line."""
    if lines:
        first_line = lines[0]
        if len(first_line) < MAX_NAME_LENGTH and not NAME_SKIP_RE.search(first_line):
            return first_line
    return DEFAULT_NAME


# ============================================================
# Section-scoped extraction
# ============================================================
def scan_section(
    blocks: List[str],
    heading: re.Pattern,
    stop: re.Pattern,
    parse_block: Callable[[List[str]], Optional[T]],
) -> List[T]:
    """Collect records from the blocks following a section heading.

    The heading block itself is discarded. Scanning ends at the first block
    matching `stop` or when the blocks run out; a section is never re-entered.
    Blocks that `parse_block` rejects (returns None) are skipped.
    """
    records: List[T] = []
    state = SectionState.OUTSIDE

    for block in blocks:
        if state is SectionState.OUTSIDE:
            if heading.search(block):
                state = SectionState.INSIDE
            continue

        if stop.search(block):
            break

        record = parse_block(to_lines(block))
        if record is not None:
            records.append(record)

    return records


def parse_experience_block(lines: List[str]) -> Optional[Experience]:
    if len(lines) < 3:
        return None

    position = next(
        (l for l in lines if not EXPERIENCE_DATE_RE.search(l) and len(l) > MIN_POSITION_LENGTH),
        None,
    )
    if position is None:
        return None

    duration = next((l for l in lines if EXPERIENCE_DATE_RE.search(l)), DEFAULT_DURATION)
    return Experience(
        company=lines[0] or DEFAULT_COMPANY,
        position=position,
        duration=duration,
        description=tuple(l for l in lines[2:] if len(l) > MIN_BULLET_LENGTH),
    )


def parse_education_block(lines: List[str]) -> Optional[Education]:
    if len(lines) < 2:
        return None

    return Education(
        institution=lines[0] or DEFAULT_INSTITUTION,
        degree=next((l for l in lines if DEGREE_RE.search(l)), DEFAULT_DEGREE),
        duration=next((l for l in lines if YEAR_RE.search(l)), DEFAULT_EDUCATION_DURATION),
    )


def parse_project_block(lines: List[str]) -> Optional[Project]:
    if len(lines) < 2:
        return None

    # TODO: pull technologies from "Name - React, Node.js" style title lines
    return Project(name=lines[0], description=' '.join(lines[1:]))


def extract_experience(blocks: List[str]) -> List[Experience]:
    experience = scan_section(blocks, EXPERIENCE_HEADING, EXPERIENCE_STOP, parse_experience_block)
    if not experience:
        logger.debug("No experience entries found, using fallback entry")
        experience.append(FALLBACK_EXPERIENCE)
    return experience


def extract_education(blocks: List[str]) -> List[Education]:
    education = scan_section(blocks, EDUCATION_HEADING, EDUCATION_STOP, parse_education_block)
    if not education:
        logger.debug("No education entries found, using fallback entry")
        education.append(FALLBACK_EDUCATION)
    return education


def extract_projects(blocks: List[str]) -> List[Project]:
    return scan_section(blocks, PROJECTS_HEADING, PROJECTS_STOP, parse_project_block)


# ============================================================
# Skills and summary
# ============================================================
def extract_skills(text: str) -> List[str]:
    """Skills section items followed by well-known technologies found in the text.

    Items from the skills section are kept as written (duplicates included);
    a technology from COMMON_SKILLS is only added when not already listed.
    """
    skills: List[str] = []

    section = SKILLS_SECTION_RE.search(text)
    if section:
        for item in SKILL_SPLIT_RE.split(section.group(1)):
            item = item.strip()
            if item and len(item) < MAX_SKILL_LENGTH:
                skills.append(item)

    for skill in COMMON_SKILLS:
        if skill in text and skill not in skills:
            skills.append(skill)

    return skills[:MAX_SKILLS]


def extract_summary(text: str, experience: List[Experience], skills: List[str]) -> str:
    section = SUMMARY_SECTION_RE.search(text)
    if section:
        return section.group(2).strip()[:MAX_SUMMARY_LENGTH]

    seniority = 'Experienced' if experience else 'Skilled'
    top_skills = ', '.join(skills[:3])
    return (
        f"{seniority} professional with expertise in {top_skills}. "
        "Proven track record of delivering high-quality results and driving innovation."
    )


# ============================================================
# Assembly
# ============================================================
def extract_profile(text: str) -> Profile:
    """Extract a Profile from decoded resume text. Never raises."""
    lines = to_lines(text)
    blocks = to_blocks(text)

    experience = extract_experience(blocks)
    education = extract_education(blocks)
    projects = extract_projects(blocks)
    skills = extract_skills(text)

    profile = Profile(
        name=extract_name(lines),
        title=experience[0].position if experience else DEFAULT_TITLE,
        summary=extract_summary(text, experience, skills),
        email=extract_email(text),
        phone=extract_phone(text),
        linkedin=extract_linkedin(text),
        github=extract_github(text),
        skills=tuple(skills),
        experience=tuple(experience),
        education=tuple(education),
        projects=tuple(projects) if projects else None,
    )

    logger.debug("Profile extracted", extra={
        "experience_count": len(profile.experience),
        "education_count": len(profile.education),
        "project_count": len(projects),
        "skills_count": len(profile.skills),
    })
    return profile
