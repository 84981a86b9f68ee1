import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .constants import ROLE_KEYWORDS, MAX_SUGGESTED_ROLES

logger = logging.getLogger(__name__)


@dataclass
class ResumeProfile:
    """Read-only view over a resume's semi-structured `parsedData` document."""
    skills: List[str] = field(default_factory=list)
    experience: list = field(default_factory=list)
    education: list = field(default_factory=list)
    summary: str = ''

    @classmethod
    def from_parsed_data(cls, parsed_data) -> Optional['ResumeProfile']:
        if parsed_data is None:
            return None
        if isinstance(parsed_data, str):
            try:
                parsed_data = json.loads(parsed_data)
            except json.JSONDecodeError:
                logger.warning("Could not decode resume parsedData")
                return None
        if not isinstance(parsed_data, dict):
            return None

        skills = parsed_data.get('skills') or []
        if isinstance(skills, str):
            skills = [s.strip() for s in skills.split(',')]
        elif not isinstance(skills, list):
            skills = []
        skills = [str(s).strip() for s in skills if str(s).strip()]

        experience = parsed_data.get('experience') or []
        if isinstance(experience, str):
            experience = [experience]
        elif not isinstance(experience, list):
            experience = []

        education = parsed_data.get('education') or []
        if not isinstance(education, list):
            education = []

        summary = parsed_data.get('summary') or ''
        if not isinstance(summary, str):
            summary = ''

        return cls(skills=skills, experience=experience, education=education, summary=summary.strip())

    @property
    def primary_skill(self) -> Optional[str]:
        return self.skills[0] if self.skills else None

    @property
    def is_empty(self) -> bool:
        return not (self.skills or self.experience or self.summary)

    def experience_text(self) -> str:
        lines = []
        for item in self.experience:
            if isinstance(item, dict):
                parts = [str(item.get(k)) for k in ('title', 'company') if item.get(k)]
                if item.get('years'):
                    parts.append(f"{item['years']} years")
                line = ', '.join(parts)
                if item.get('description'):
                    line = f"{line}: {item['description']}" if line else str(item['description'])
                if line:
                    lines.append(line)
            elif item:
                lines.append(str(item))
        return '; '.join(lines)

    def as_text(self) -> str:
        """Flatten the profile into plain text for similarity scoring."""
        chunks = [' '.join(self.skills), self.experience_text(), self.summary]
        return ' '.join(c for c in chunks if c)


def suggest_roles(profile: Optional[ResumeProfile]) -> Optional[List[str]]:
    """Rank known roles by keyword overlap with the resume's skills and job titles."""
    if profile is None or profile.is_empty:
        return None

    terms = {s.lower() for s in profile.skills}
    for item in profile.experience:
        if isinstance(item, dict) and item.get('title'):
            terms.add(str(item['title']).lower())
    haystack = ' '.join(sorted(terms)) + ' ' + profile.summary.lower()

    scores = {}
    for role, keywords in ROLE_KEYWORDS.items():
        hits = 0
        for keyword in keywords:
            # short keywords ("r", "go", "ui") only count as exact skill matches
            if keyword in terms or (len(keyword) > 3 and keyword in haystack):
                hits += 1
        if hits:
            scores[role] = hits

    if not scores:
        return None
    ranked = sorted(scores, key=lambda role: (-scores[role], role))
    return ranked[:MAX_SUGGESTED_ROLES]
