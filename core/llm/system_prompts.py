"""
Ranking prompts - system prompt plus builders for the user and job context.
"""
from typing import Sequence

from core.models import Job, UserPreferences

RANKING_SYSTEM_PROMPT = """
You are an AI career advisor specializing in European graduate and early-career job matching.
Your goal is to identify the most relevant opportunities for one candidate based on their
career preferences and visa constraints.

Hard rules
- Only reference positions from the supplied list, by their [index].
- Return ONLY a valid JSON array. No prose, no markdown.
- Never include poor fits (score 1-4).
""".strip()

VISA_STATUS_DESCRIPTIONS = {
    'eu-citizen': 'EU Citizen - No visa restrictions',
    'non-eu-visa-required': 'Non-EU - REQUIRES VISA SPONSORSHIP (CRITICAL)',
    'non-eu-no-visa': 'Non-EU with existing work authorization',
}

VISA_INDICATORS = (
    'visa sponsorship', 'work permit', 'international candidates',
    'relocation support', 'sponsorship available', 'work visa',
)


def normalize_visa_status(status: str) -> str:
    status = (status or "").lower()
    if 'non-eu-visa' in status:
        return 'non-eu-visa-required'
    if 'non-eu-no' in status:
        return 'non-eu-no-visa'
    return 'eu-citizen'


def normalize_work_environment(env: str) -> str:
    env = (env or "").lower()
    for option in ('remote', 'hybrid', 'office'):
        if option in env:
            return option
    return 'no-preference'


def detect_visa_friendly(job: Job) -> bool:
    text = f"{job.description} {job.title}".lower()
    return any(indicator in text for indicator in VISA_INDICATORS)


def detect_experience_level(job: Job) -> str:
    text = f"{job.description} {job.title}".lower()
    if 'senior' in text or 'lead' in text or 'principal' in text:
        return 'senior'
    if 'mid' in text or '3-5 years' in text or 'intermediate' in text:
        return 'mid'
    if 'junior' in text or '1-2 years' in text:
        return 'junior'
    return 'entry'


def build_user_context(user: UserPreferences) -> str:
    visa_status = normalize_visa_status(user.visa_status)
    work_preference = normalize_work_environment(user.work_environment)
    constraint = (
        'MUST HAVE VISA SPONSORSHIP - Non-negotiable requirement'
        if visa_status == 'non-eu-visa-required' else 'No visa restrictions'
    )
    return "\n".join([
        f"Name: {user.full_name or 'Student'}",
        f"Visa Status: {VISA_STATUS_DESCRIPTIONS[visa_status]}",
        f"Target Roles: {', '.join(sorted(user.roles)) or 'Open to opportunities'}",
        f"Target Cities: {', '.join(user.target_cities) or 'Flexible'}",
        f"Work Preference: {work_preference}",
        f"Languages: {', '.join(sorted(user.languages)) or 'Not specified'}",
        f"Company Types: {', '.join(sorted(user.company_types)) or 'Any'}",
        f"Experience Level: {user.experience_tier.value}",
        f"Career Focus: {user.career_path or 'exploring'}",
        "",
        "CONSTRAINTS:",
        f"- {constraint}",
        "- Experience: Entry-level to junior positions only",
        f"- Work Setup: {work_preference}",
    ])


def build_jobs_context(jobs: Sequence[Job], description_chars: int = 300) -> str:
    blocks = []
    for idx, job in enumerate(jobs, start=1):
        level = detect_experience_level(job)
        description = job.description or ""
        if len(description) > description_chars:
            description = description[:description_chars] + "..."
        blocks.append("\n".join([
            f"[{idx}] {job.title}",
            f"Company: {job.company}",
            f"Location: {job.location}",
            "VISA SPONSORSHIP AVAILABLE" if detect_visa_friendly(job) else "No visa sponsorship mentioned",
            "ENTRY LEVEL" if level == 'entry' else f"{level.upper()} level",
            f"Work: {job.work_environment or 'unclear'}",
            f"Languages: {job.language_requirements or 'Not specified'}",
            f"Categories: {', '.join(sorted(job.tags))}",
            f"Description: {description}",
            "---",
        ]))
    return "\n\n".join(blocks)


def build_ranking_prompt(
    jobs: Sequence[Job],
    user: UserPreferences,
    max_matches: int = 5,
    description_chars: int = 300
) -> str:
    return f"""USER PROFILE:
{build_user_context(user)}

AVAILABLE POSITIONS ({len(jobs)} total):
{build_jobs_context(jobs, description_chars)}

MATCHING CRITERIA:
1. VISA REQUIREMENTS: Critical - match visa status to job requirements
2. ROLE ALIGNMENT: Match selected roles to job titles and responsibilities
3. LOCATION FIT: Consider target cities and language requirements
4. EXPERIENCE LEVEL: Focus on entry-level and graduate-appropriate positions
5. WORK ENVIRONMENT: Match remote/hybrid/office preferences

TASK:
Analyze each position and select the TOP {max_matches} matches. Be selective.

For each selected match, respond with this exact JSON structure:
{{
 "job_index": [1-{len(jobs)}],
 "match_score": [1-10 integer],
 "match_reason": "[Concise explanation of why this role fits]",
 "match_tags": ["key", "matching", "factors"]
}}

SCORING GUIDELINES:
- 9-10: Perfect fit - meets all major criteria including visa/location needs
- 7-8: Strong match - aligns well with role preferences and constraints
- 5-6: Decent fit - some alignment but may have compromises
- 1-4: Poor fit - do not include these

Return ONLY a valid JSON array of matches."""
