"""
Career path categories - maps signup form values to job classification tags.

Jobs carry `career:<category>` tags using the database category names below.
Users pick a form value ("tech") or a form label ("Tech & Engineering");
both resolve to the same set of database categories.
"""
from typing import Set

from core.utils import slugify

FORM_TO_DATABASE_MAPPING = {
    'strategy': 'strategy-business-design',
    'finance': 'finance-investment',
    'sales': 'sales-client-success',
    'marketing': 'marketing-growth',
    'data': 'data-analytics',
    'operations': 'operations-supply-chain',
    'product': 'product-innovation',
    'tech': 'tech-transformation',
    'sustainability': 'sustainability-esg',
    'unsure': 'all-categories',  # "Not Sure Yet"
}

FORM_LABEL_TO_DATABASE_MAPPING = {
    'Strategy & Business Design': 'strategy-business-design',
    'Finance & Investment': 'finance-investment',
    'Sales & Client Success': 'sales-client-success',
    'Marketing & Growth': 'marketing-growth',
    'Data & Analytics': 'data-analytics',
    'Operations & Supply Chain': 'operations-supply-chain',
    'Product & Innovation': 'product-innovation',
    'Tech & Engineering': 'tech-transformation',
    'Tech & Transformation': 'tech-transformation',
    'Sustainability & ESG': 'sustainability-esg',
    'Not Sure Yet / General': 'all-categories',
}

WORK_TYPE_CATEGORIES = [
    'strategy-business-design',
    'data-analytics',
    'marketing-growth',
    'tech-transformation',
    'operations-supply-chain',
    'finance-investment',
    'sales-client-success',
    'product-innovation',
    'sustainability-esg',
    'retail-luxury',
    'technology',
]

ALL_CATEGORIES = 'all-categories'


def map_career_path(career_path: str) -> str:
    """Resolve a form value or label to its database category (unknown values pass through slugified)."""
    if not career_path:
        return ""
    value = career_path.strip()
    if value in FORM_LABEL_TO_DATABASE_MAPPING:
        return FORM_LABEL_TO_DATABASE_MAPPING[value]
    key = value.lower()
    if key in FORM_TO_DATABASE_MAPPING:
        return FORM_TO_DATABASE_MAPPING[key]
    return slugify(value)


def categories_for_career_path(career_path: str) -> Set[str]:
    """
    All database categories a user's career path accepts.

    Besides the mapped category the raw form value is accepted too, so a job
    tagged `career:tech` matches a user who picked "tech".
    """
    mapped = map_career_path(career_path)
    if not mapped:
        return set()
    if mapped == ALL_CATEGORIES:
        return set(WORK_TYPE_CATEGORIES)
    accepted = {mapped}
    raw = slugify(career_path)
    if raw:
        accepted.add(raw)
    for form_value, category in FORM_TO_DATABASE_MAPPING.items():
        if category == mapped:
            accepted.add(form_value)
    return accepted


def normalize_career_path(career_path: str) -> str:
    """Stable key for grouping users by career path."""
    return map_career_path(career_path) or "exploring"
