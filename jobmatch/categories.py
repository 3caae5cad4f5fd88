"""Map signup-form career paths onto the category tags jobs are stored with."""
from __future__ import annotations

from typing import Iterable

from jobmatch.models import Constraint, OneOf

ALL_CATEGORIES = "all-categories"

FORM_TO_CATEGORY: dict[str, str] = {
    "strategy": "strategy-business-design",
    "data": "data-analytics",
    "sales": "sales-client-success",
    "marketing": "marketing-growth",
    "finance": "finance-investment",
    "operations": "operations-supply-chain",
    "product": "product-innovation",
    "tech": "tech-transformation",
    "technology": "tech-transformation",
    "sustainability": "sustainability-esg",
    "retail-luxury": "retail-luxury",
    "entrepreneurship": "entrepreneurship",
    "unsure": ALL_CATEGORIES,
}

LABEL_TO_FORM: dict[str, str] = {
    "strategy & business design": "strategy",
    "data & analytics": "data",
    "sales & client success": "sales",
    "marketing & growth": "marketing",
    "finance & investment": "finance",
    "operations & supply chain": "operations",
    "product & innovation": "product",
    "tech & transformation": "tech",
    "tech & engineering": "tech",
    "sustainability & esg": "sustainability",
    "retail & luxury": "retail-luxury",
    "not sure yet / general": "unsure",
}


def categories_for(path: str) -> set[str]:
    """Every tag a job may carry for one career-path selection.

    Both the form value ("marketing") and its database category
    ("marketing-growth") are accepted, since older rows carry either.
    """
    key = path.strip().lower()
    key = LABEL_TO_FORM.get(key, key)
    tags = {key}
    mapped = FORM_TO_CATEGORY.get(key)
    if mapped:
        tags.add(mapped)
    return tags


def is_open_ended(career_path: Constraint) -> bool:
    """Unconstrained, or the user picked "Not sure yet"."""
    if not isinstance(career_path, OneOf):
        return True
    return any(ALL_CATEGORIES in categories_for(p) for p in career_path)


def career_matches(job_categories: Iterable[str], career_path: Constraint) -> bool:
    if is_open_ended(career_path):
        return True
    wanted: set[str] = set()
    for path in career_path:
        wanted |= categories_for(path)
    return any(c.lower() in wanted for c in job_categories)
