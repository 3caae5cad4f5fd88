"""Sample job pool for demos and for running without an exported snapshot."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jobmatch.log import get_logger
from jobmatch.models import JobPosting, WorkEnvironment, compute_job_hash
from jobmatch.sources.base import JobPoolSource

log = get_logger(__name__)

# (title, company, city, country, work environment, categories, days old, visa friendly)
_SAMPLES: list[tuple[str, str, str, str, WorkEnvironment, tuple[str, ...], int, bool]] = [
    ("Marketing Graduate Programme", "Brightwave Media", "Dublin", "Ireland",
     WorkEnvironment.HYBRID, ("marketing-growth", "early-career"), 1, True),
    ("Growth Marketing Intern", "Fintrail", "Dublin", "Ireland",
     WorkEnvironment.ON_SITE, ("marketing-growth",), 4, False),
    ("Junior Data Analyst", "Quantly", "London", "United Kingdom",
     WorkEnvironment.HYBRID, ("data-analytics", "early-career"), 2, True),
    ("Business Analyst Graduate", "Northbridge Consulting", "London", "United Kingdom",
     WorkEnvironment.ON_SITE, ("strategy-business-design",), 9, True),
    ("Product Management Intern", "Kiosko", "Berlin", "Germany",
     WorkEnvironment.REMOTE, ("product-innovation",), 3, False),
    ("Werkstudent Sales", "Vertriebsgruppe", "Munich", "Germany",
     WorkEnvironment.ON_SITE, ("sales-client-success", "early-career"), 6, False),
    ("Junior Financial Analyst", "Donau Capital", "Wien", "Austria",
     WorkEnvironment.HYBRID, ("finance-investment", "early-career"), 5, True),
    ("Supply Chain Graduate", "Logiq", "Amsterdam", "Netherlands",
     WorkEnvironment.ON_SITE, ("operations-supply-chain",), 12, True),
    ("Sustainability Analyst Intern", "Greenmark", "Paris", "France",
     WorkEnvironment.HYBRID, ("sustainability-esg",), 8, False),
    ("Tech Transformation Graduate", "Cloudway", "Madrid", "Spain",
     WorkEnvironment.REMOTE, ("tech-transformation", "early-career"), 20, True),
]


class MockSource(JobPoolSource):
    def __init__(self, now: datetime | None = None) -> None:
        self.now = now

    def fetch(self) -> list[JobPosting]:
        now = self.now or datetime.now(timezone.utc)
        log.info("MockSource generating %d sample jobs", len(_SAMPLES))
        jobs: list[JobPosting] = []
        for i, (title, company, city, country, env, cats, age, visa) in enumerate(_SAMPLES, 1):
            location = f"{city}, {country}"
            url = f"https://example.com/jobs/{i}"
            lowered = title.lower()
            jobs.append(
                JobPosting(
                    job_hash=compute_job_hash(title, company, location, url),
                    title=title,
                    company=company,
                    location=location,
                    city=city,
                    country=country,
                    url=url,
                    description=f"{title} at {company}. Entry-level role in {city}.",
                    work_environment=env,
                    categories=frozenset(cats),
                    is_internship="intern" in lowered or "werkstudent" in lowered,
                    is_graduate="graduate" in lowered,
                    is_early_career="junior" in lowered or "early-career" in cats,
                    visa_friendly=visa,
                    posted_at=now - timedelta(days=age),
                    source="mock",
                )
            )
        return jobs
