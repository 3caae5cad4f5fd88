from abc import ABC, abstractmethod

from jobmatch.models import JobPosting


class JobPoolSource(ABC):
    @abstractmethod
    def fetch(self) -> list[JobPosting]:
        pass
