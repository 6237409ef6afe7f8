# src/providers/base.py

from abc import ABC, abstractmethod
from typing import List
from core.models import SearchParams, Offer


class FlightSearchProvider(ABC):
    """
    Produces one batch of offers per search.

    Failures are raised as core.errors.FetchError subclasses
    (NetworkError, UpstreamRejectedError, NoResultsError).
    """

    @abstractmethod
    def search(self, params: SearchParams) -> List[Offer]:
        ...
