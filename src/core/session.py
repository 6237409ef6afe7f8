# src/core/session.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Tuple, Union

from core.errors import FetchError, NoResultsError
from core.facets import derive_default_ranges, filter_and_sort
from core.models import ConstraintSet, FacetRanges, Offer, SearchParams, SortKey

logger = logging.getLogger(__name__)

# View states the result page renders differently.
IDLE = "idle"
LOADING = "loading"
READY = "ready"
EMPTY = "empty"  # search succeeded with no offers
NO_MATCHES = "no_matches"  # offers exist but the constraints hide all of them
FAILED = "failed"


@dataclass(frozen=True)
class ResultView:
    """
    Everything one search result page shows: the batch, the ranges derived
    from it and the constraints seeded from those ranges. A new search
    replaces the whole view, never parts of it.
    """

    params: Optional[SearchParams] = None
    batch: Tuple[Offer, ...] = ()
    ranges: FacetRanges = field(default_factory=FacetRanges)
    constraints: ConstraintSet = field(default_factory=ConstraintSet)
    loading: bool = False
    error: Optional[FetchError] = None

    def status(self, visible: Optional[Sequence[Offer]] = None) -> str:
        if self.loading:
            return LOADING
        if self.error is not None:
            return FAILED
        if self.params is None:
            return IDLE
        if not self.batch:
            return EMPTY
        if visible is not None and not visible:
            return NO_MATCHES
        return READY


class SearchSession:
    """
    Owns the current search. Each `begin` hands out a ticket; a delivery or
    failure carrying an older ticket belongs to a superseded search and is
    dropped.
    """

    def __init__(self):
        self._ticket = 0
        self.view = ResultView()

    @property
    def current_ticket(self) -> int:
        return self._ticket

    def begin(self, params: SearchParams) -> int:
        self._ticket += 1
        self.view = ResultView(params=params, loading=True)
        logger.info(
            "Search %d started: %s -> %s on %s",
            self._ticket,
            params.origin,
            params.destination,
            params.departure_date.isoformat(),
        )
        return self._ticket

    def _is_stale(self, ticket: int) -> bool:
        if ticket != self._ticket:
            logger.info("Discarding result of superseded search %d (current %d)", ticket, self._ticket)
            return True
        return False

    def deliver(self, ticket: int, offers: Sequence[Offer]) -> bool:
        if self._is_stale(ticket):
            return False

        batch = tuple(offers)
        ranges = derive_default_ranges(batch)
        self.view = ResultView(
            params=self.view.params,
            batch=batch,
            ranges=ranges,
            constraints=ranges.seed_constraints(),
        )
        logger.info("Search %d delivered %d offers", ticket, len(batch))
        return True

    def fail(self, ticket: int, error: FetchError) -> bool:
        if isinstance(error, NoResultsError):
            return self.deliver(ticket, [])
        if self._is_stale(ticket):
            return False

        self.view = ResultView(params=self.view.params, error=error)
        logger.warning("Search %d failed (%s): %s", ticket, error.kind, error.message)
        return True

    def run(self, provider, params: SearchParams) -> ResultView:
        ticket = self.begin(params)
        try:
            offers = provider.search(params)
        except FetchError as e:
            self.fail(ticket, e)
        else:
            self.deliver(ticket, offers)
        return self.view

    def replace_constraints(self, constraints: ConstraintSet) -> None:
        """Swap in caller-built constraints (e.g. restored from a shared link)."""
        self.view = replace(self.view, constraints=constraints)

    def visible(self, sort_key: Union[SortKey, str] = SortKey.PRICE) -> List[Offer]:
        view = self.view
        return filter_and_sort(view.batch, view.constraints, sort_key)
