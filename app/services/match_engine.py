"""
Match Engine

Scores open pool requests and open groups against a search query and
returns them ranked.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from app.config import settings
from app.exceptions import ValidationError
from app.models.group import Group
from app.models.location import Location
from app.models.match import MatchQuery, MatchResult
from app.models.pool_request import PoolRequest, PreferredGender
from app.repositories.group_repository import GroupRepository
from app.repositories.pool_request_repository import PoolRequestRepository
from app.services.user_service import UserService
from app.utils.geo import distance_meters
from app.utils.timezone_utils import minutes_between

logger = logging.getLogger(__name__)


class MatchEngine:
    """
    Matching engine for pool requests and groups.

    Scoring algorithm (three independent bands, each clamped at 0):
    1. Distance - 40 minus combined pickup+drop distance in km
    2. Time - 40 minus half the departure difference in minutes
    3. Gender - 20 for a compatible request, or 20 x share of group
       members matching the requested gender

    The total is capped at 100. Ranking is a stable sort on score, so ties
    keep the order persistence returned them in (creation order).
    """

    def __init__(
        self,
        pool_repository: Optional[PoolRequestRepository] = None,
        group_repository: Optional[GroupRepository] = None,
        user_service: Optional[UserService] = None,
        time_window_minutes: Optional[int] = None,
        search_radius_m: Optional[float] = None,
        pool_min_score: Optional[float] = None,
        group_min_score: Optional[float] = None,
    ):
        self.pool_repository = pool_repository or PoolRequestRepository()
        self.group_repository = group_repository or GroupRepository()
        self.user_service = user_service or UserService()

        # Scoring weights
        self.WEIGHT_DISTANCE = 40.0
        self.WEIGHT_TIME = 40.0
        self.WEIGHT_GENDER = 20.0
        self.MAX_SCORE = 100.0

        # Thresholds
        self.time_window_minutes = (
            time_window_minutes if time_window_minutes is not None
            else settings.match_time_window_minutes
        )
        self.search_radius_m = (
            search_radius_m if search_radius_m is not None
            else settings.match_search_radius_meters
        )
        self.pool_min_score = (
            pool_min_score if pool_min_score is not None else settings.pool_match_min_score
        )
        self.group_min_score = (
            group_min_score if group_min_score is not None else settings.group_match_min_score
        )

    # =========================================================================
    # Query Validation
    # =========================================================================

    @staticmethod
    def build_query(
        pickup,
        drop,
        date_time: Optional[datetime],
        preferred_gender: Optional[str] = None,
    ) -> MatchQuery:
        """
        Build a MatchQuery from loosely typed input.

        Raises:
            ValidationError: if pickup, drop or date_time is missing or the
                coordinates are malformed.
        """
        if pickup is None or drop is None or date_time is None:
            raise ValidationError("pickupLocation, dropLocation and dateTime are required")
        try:
            return MatchQuery(
                pickup=pickup,
                drop=drop,
                date_time=date_time,
                preferred_gender=preferred_gender,
            )
        except PydanticValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ValidationError(f"Invalid match query: {details}") from e

    # =========================================================================
    # Score Components
    # =========================================================================

    def distance_score(self, distance_pickup: float, distance_drop: float) -> float:
        """40 minus the combined distance in km, never below 0."""
        total_km = (distance_pickup + distance_drop) / 1000
        if not math.isfinite(total_km):
            return 0.0
        return max(0.0, self.WEIGHT_DISTANCE - total_km)

    def time_score(self, time_diff_minutes: float) -> float:
        """40 minus half the minute difference, never below 0."""
        if not math.isfinite(time_diff_minutes):
            return 0.0
        return max(0.0, self.WEIGHT_TIME - time_diff_minutes / 2)

    @staticmethod
    def is_gender_compatible(candidate_pref: Optional[str], query_pref: Optional[str]) -> bool:
        """A request is compatible if it accepts anyone or the requested gender."""
        wanted = query_pref or PreferredGender.ANY.value
        return candidate_pref in (None, PreferredGender.ANY.value, wanted)

    def group_gender_score(
        self, member_genders: Sequence[Optional[str]], preferred_gender: Optional[str]
    ) -> float:
        """
        Full weight without a specific preference, otherwise weight times the
        fraction of members whose gender equals it.
        """
        if not preferred_gender or preferred_gender == PreferredGender.ANY.value:
            return self.WEIGHT_GENDER
        if not member_genders:
            return 0.0
        matching = sum(1 for g in member_genders if g == preferred_gender)
        return self.WEIGHT_GENDER * matching / len(member_genders)

    def total_score(self, distance_pickup: float, distance_drop: float,
                    time_diff_minutes: float, gender_score: float) -> float:
        score = (
            self.distance_score(distance_pickup, distance_drop)
            + self.time_score(time_diff_minutes)
            + max(0.0, gender_score)
        )
        return min(self.MAX_SCORE, score)

    # =========================================================================
    # Ranking
    # =========================================================================

    def _result(self, query: MatchQuery, candidate, pickup: Location, drop: Location,
                date_time: datetime, gender_score: float) -> MatchResult:
        distance_pickup = distance_meters(query.pickup.coordinates, pickup.coordinates)
        distance_drop = distance_meters(query.drop.coordinates, drop.coordinates)
        time_diff = minutes_between(query.date_time, date_time)
        return MatchResult(
            candidate=candidate,
            score=self.total_score(distance_pickup, distance_drop, time_diff, gender_score),
            distance_pickup=distance_pickup,
            distance_drop=distance_drop,
            time_diff_minutes=time_diff,
        )

    @staticmethod
    def _rank(results: List[MatchResult], min_score: float) -> List[MatchResult]:
        kept = [r for r in results if r.score >= min_score]
        # sorted() is stable: equal scores stay in discovery order
        return sorted(kept, key=lambda r: r.score, reverse=True)

    def rank_pool_requests(self, query: MatchQuery,
                           candidates: Sequence[PoolRequest]) -> List[MatchResult]:
        """Score and rank pool requests. Gender-incompatible ones are dropped."""
        results = []
        for candidate in candidates:
            if not self.is_gender_compatible(candidate.preferred_gender, query.preferred_gender):
                continue
            results.append(
                self._result(query, candidate, candidate.pickup, candidate.drop,
                             candidate.date_time, self.WEIGHT_GENDER)
            )
        return self._rank(results, self.pool_min_score)

    def rank_groups(self, query: MatchQuery, candidates: Sequence[Group],
                    member_genders: Dict[str, Optional[str]]) -> List[MatchResult]:
        """Score and rank groups. Results below the group threshold are dropped."""
        results = []
        for group in candidates:
            genders = [member_genders.get(uid) for uid in group.member_ids]
            gender_score = self.group_gender_score(genders, query.preferred_gender)
            results.append(
                self._result(query, group, group.route.pickup, group.route.drop,
                             group.date_time, gender_score)
            )
        return self._rank(results, self.group_min_score)

    # =========================================================================
    # Matching
    # =========================================================================

    def _window(self, query: MatchQuery):
        delta = timedelta(minutes=self.time_window_minutes)
        return query.date_time - delta, query.date_time + delta

    async def match_pool_requests(self, requester_id: str,
                                  query: MatchQuery) -> List[MatchResult]:
        """Find open pool requests from other users that fit the query."""
        start, end = self._window(query)
        candidates = await self.pool_repository.find_candidates(
            exclude_user_id=requester_id,
            window_start=start,
            window_end=end,
            preferred_gender=query.preferred_gender,
            near=query.pickup.coordinates if self.search_radius_m else None,
            radius_m=self.search_radius_m,
        )
        results = self.rank_pool_requests(query, candidates)
        logger.info(
            f"Pool match for {requester_id}: {len(candidates)} candidates, "
            f"{len(results)} results"
        )
        return results

    async def match_groups(self, requester_id: str, query: MatchQuery) -> List[MatchResult]:
        """Find open groups with free seats that fit the query."""
        start, end = self._window(query)
        candidates = await self.group_repository.find_candidates(
            exclude_user_id=requester_id,
            window_start=start,
            window_end=end,
            near=query.pickup.coordinates if self.search_radius_m else None,
            radius_m=self.search_radius_m,
        )

        member_genders: Dict[str, Optional[str]] = {}
        needs_genders = (
            query.preferred_gender and query.preferred_gender != PreferredGender.ANY.value
        )
        if candidates and needs_genders:
            member_ids = [uid for g in candidates for uid in g.member_ids]
            member_genders = await self.user_service.get_genders(member_ids)

        results = self.rank_groups(query, candidates, member_genders)
        logger.info(
            f"Group match for {requester_id}: {len(candidates)} candidates, "
            f"{len(results)} results"
        )
        return results
