from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any

from practice_api.domain.query import QuerySpec
from practice_api.infra.repositories.document_repository import Document
from practice_api.services.document_service import DocumentService

TOP_RATED_THRESHOLD = 4.5
MONTHS_IN_PLAN = 12


class TourService(DocumentService):
    def _decorate(self, document: Document) -> Document:
        duration = document.get("duration")
        if isinstance(duration, (int, float)):
            document["duration_weeks"] = duration / 7
        return document

    def stats(self) -> list[dict[str, Any]]:
        """Aggregate well-rated tours per difficulty, cheapest group first."""
        tours = self._repository.find(QuerySpec(filters={"ratings_average": {"gte": TOP_RATED_THRESHOLD}}))
        groups: dict[str, list[Document]] = defaultdict(list)
        for tour in tours:
            groups[str(tour["difficulty"]).upper()].append(tour)

        stats = []
        for difficulty, members in groups.items():
            prices = [tour["price"] for tour in members]
            stats.append(
                {
                    "difficulty": difficulty,
                    "num_tours": len(members),
                    "num_ratings": sum(tour["ratings_quantity"] for tour in members),
                    "avg_rating": sum(tour["ratings_average"] for tour in members) / len(members),
                    "avg_price": sum(prices) / len(prices),
                    "min_price": min(prices),
                    "max_price": max(prices),
                }
            )
        return sorted(stats, key=lambda entry: entry["avg_price"])

    def monthly_plan(self, year: int) -> list[dict[str, Any]]:
        """Count tour starts per month of ``year``, busiest month first."""
        months: dict[int, list[str]] = defaultdict(list)
        for tour in self._repository.find(QuerySpec()):
            for start in tour.get("start_dates", []):
                if isinstance(start, datetime) and start.year == year:
                    months[start.month].append(tour["name"])

        plan = [
            {"month": month, "num_tour_starts": len(names), "tours": names}
            for month, names in months.items()
        ]
        plan.sort(key=lambda entry: (-entry["num_tour_starts"], entry["month"]))
        return plan[:MONTHS_IN_PLAN]
