from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response, status

from practice_api.api.deps import get_tour_service
from practice_api.api.schemas import DocumentResponse, ListResponse
from practice_api.domain.query import parse_query_params
from practice_api.services.tour_service import TourService

router = APIRouter(prefix="/tours", tags=["tours"])


@router.get("", response_model=ListResponse)
def list_tours(request: Request, service: TourService = Depends(get_tour_service)) -> ListResponse:
    tours = service.list_documents(parse_query_params(request.query_params.multi_items()))
    return ListResponse(requested_at=request.state.requested_at, results=len(tours), data={"tours": tours})


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
def create_tour(
    body: dict[str, Any] = Body(...),
    service: TourService = Depends(get_tour_service),
) -> DocumentResponse:
    return DocumentResponse(data={"tour": service.create_document(body)})


@router.get("/tour-stats", response_model=DocumentResponse)
def tour_stats(service: TourService = Depends(get_tour_service)) -> DocumentResponse:
    return DocumentResponse(data={"stats": service.stats()})


@router.get("/monthly-plan/{year}", response_model=DocumentResponse)
def monthly_plan(year: int, service: TourService = Depends(get_tour_service)) -> DocumentResponse:
    return DocumentResponse(data={"plan": service.monthly_plan(year)})


@router.get("/{tour_id}", response_model=DocumentResponse)
def get_tour(tour_id: str, service: TourService = Depends(get_tour_service)) -> DocumentResponse:
    return DocumentResponse(data={"tour": service.get_document(tour_id)})


@router.patch("/{tour_id}", response_model=DocumentResponse)
def update_tour(
    tour_id: str,
    body: dict[str, Any] = Body(...),
    service: TourService = Depends(get_tour_service),
) -> DocumentResponse:
    return DocumentResponse(data={"tour": service.update_document(tour_id, body)})


@router.delete("/{tour_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tour(tour_id: str, service: TourService = Depends(get_tour_service)) -> Response:
    service.delete_document(tour_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
