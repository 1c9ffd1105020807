from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response, status

from practice_api.api.deps import get_book_service
from practice_api.api.schemas import DocumentResponse, ListResponse
from practice_api.domain.query import parse_query_params
from practice_api.services.document_service import DocumentService

router = APIRouter(prefix="/books", tags=["books"])


@router.get("", response_model=ListResponse)
def list_books(request: Request, service: DocumentService = Depends(get_book_service)) -> ListResponse:
    books = service.list_documents(parse_query_params(request.query_params.multi_items()))
    return ListResponse(requested_at=request.state.requested_at, results=len(books), data={"books": books})


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
def create_book(
    body: dict[str, Any] = Body(...),
    service: DocumentService = Depends(get_book_service),
) -> DocumentResponse:
    return DocumentResponse(data={"book": service.create_document(body)})


@router.get("/{book_id}", response_model=DocumentResponse)
def get_book(book_id: str, service: DocumentService = Depends(get_book_service)) -> DocumentResponse:
    return DocumentResponse(data={"book": service.get_document(book_id)})


@router.patch("/{book_id}", response_model=DocumentResponse)
def update_book(
    book_id: str,
    body: dict[str, Any] = Body(...),
    service: DocumentService = Depends(get_book_service),
) -> DocumentResponse:
    return DocumentResponse(data={"book": service.update_document(book_id, body)})


@router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_book(book_id: str, service: DocumentService = Depends(get_book_service)) -> Response:
    service.delete_document(book_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
