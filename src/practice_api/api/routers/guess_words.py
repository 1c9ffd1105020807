from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response, status

from practice_api.api.deps import get_guess_word_service
from practice_api.api.schemas import DocumentResponse, ListResponse
from practice_api.domain.query import parse_query_params
from practice_api.services.guess_service import GuessWordService

router = APIRouter(tags=["guess words"])


@router.get("/guess", response_model=DocumentResponse)
def random_guess_word(service: GuessWordService = Depends(get_guess_word_service)) -> DocumentResponse:
    return DocumentResponse(data=service.random_word())


@router.get("/guess-words", response_model=ListResponse)
def list_guess_words(
    request: Request,
    service: GuessWordService = Depends(get_guess_word_service),
) -> ListResponse:
    words = service.list_documents(parse_query_params(request.query_params.multi_items()))
    return ListResponse(requested_at=request.state.requested_at, results=len(words), data={"guess_words": words})


@router.post("/guess-words", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
def create_guess_word(
    body: dict[str, Any] = Body(...),
    service: GuessWordService = Depends(get_guess_word_service),
) -> DocumentResponse:
    return DocumentResponse(data={"guess_word": service.create_document(body)})


@router.get("/guess-words/{word_id}", response_model=DocumentResponse)
def get_guess_word(word_id: str, service: GuessWordService = Depends(get_guess_word_service)) -> DocumentResponse:
    return DocumentResponse(data={"guess_word": service.get_document(word_id)})


@router.patch("/guess-words/{word_id}", response_model=DocumentResponse)
def update_guess_word(
    word_id: str,
    body: dict[str, Any] = Body(...),
    service: GuessWordService = Depends(get_guess_word_service),
) -> DocumentResponse:
    return DocumentResponse(data={"guess_word": service.update_document(word_id, body)})


@router.delete("/guess-words/{word_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_guess_word(word_id: str, service: GuessWordService = Depends(get_guess_word_service)) -> Response:
    service.delete_document(word_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
