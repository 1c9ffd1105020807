from __future__ import annotations

import random
from typing import Any

from practice_api.domain.query import QuerySpec
from practice_api.infra.repositories.document_repository import DocumentRepository
from practice_api.services.document_service import DocumentService

DEFAULT_TECH_WORDS = ("Docker", "Kubernetes", "Javascript", "Angular", "C", "C++")


class GuessWordService(DocumentService):
    def __init__(self, repository: DocumentRepository, rng: random.Random | None = None) -> None:
        super().__init__(repository)
        self._rng = rng or random.Random()

    def random_word(self) -> dict[str, Any]:
        pairs = self._repository.find(QuerySpec())
        if pairs:
            pair = self._rng.choice(pairs)
            question, word = pair["question"], pair["answer"]
        else:
            question, word = None, self._rng.choice(DEFAULT_TECH_WORDS)
        return {"question": question, "guess_word": word, "length": len(word)}
