"""
HTTP client for the game endpoint.

Every failure surfaces as a GameClientError subclass so callers can tell a
retryable network problem from a request that will never succeed.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from normalz.core.logging import safe_truncate

logger = logging.getLogger("normalz")


class GameClientError(Exception):
    pass


class InvalidRequestError(GameClientError):
    """Bad URL or unencodable body. Retrying will not help."""


class NetworkFailureError(GameClientError):
    """Transport failure or no connectivity. Transient."""


class DecodeFailureError(GameClientError):
    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class RemoteError(GameClientError):
    def __init__(self, code: str, message: str, status: int):
        super().__init__(f"{status} {code}: {message}")
        self.code = code
        self.message = message
        self.status = status

    @property
    def retryable(self) -> bool:
        return self.status >= 500


class QuestionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_id: str = Field(..., alias="questionId")
    options: List[str]
    answer_counts: Dict[str, int] = Field(default_factory=dict, alias="answerCounts")
    total_answers: int = Field(0, alias="totalAnswers")
    prompt: Optional[str] = None


class SubmissionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    question_id: str = Field(..., alias="questionId")
    selected_option: str = Field(..., alias="selectedOption")
    outcome: str
    winning_options: List[str] = Field(default_factory=list, alias="winningOptions")
    new_answer_counts: Dict[str, int] = Field(..., alias="newAnswerCounts")
    new_total: int = Field(..., alias="newTotal")
    replayed: bool = False
    streak: Optional[dict] = None


class GameClient:
    def __init__(
        self,
        endpoint_url: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
        connectivity: Optional[Callable[[], bool]] = None,
    ):
        self.endpoint_url = endpoint_url
        self._connectivity = connectivity
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GameClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def fetch_question(self, excluding: Optional[str] = None) -> QuestionPayload:
        params = {"exclude": excluding} if excluding else None
        data = self._request("GET", params=params)
        return self._decode(QuestionPayload, data)

    def submit_answer(
        self,
        question_id: str,
        option: str,
        *,
        idempotency_key: Optional[str] = None,
        player_id: Optional[str] = None,
    ) -> SubmissionPayload:
        body = {"questionId": question_id, "selectedOption": option}
        if idempotency_key:
            body["idempotencyKey"] = idempotency_key
        if player_id:
            body["playerId"] = player_id
        data = self._request("POST", json=body)
        return self._decode(SubmissionPayload, data)

    # Internal helpers -------------------------------------------------
    def _request(self, method: str, **kwargs) -> httpx.Response:
        if self._connectivity is not None and not self._connectivity():
            raise NetworkFailureError("No internet connection")
        try:
            response = self._client.request(method, self.endpoint_url, **kwargs)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            raise InvalidRequestError(f"Invalid request to {self.endpoint_url}: {exc}") from exc
        except httpx.TransportError as exc:
            logger.warning(f"[game_client] {method} {self.endpoint_url} failed: {exc}")
            raise NetworkFailureError(str(exc)) from exc

        if response.status_code != 200:
            raise self._remote_error(response)
        return response

    @staticmethod
    def _remote_error(response: httpx.Response) -> RemoteError:
        code, message = "http_error", response.text
        try:
            error = response.json().get("error") or {}
            code = error.get("code", code)
            message = error.get("message", message)
        except (ValueError, AttributeError):
            pass
        return RemoteError(code, message, response.status_code)

    @staticmethod
    def _decode(model, response: httpx.Response):
        try:
            return model.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            raw = safe_truncate(response.text)
            logger.error(f"[game_client] unexpected response shape: {raw}")
            raise DecodeFailureError(f"Unexpected response from {response.request.url}", raw=raw) from exc
