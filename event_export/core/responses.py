"""Decoding of free-form module answers into typed response variants.

Guests answer timeline modules through the mobile app, which stores every
answer in ``guest_module_answers.answer_text``.  Depending on the module the
text is either plain (questions, multiple choice) or a JSON document
(feedback ratings, photo/video uploads).  Older rows were written before the
JSON shapes settled, so the decoder is total: anything it cannot match falls
back to :class:`RawResponse` instead of raising.
"""
from __future__ import annotations

import json
from typing import Any, Literal, Union

from pydantic import BaseModel, ValidationError, field_validator

RATING_TYPES = {"feedback", "rating", "survey"}
CHOICE_TYPES = {"multiple_choice", "choice", "poll"}
MEDIA_TYPES = {"photo_video", "photo", "video", "media"}
TEXT_TYPES = {"question", "text", "open_question"}


class RatingResponse(BaseModel):
    kind: Literal["rating"] = "rating"
    rating: int | float
    comment: str = ""

    @field_validator("comment", mode="before")
    @classmethod
    def _coerce_comment(cls, value: Any) -> str:
        return "" if value is None else str(value)


class TextResponse(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class ChoiceResponse(BaseModel):
    kind: Literal["choice"] = "choice"
    option: str


class MediaResponse(BaseModel):
    kind: Literal["media"] = "media"
    url: str
    media_type: str = ""


class RawResponse(BaseModel):
    kind: Literal["raw"] = "raw"
    raw: str = ""


ModuleResponse = Union[RatingResponse, TextResponse, ChoiceResponse, MediaResponse, RawResponse]


def _load_json(answer: str) -> Any:
    stripped = answer.strip()
    if not stripped or stripped[0] not in "{[":
        return None
    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        return None


def _as_text(answer: Any) -> str:
    if answer is None:
        return ""
    if isinstance(answer, str):
        return answer
    try:
        return json.dumps(answer, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(answer)


def _decode_rating(payload: Any) -> RatingResponse | None:
    if not isinstance(payload, dict) or isinstance(payload.get("rating"), bool):
        return None
    try:
        return RatingResponse.model_validate(payload)
    except ValidationError:
        return None


def _decode_media(payload: Any) -> MediaResponse | None:
    if not isinstance(payload, dict):
        return None
    url = payload.get("url") or payload.get("publicUrl") or payload.get("file_url")
    if not isinstance(url, str) or not url:
        return None
    media_type = payload.get("type") or payload.get("mime_type") or payload.get("media_type") or ""
    return MediaResponse(url=url, media_type=str(media_type))


def _decode_choice(answer: str, payload: Any) -> ChoiceResponse | None:
    if isinstance(payload, dict):
        option = payload.get("option") or payload.get("selected_option") or payload.get("value")
        return ChoiceResponse(option=str(option)) if option not in (None, "") else None
    if payload is None and answer.strip():
        return ChoiceResponse(option=answer.strip())
    return None


def decode_response(module_type: str | None, answer: Any) -> ModuleResponse:
    """Decode ``answer`` for a module of ``module_type``; never raises."""

    text = _as_text(answer)
    payload = answer if isinstance(answer, (dict, list)) else _load_json(text)
    kind = (module_type or "").strip().lower()

    decoded: ModuleResponse | None
    if kind in RATING_TYPES:
        decoded = _decode_rating(payload)
    elif kind in MEDIA_TYPES:
        decoded = _decode_media(payload)
    elif kind in CHOICE_TYPES:
        decoded = _decode_choice(text, payload)
    elif kind in TEXT_TYPES:
        decoded = TextResponse(text=text)
    else:
        # unknown module type: let the payload shape decide
        decoded = None
        if isinstance(payload, dict):
            if "rating" in payload:
                decoded = _decode_rating(payload)
            elif "url" in payload or "publicUrl" in payload:
                decoded = _decode_media(payload)
            elif "option" in payload or "selected_option" in payload:
                decoded = _decode_choice(text, payload)
        elif payload is None and text.strip():
            decoded = TextResponse(text=text)

    return decoded if decoded is not None else RawResponse(raw=text)


def flatten_response(response: ModuleResponse) -> dict[str, Any]:
    """Spread a decoded response over the typed-response CSV fields."""

    flat: dict[str, Any] = {"response_kind": response.kind}
    if isinstance(response, RatingResponse):
        flat["rating"] = response.rating
        flat["comment"] = response.comment
    elif isinstance(response, TextResponse):
        flat["response_text"] = response.text
    elif isinstance(response, ChoiceResponse):
        flat["selected_option"] = response.option
    elif isinstance(response, MediaResponse):
        flat["media_url"] = response.url
        flat["media_type"] = response.media_type
    else:
        flat["response_text"] = response.raw
    return flat
