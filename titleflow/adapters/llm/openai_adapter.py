"""OpenAI adapter — implements ScoringPort using the OpenAI chat API."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from openai import AsyncOpenAI

from titleflow.application.ports.scoring_port import ScoringPort, ScoringUnavailable
from titleflow.config import settings
from titleflow.domain.entities.suggestion import Suggestion

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are an expert legal case allocation system for a bank's title-search desk.
Your task is to select the BEST advocate (fulfiller) for one assignment.

ALLOCATION CRITERIA (in order of importance):
1. Location match (CRITICAL): the advocate MUST operate in the assignment's
   property state and ideally its district.
2. Product expertise: the advocate should specialise in the assignment's category.
3. Workload balance: prefer advocates with a lower active_load.
4. Hub alignment: prefer advocates whose home_hub_id equals the origin hub.
5. Tags: consider tags such as "Fast TAT" or "High Value Expert",
   especially for Urgent or High Value work.
Avoid advocates listed in previous_fulfiller_ids when an equal alternative exists.

Return ONLY a JSON object with exactly these fields:
{
  "fulfiller_id": "<id of one candidate, copied exactly>",
  "confidence": integer 0-10,
  "factors": ["short factor", "..."],
  "reason": "one or two sentences"
}"""

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def strip_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if the model added one."""
    return _FENCE_RE.sub("", (text or "").strip()).strip()


def parse_suggestion(raw_text: str, model: str | None = None) -> Suggestion:
    """Map the model's JSON answer to a Suggestion.

    The fulfiller id is not checked here; the caller validates it against
    the candidates it offered.

    Raises:
        json.JSONDecodeError: payload is not JSON.
        KeyError / ValueError: required field missing or malformed.
    """
    parsed = json.loads(strip_fences(raw_text))
    if not isinstance(parsed, dict):
        raise ValueError("Expected a JSON object")

    fulfiller_id = parsed["fulfiller_id"]
    if not isinstance(fulfiller_id, str) or not fulfiller_id.strip():
        raise ValueError("fulfiller_id must be a non-empty string")

    confidence = max(0, min(10, int(parsed.get("confidence", 0))))
    factors = parsed.get("factors") or []
    if not isinstance(factors, list):
        factors = [str(factors)]

    return Suggestion(
        fulfiller_id=fulfiller_id.strip(),
        confidence=confidence,
        factors=[str(f) for f in factors],
        reason=str(parsed.get("reason", "")),
        model=model,
    )


class OpenAIScoringAdapter(ScoringPort):
    """OpenAI implementation of ScoringPort."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_retries: int | None = None,
        timeout: float | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self._api_key = (settings.openai_api_key if api_key is None else api_key).strip()
        self._model = model or settings.openai_model
        self._max_retries = settings.scoring_max_retries if max_retries is None else max_retries
        timeout = settings.scoring_timeout_seconds if timeout is None else timeout

        if client is not None:
            self._client = client
        elif self._api_key:
            # Retries are handled below so that parse failures are retried too
            self._client = AsyncOpenAI(api_key=self._api_key, timeout=timeout, max_retries=0)
        else:
            self._client = None

    @property
    def model(self) -> str:
        return self._model

    async def suggest(self, context: dict[str, Any]) -> Suggestion:
        if self._client is None:
            logger.warning("OPENAI_API_KEY is not set; scored allocation is unavailable")
            raise ScoringUnavailable("OPENAI_API_KEY is not configured")

        user_content = self._build_user_prompt(context)
        attempts = self._max_retries + 1
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                response = await self._client.chat.completions.create(
                    model=self._model,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": user_content},
                    ],
                    temperature=0.1,
                    response_format={"type": "json_object"},
                )
                raw_text = response.choices[0].message.content or ""
                return parse_suggestion(raw_text, self._model)

            except json.JSONDecodeError as e:
                last_error = e
                logger.warning(
                    "Attempt %d/%d: failed to parse JSON from scoring response",
                    attempt, attempts,
                )
            except (KeyError, ValueError, TypeError) as e:
                last_error = e
                logger.warning(
                    "Attempt %d/%d: malformed scoring response: %s",
                    attempt, attempts, e,
                )
            except Exception as e:
                last_error = e
                logger.exception(
                    "Attempt %d/%d: unexpected error during scoring call",
                    attempt, attempts,
                )

        raise ScoringUnavailable(f"All {attempts} scoring attempts failed: {last_error}")

    @staticmethod
    def _build_user_prompt(context: dict[str, Any]) -> str:
        assignment = context.get("assignment", {})
        subject = assignment.get("subject_location", {})
        return (
            "ASSIGNMENT DETAILS:\n"
            f"- Reference: {assignment.get('reference')}\n"
            f"- Property state: {subject.get('state')}\n"
            f"- Property district: {subject.get('district')}\n"
            f"- Category: {assignment.get('category')}\n"
            f"- Priority: {assignment.get('priority')}\n"
            f"- Scope: {assignment.get('scope')}\n"
            f"- Origin hub: {assignment.get('origin_hub_id')}\n"
            f"- Previous fulfillers: {assignment.get('previous_fulfiller_ids') or []}\n\n"
            "AVAILABLE ADVOCATES:\n"
            f"{json.dumps(context.get('candidates', []), indent=2, ensure_ascii=False)}"
        )
