from __future__ import annotations

import logging

from openai import AsyncOpenAI

from app.config import settings
from app.services.exceptions import SummarizationFailed

logger = logging.getLogger(__name__)

SUMMARY_UNAVAILABLE = "Summary could not be generated for this session."

SUMMARY_SYSTEM_PROMPT = """You are a clinical documentation assistant. Given a speaker-labeled therapy session transcript, write a concise summary of 3-5 sentences.
Cover: the main topics discussed, the concerns raised by the client, and the therapeutic interventions or techniques used by the therapist.
Use a professional, neutral tone. Return ONLY the summary text, no JSON, no markdown formatting."""


class SummarizationService:
    def __init__(self, client: AsyncOpenAI, model: str | None = None) -> None:
        self.client = client
        self.model = model or settings.openai_model

    async def summarize(self, labeled_text: str) -> str:
        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
                    {"role": "user", "content": f"Summarize this therapy session:\n\n{labeled_text}"},
                ],
                temperature=0.2,
                max_completion_tokens=500,
            )
            summary = (resp.choices[0].message.content or "").strip()
        except Exception as exc:
            logger.exception("Summarization request failed (model=%s)", self.model)
            raise SummarizationFailed() from exc

        if not summary:
            logger.warning("Summarization returned empty content, using placeholder")
            return SUMMARY_UNAVAILABLE
        return summary
