"""Speaker labeling: tags every transcript line with a Therapist/Client role.

If the model answers with empty content the raw transcript is returned
unchanged; provider errors raise LabelingFailed.
"""

from __future__ import annotations

import logging

from openai import AsyncOpenAI

from app.config import settings
from app.services.exceptions import LabelingFailed

logger = logging.getLogger(__name__)

THERAPIST_ROLE = "Therapist"
CLIENT_ROLE = "Client"

LABELING_SYSTEM_PROMPT = f"""You are a transcription assistant for therapy sessions. You receive the raw transcript of a conversation between exactly two people: a therapist and a client.

Rewrite the transcript so that every line starts with a speaker label in one of these two forms:
Speaker A ({THERAPIST_ROLE}): <utterance>
Speaker B ({CLIENT_ROLE}): <utterance>

Rules:
- Identify exactly two roles: {THERAPIST_ROLE} and {CLIENT_ROLE}. Never introduce a third speaker.
- Start a new line whenever the speaker changes.
- Preserve the original dialogue verbatim. Do not paraphrase, correct, summarize, add or remove words.
- Return ONLY the labeled transcript, no commentary or markdown."""


class SpeakerLabelingService:
    def __init__(self, client: AsyncOpenAI, model: str | None = None) -> None:
        self.client = client
        self.model = model or settings.openai_model

    async def label_speakers(self, raw_text: str) -> str:
        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": LABELING_SYSTEM_PROMPT},
                    {"role": "user", "content": raw_text},
                ],
                temperature=0.0,
            )
            labeled = (resp.choices[0].message.content or "").strip()
        except Exception as exc:
            logger.exception("Speaker labeling request failed (model=%s)", self.model)
            raise LabelingFailed() from exc

        if not labeled:
            logger.warning("Speaker labeling returned empty content, keeping raw transcript")
            return raw_text
        return labeled
