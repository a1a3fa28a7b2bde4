# backend/echomed/services/analysis_service.py

import json
import logging
from typing import Any, Dict, Optional

from openai import AzureOpenAI, OpenAI, OpenAIError
from pydantic import ValidationError

from echomed.core.config import Settings
from echomed.core.errors import AnalysisError, InvalidInputError
from echomed.models import NutritionalAssessment, PatientContext

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """
Você é uma nutricionista clínica experiente, com abordagem humanizada e integrativa.

Você recebe a transcrição completa de uma consulta nutricional. Considere o paciente
como um ser biopsicossocial: queixas podem ter relação com alimentação, sono, estresse,
emoções, rotina de trabalho, atividade física e contexto de vida.

Trabalhe com hipóteses, sem rótulos ou conclusões absolutas, e sem inventar dados.
Se faltar informação, indique a necessidade de investigação no campo apropriado.

Retorne APENAS um objeto JSON válido com:
- nutritionalAssessment (string): síntese da avaliação, em forma de hipótese
- clinicalRationale (string): justificativa considerando alimentação, comportamento, rotina, sono, estresse e treino
- possibleAssociatedConditions (lista de strings)
- recommendedExams (lista de strings)
- nutritionalConduct (string): conduta e orientações iniciais
"""


def build_context_block(context: Optional[PatientContext]) -> str:
    if context is None or context.is_empty():
        return ""
    lines = ["Contexto do paciente:"]
    labels = context.goal_labels()
    if labels:
        lines.append(f"- Objetivo(s): {' + '.join(labels)}")
    if context.training_routine:
        routine = ", ".join(f"{t.type}: {t.frequency}" for t in context.training_routine)
        lines.append(f"- Rotina de treino: {routine}")
    if context.is_first_consultation is not None:
        lines.append(f"- Primeira consulta: {'sim' if context.is_first_consultation else 'não (retorno)'}")
    return "\n".join(lines)


def _strip_fences(text: str) -> str:
    return text.replace("```json", "").replace("```", "").strip()


class AnalysisService:
    """Sends a consultation transcript to the chat model and returns its assessment."""

    def __init__(self, settings: Settings, client: Any = None):
        self.settings = settings
        self._client = client

    def _get_client(self):
        if self._client is not None:
            return self._client
        if self.settings.AZURE_FOUNDRY_ENDPOINT:
            self._client = AzureOpenAI(
                api_version=self.settings.AZURE_API_VERSION,
                azure_endpoint=self.settings.AZURE_FOUNDRY_ENDPOINT,
                api_key=self.settings.AZURE_FOUNDRY_API_KEY,
            )
        elif self.settings.OPENAI_API_KEY:
            self._client = OpenAI(api_key=self.settings.OPENAI_API_KEY)
        else:
            raise AnalysisError("No AI credentials configured (AZURE_FOUNDRY_ENDPOINT or OPENAI_API_KEY)")
        return self._client

    def analyze(self, transcript: str, context: Optional[PatientContext] = None) -> Dict[str, Any]:
        """
        Analyze one transcript.

        The parsed JSON is checked against NutritionalAssessment but returned
        as the model produced it, extra keys included.
        """
        if not (transcript or "").strip():
            raise InvalidInputError("Empty transcript")

        user_content = f"Transcrição da consulta:\n{transcript}"
        context_block = build_context_block(context)
        if context_block:
            user_content = f"{context_block}\n\n{user_content}"

        client = self._get_client()
        try:
            completion = client.chat.completions.create(
                model=self.settings.CHAT_MODEL,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_content},
                ],
                response_format={"type": "json_object"},
                temperature=self.settings.ANALYSIS_TEMPERATURE,
            )
        except OpenAIError as e:
            logger.error("Analysis request failed: %s", e)
            raise AnalysisError(f"Analysis request failed: {e}") from e

        content = completion.choices[0].message.content or ""
        try:
            data = json.loads(_strip_fences(content))
        except ValueError as e:
            raise AnalysisError("Analysis returned invalid JSON") from e
        if not isinstance(data, dict):
            raise AnalysisError("Analysis returned JSON that is not an object")

        try:
            NutritionalAssessment.model_validate(data)
        except ValidationError as e:
            raise AnalysisError(f"Analysis result is missing required fields: {e}") from e

        logger.info("Analysis completed (%d characters of transcript)", len(transcript))
        return data
