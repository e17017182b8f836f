"""Judging and AI-opponent generation backed by a chat-completion model.

Both calls honour the oracle contract: they never raise. Scoring falls back
to a neutral delta and generation to a canned line.
"""

import logging
import re
from typing import Dict, List

from openai import OpenAI

logger = logging.getLogger(__name__)

MIN_DELTA = -10
MAX_DELTA = 10

SILENT_REPLY = "The silence of the machine is my only argument."
EMPTY_REPLY = "I await your next point."
ERROR_REPLY = "System error: Cognitive processors offline."

DIFFICULTY_STYLES = {
    'easy': "logical but simple, sometimes making minor errors or using circular reasoning.",
    'medium': "coherent, logic-driven, and persuasive.",
    'hard': "highly aggressive, utilizing advanced rhetorical techniques, philosophy, and cutting logic.",
}

PHASE_INSTRUCTIONS = {
    'Opening_P2': "Provide a strong opening statement supporting your position. Establish your core arguments.",
    'Rebuttal_P2': "Directly address and dismantle the last points made by the opponent. Use logic to invalidate their claims.",
    'Crossfire': "Engage in quick, sharp exchanges. Keep it punchy and defensive/offensive as needed.",
    'Closing_P2': "Summarize your strongest points and provide a powerful concluding statement on why you won.",
}

_INT_RE = re.compile(r'[-+]?\d+')


def parse_delta(content: str) -> int:
    """First integer in the model output, clamped to the delta range; 0 if none."""
    found = _INT_RE.search(content or '')
    if not found:
        return 0
    return max(MIN_DELTA, min(MAX_DELTA, int(found.group())))


class ScoringOracle:
    def score_impact(self, text: str, phase: str, speaker_side: str) -> int:
        raise NotImplementedError

    def generate_response(self, topic: Dict[str, str], recent_history: List[str],
                          difficulty: str, phase: str) -> str:
        raise NotImplementedError


class NeutralOracle(ScoringOracle):
    """Used when no model is configured."""

    def score_impact(self, text, phase, speaker_side):
        return 0

    def generate_response(self, topic, recent_history, difficulty, phase):
        return SILENT_REPLY


class OpenAIOracle(ScoringOracle):
    def __init__(self, api_key: str, model: str = 'gpt-4o-mini', timeout: float = 8.0, client=None):
        self.model = model
        self._client = client or OpenAI(api_key=api_key, timeout=timeout)

    def score_impact(self, text, phase, speaker_side):
        if speaker_side == 'system':
            return 0
        side = speaker_side.upper()
        direction = 'NEGATIVE' if speaker_side == 'left' else 'POSITIVE'
        system_prompt = (
            "You are an expert AI judge for a fast-paced debate game.\n"
            f"Given a transcript snippet from the \"{phase}\" phase, spoken by the {side} player.\n\n"
            "MOMENTUM SCORING RULES:\n"
            "- Momentum is tracked on a scale where Left = Negative and Right = Positive.\n"
            f"- A strong, logical or persuasive point by {side} earns a {direction} integer.\n"
            "- Neutral or weak points should be close to 0.\n"
            "- Extremely strong points can be up to 10 (or -10).\n\n"
            "Return ONLY a single integer between -10 and 10.\n"
            "Consider logic, rhetoric, and aggression."
        )
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {'role': 'system', 'content': system_prompt},
                    {'role': 'user', 'content': text},
                ],
                temperature=0,
            )
            content = response.choices[0].message.content or ''
        except Exception as e:
            logger.error(f"[oracle-fail] scoring request failed: {e}")
            return 0
        return parse_delta(content)

    def generate_response(self, topic, recent_history, difficulty, phase):
        style = DIFFICULTY_STYLES.get(difficulty, DIFFICULTY_STYLES['medium'])
        instruction = PHASE_INSTRUCTIONS.get(phase, "Respond to the debate.")
        system_prompt = (
            "You are an expert debater (AI) competing in a real-time game.\n"
            f"The topic is: \"{topic.get('title', '')} - {topic.get('description', '')}\".\n"
            "You are Player 2 (Right Side), arguing against Player 1 (Human).\n\n"
            f"CURRENT PHASE: {phase}.\n"
            f"TASK: {instruction}\n\n"
            f"STYLE: Your response should be {style}\n"
            "Keep it concise (max 3 sentences) to maintain game pace."
        )
        history = ' | '.join(recent_history[-5:])
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {'role': 'system', 'content': system_prompt},
                    {'role': 'user', 'content': f"Recent debate history: {history}. Provide your response."},
                ],
                temperature=0.9 if difficulty == 'easy' else 0.6,
            )
            content = (response.choices[0].message.content or '').strip()
        except Exception as e:
            logger.error(f"[oracle-fail] generation request failed: {e}")
            return ERROR_REPLY
        return content or EMPTY_REPLY


def build_oracle(config) -> ScoringOracle:
    api_key = config.get('OPENAI_API_KEY')
    if not api_key:
        logger.warning("[oracle] OPENAI_API_KEY missing, momentum scoring is neutral")
        return NeutralOracle()
    return OpenAIOracle(
        api_key,
        model=config.get('OPENAI_MODEL', 'gpt-4o-mini'),
        timeout=float(config.get('ORACLE_TIMEOUT_SEC', 8)),
    )
