"""Coach Agent: analyzes team behaviour over the whole exam transcript."""

import json
from dataclasses import dataclass
from typing import Optional

from ..models.enums import RequestType
from ..models.exam import PerformanceReport, Transcript, Turn
from ..services.llm_manager import LLMProviderManager
from .base_agent import BaseAgent


@dataclass
class CoachContext:
    """Input for the end-of-session analysis."""

    transcript: Transcript
    final_answer: Optional[str] = None

    def full_transcript(self) -> Transcript:
        """Transcript with the final team answer appended, if there is one."""
        if self.final_answer is None:
            return self.transcript
        return self.transcript.with_turn(Turn.team(self.final_answer))


class CoachAgent(BaseAgent):
    """Slow end-of-session call producing a PerformanceReport."""

    def __init__(self, llm_manager: LLMProviderManager):
        super().__init__("CoachAgent", llm_manager)

    async def process(self, input_data: CoachContext) -> PerformanceReport:
        """Analyze the session.

        Raises:
            RemoteCallError: If the call fails
            MalformedResponseError: If the reply is not a valid report
        """
        transcript = input_data.full_transcript()
        self.log_operation("analyze", {"transcript_turns": len(transcript)})

        content = await self._call_model(RequestType.COACH, self._build_prompt(transcript), json_output=True)
        report = self._decode(content, PerformanceReport)

        self.log_operation("analyze_completed", {"team_score": report.team_score})
        return report

    def _build_prompt(self, transcript: Transcript) -> str:
        history = json.dumps(transcript.to_payload(), ensure_ascii=False)

        return f"""You are a Team Performance Coach.
Review this exam transcript: {history}

CRITICAL ANALYSIS TASK:
Do not look at the code accuracy. Look at the HUMAN BEHAVIOR.
1. Did they guess? (Short answers, no logic)
2. Did they collaborate? (Look for words like "We think", "Debated", "Agreed")
3. Did they learn? (Did they fix mistakes in later turns?)

OUTPUT JSON:
{{
  "teamScore": <integer 1-100>,
  "collaborationLevel": "Low" | "Medium" | "High",
  "behavioralAnalysis": "Explain how they worked together based on the text evidence.",
  "improvementPlan": "Specific advice for this team to work better next time."
}}"""
