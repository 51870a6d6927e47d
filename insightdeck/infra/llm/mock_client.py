"""
Mock LLM client for local runs and tests.
"""

import json
from typing import AsyncIterator, Dict, List, Optional

from insightdeck.application.ports import LLMServicePort


class MockLLMClient(LLMServicePort):
    """Mock LLM client that returns canned JSON keyed off the prompt wording."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Optional[str]]] = []

    @property
    def fast_model(self) -> str:
        return "mock-fast"

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        self.calls.append({"system": system_prompt, "user": user_prompt, "model": model})
        return json.dumps(self._respond(user_prompt))

    @staticmethod
    def _respond(prompt: str) -> Dict:
        if prompt.startswith("Analyze this data"):
            return {
                "overview": "Revenue grew steadily across the period",
                "keyMetrics": ["Revenue", "Growth rate"],
                "trends": ["Upward revenue trend"],
                "framework": {"type": "pyramid", "elements": ["Conclusion", "Evidence"]},
            }
        if prompt.startswith("Recommend a visualization"):
            return {"type": "Line Chart", "keyElements": ["Revenue over time"]}
        if '{"title"' in prompt:
            return {"title": "Revenue up steadily, supporting expansion"}
        if '{"points"' in prompt:
            return {
                "points": [
                    "Revenue grew every period",
                    "Growth accelerated in the latest period",
                    "No period showed a decline",
                ]
            }
        if '{"type"' in prompt:
            return {"type": "Line Chart", "keyElements": ["Revenue over time"]}
        if '{"recommendations"' in prompt:
            return {
                "recommendations": [
                    "Invest in the fastest growing segment",
                    "Track growth monthly to confirm the trend",
                ]
            }
        return {}

    async def stream(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        last = messages[-1]["content"] if messages else ""
        for word in f"Echo: {last}".split(" "):
            yield word + " "
