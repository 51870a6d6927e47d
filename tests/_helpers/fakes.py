"""Fake LLM implementations for testing."""

import json
from typing import AsyncIterator, Callable, Dict, List, Optional, Sequence, Tuple, Union

from insightdeck.application.ports import LLMServicePort

Reply = Union[str, BaseException, Callable[[str], str]]

# Substrings that identify each prompt the application sends.
ANALYSIS = "Analyze this data"
SUGGESTION = "Recommend a visualization"
TITLE = '{"title"'
KEY_POINTS = '{"points"'
VISUALIZATION = "Finalize the visualization"
RECOMMENDATIONS = '{"recommendations"'


def happy_replies() -> List[Tuple[str, Reply]]:
    return [
        (
            ANALYSIS,
            json.dumps(
                {
                    "overview": "Revenue grew 40% from Q1 to Q4",
                    "keyMetrics": ["Revenue", "Growth"],
                    "trends": ["Steady quarterly growth"],
                    "framework": {"type": "pyramid", "elements": ["Conclusion"]},
                }
            ),
        ),
        (SUGGESTION, json.dumps({"type": "Line Chart", "keyElements": ["Q4 peak"]})),
        (TITLE, json.dumps({"title": "Revenue up 40% in 2024, fund expansion"})),
        (
            KEY_POINTS,
            json.dumps({"points": ["Q4 revenue hit 140", "Every quarter grew", "No dips"]}),
        ),
        (
            VISUALIZATION,
            json.dumps({"type": "Line Chart", "keyElements": ["Q4 peak", "Trend line"]}),
        ),
        (
            RECOMMENDATIONS,
            json.dumps({"recommendations": ["Expand sales team", "Raise Q1 targets"]}),
        ),
    ]


class FakeLLM(LLMServicePort):
    """Scripted LLM: the first reply whose marker appears in the user prompt wins."""

    def __init__(
        self,
        replies: Optional[Sequence[Tuple[str, Reply]]] = None,
        default: Reply = "{}",
        fast_model: str = "fake-fast",
    ) -> None:
        self.replies = list(replies if replies is not None else happy_replies())
        self.default = default
        self._fast_model = fast_model
        self.calls: List[Dict[str, object]] = []

    @property
    def fast_model(self) -> str:
        return self._fast_model

    def replace(self, marker: str, reply: Reply) -> None:
        self.replies = [(m, reply if m == marker else r) for m, r in self.replies]

    def calls_matching(self, marker: str) -> int:
        return sum(1 for call in self.calls if marker in str(call["user"]))

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        self.calls.append(
            {
                "system": system_prompt,
                "user": user_prompt,
                "model": model,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        reply = next(
            (r for marker, r in self.replies if marker in user_prompt), self.default
        )
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(user_prompt)
        return reply

    async def stream(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        for chunk in ("Hello", ", ", "world"):
            yield chunk
