"""Test doubles shared across the test modules."""

import json

from exam_coach.services.llm_manager import LLMResponse


class FakeLLMManager:
    """Scripted stand-in for LLMProviderManager.

    Each reply is a string, an exception to raise, or an async callable
    taking the request.
    """

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.requests = []

    async def make_request(self, request):
        self.requests.append(request)
        if not self.replies:
            raise AssertionError(f"unexpected {request.type.value} request")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = await reply(request)
        return LLMResponse(content=reply, provider="fake", model=request.type.value, response_time=0.0)

    def request_types(self):
        return [request.type.value for request in self.requests]


def examiner_reply(message="Correct.", question="What is a hook?", over=False):
    return json.dumps({"botMessage": message, "nextQuestion": question, "isExamOver": over})


def coach_reply(score=80, level="High", analysis="They debated.", plan="Keep talking."):
    return json.dumps({
        "teamScore": score,
        "collaborationLevel": level,
        "behavioralAnalysis": analysis,
        "improvementPlan": plan,
    })
