from domain.steps.base import Step
from domain.steps.request import (
    CaptureSource,
    HandlerCall,
    RequestSpec,
    RequestStep,
    ResponseSpec,
    SessionCapture,
    ValidationGroup,
)
from domain.steps.loop import LoopSpec, LoopStep
from domain.steps.include import IncludeStep

__all__ = [
    "Step",
    "RequestStep",
    "RequestSpec",
    "ResponseSpec",
    "CaptureSource",
    "SessionCapture",
    "ValidationGroup",
    "HandlerCall",
    "LoopStep",
    "LoopSpec",
    "IncludeStep",
]
