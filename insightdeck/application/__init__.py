"""Application layer: task queue, slide generation pipeline and its ports."""

from .decomposer import SubTaskDecomposer, choose_framework, split_data
from .executor import SubTaskExecutor, clean_json_response
from .normalizer import fallback_for, normalize
from .ports import LLMServicePort
from .slide_generation import SlideGenerationService
from .task_queue import FailureKind, TaskQueue, classify_failure

__all__ = [
    "SubTaskDecomposer",
    "choose_framework",
    "split_data",
    "SubTaskExecutor",
    "clean_json_response",
    "fallback_for",
    "normalize",
    "LLMServicePort",
    "SlideGenerationService",
    "FailureKind",
    "TaskQueue",
    "classify_failure",
]
