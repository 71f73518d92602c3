"""
PromptQA

Compiles plain-language UI test instructions into typed actions and runs
them against live pages through a ranked locator cascade.
"""

from .models import (
    Action,
    ActionType,
    CandidateList,
    ElementType,
    SingleLocator,
    StepError,
    StepOutcome,
    StepStatus,
    TestCase,
    TestReport,
    TestResult,
    parse_locator,
)
from .exceptions import (
    AssertionFailed,
    CompileOmission,
    ElementNotFound,
    ElementNotInteractable,
    PromptQAError,
    ResolutionError,
    SelectOptionNotFound,
    SessionUnavailable,
)
from .config import EngineConfig
from .instruction_compiler import CompileResult, InstructionCompiler, compile_instructions, compile_test_case

__version__ = "1.0.0"

__all__ = [
    "Action",
    "ActionType",
    "CandidateList",
    "ElementType",
    "SingleLocator",
    "StepError",
    "StepOutcome",
    "StepStatus",
    "TestCase",
    "TestReport",
    "TestResult",
    "parse_locator",
    "AssertionFailed",
    "CompileOmission",
    "ElementNotFound",
    "ElementNotInteractable",
    "PromptQAError",
    "ResolutionError",
    "SelectOptionNotFound",
    "SessionUnavailable",
    "EngineConfig",
    "CompileResult",
    "InstructionCompiler",
    "compile_instructions",
    "compile_test_case",
]
