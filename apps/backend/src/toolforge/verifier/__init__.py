"""Sandboxed verification of generated tools."""

from .report import VerificationReport
from .sandbox import SandboxVerifier, VerificationCase, VerificationResult, isolated_context
from .stubs import StubResponse

__all__ = [
    "SandboxVerifier",
    "StubResponse",
    "VerificationCase",
    "VerificationReport",
    "VerificationResult",
    "isolated_context",
]
