# SPDX-License-Identifier: MIT
"""Build graph generators for buildprobe."""

from buildprobe.generators.generator import BaseGenerator, Generator
from buildprobe.generators.mermaid import MermaidGenerator
from buildprobe.generators.ninja import NinjaGenerator

__all__ = [
    "BaseGenerator",
    "Generator",
    "MermaidGenerator",
    "NinjaGenerator",
]
